# backend/dm_core/verification/tests/test_audit_history.py
import csv
import io
import json
import uuid

import pytest

from dm_core.audit.services import AuditService
from dm_core.verification.selectors import allowed_actions
from dm_core.verification.services import AUTO_APPROVAL_ACTIONS, AutoApprovalService

pytestmark = pytest.mark.django_db

URL = "/api/v1/verification/audit"


@pytest.fixture
def history(coordinator, camp, clinic):
    AutoApprovalService.bulk_update(entity_ids=[camp.id, clinic.id], enabled=True, actor=coordinator)
    AutoApprovalService.update_entity(entity_id=camp.id, enabled=False, actor=coordinator)
    # outside the auto-approval allow-list
    AuditService.log(
        action="ASSESSMENT_VERIFIED",
        resource="RapidAssessment",
        resource_id=uuid.uuid4(),
        user_id=coordinator.id,
    )
    AuditService.log(
        action="GLOBAL_AUTO_APPROVAL_SETTINGS_UPDATED",
        resource="GlobalSettings",
        resource_id="global",
        user_id=None,
        new_values={"reason": "nightly sync"},
    )


def test_allowed_actions_never_escape_the_list():
    assert allowed_actions(None) == list(AUTO_APPROVAL_ACTIONS)
    assert allowed_actions("all") == list(AUTO_APPROVAL_ACTIONS)
    assert allowed_actions("ENTITY_AUTO_APPROVAL_ENABLED") == ["ENTITY_AUTO_APPROVAL_ENABLED"]
    assert allowed_actions("ASSESSMENT_VERIFIED") == []


def test_history_lists_auto_approval_actions_only(coordinator_client, history):
    res = coordinator_client.get(URL)

    assert res.status_code == 200, res.data
    actions = {row["action"] for row in res.data["data"]}
    assert "ASSESSMENT_VERIFIED" not in actions
    assert res.data["summary"] == {
        "totalEntries": 4,
        "uniqueUsers": 2,
        "bulkOperations": 2,
        "configurationChanges": 2,
    }
    assert res.data["pagination"]["pageSize"] == 50

    system_row = next(r for r in res.data["data"] if r["resource"] == "GlobalSettings")
    assert system_row["userId"] == "system"
    assert system_row["userName"] == "System User"
    assert system_row["resourceName"] == "Global Auto-Approval Settings"
    assert system_row["metadata"]["reason"] == "nightly sync"


def test_history_filters(coordinator_client, coordinator, history, camp):
    res = coordinator_client.get(URL, {"action": "ASSESSMENT_VERIFIED"})
    assert res.data["data"] == []

    res = coordinator_client.get(URL, {"userId": "system"})
    assert [r["action"] for r in res.data["data"]] == ["GLOBAL_AUTO_APPROVAL_SETTINGS_UPDATED"]

    res = coordinator_client.get(URL, {"userId": str(coordinator.id), "resourceId": str(camp.id)})
    assert {r["action"] for r in res.data["data"]} == {
        "BULK_AUTO_APPROVAL_CONFIG_UPDATED",
        "ENTITY_AUTO_APPROVAL_DISABLED",
    }
    assert all(r["resourceName"] == "Bakassi IDP Camp" for r in res.data["data"])

    res = coordinator_client.get(URL, {"userId": "someone"})
    assert res.status_code == 400


def test_export_csv(coordinator_client, history):
    res = coordinator_client.get(f"{URL}/export", {"format": "csv"})

    assert res.status_code == 200
    assert res["Content-Type"].startswith("text/csv")
    assert res["Content-Disposition"].startswith('attachment; filename="auto-approval-audit-')
    assert res["Content-Disposition"].endswith('.csv"')

    rows = list(csv.DictReader(io.StringIO(res.content.decode("utf-8"))))
    assert len(rows) == 4
    assert json.loads(rows[0]["newValues"]) is not None


def test_export_json_respects_filters(coordinator_client, history):
    res = coordinator_client.get(f"{URL}/export", {"format": "json", "action": "BULK_AUTO_APPROVAL_CONFIG_UPDATED"})

    assert res.status_code == 200
    assert res["Content-Type"] == "application/json"
    body = json.loads(res.content)
    assert len(body) == 2
    assert all(row["newValues"]["bulkUpdate"] for row in body)


def test_export_row_cap(coordinator_client, history, settings):
    settings.DM_VERIFICATION = {**settings.DM_VERIFICATION, "AUDIT_EXPORT_MAX_ROWS": 1}
    res = coordinator_client.get(f"{URL}/export", {"format": "json"})
    assert len(json.loads(res.content)) == 1


def test_rollback_is_not_implemented(coordinator_client, history):
    entry_id = coordinator_client.get(URL).data["data"][0]["id"]

    res = coordinator_client.post(f"{URL}/{entry_id}/rollback")
    assert res.status_code == 501
    assert res.data["code"] == "not_implemented"

    res = coordinator_client.post(f"{URL}/{uuid.uuid4()}/rollback")
    assert res.status_code == 404


def test_audit_requires_coordinator(assessor_client):
    assert assessor_client.get(URL).status_code == 403
    assert assessor_client.get(f"{URL}/export").status_code == 403
