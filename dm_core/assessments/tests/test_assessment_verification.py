# backend/dm_core/assessments/tests/test_assessment_verification.py
import uuid

import pytest

from dm_core.assessments.models import AssessmentLockedError, RapidAssessment
from dm_core.audit.models import AuditLogEntry

pytestmark = pytest.mark.django_db


def _url(a, verb):
    return f"/api/v1/rapid-assessments/{a.id}/{verb}"


def test_verify_then_conflict(coordinator_client, coordinator, make_assessment, camp):
    a = make_assessment(camp)

    res = coordinator_client.post(_url(a, "verify"), {"notes": "checked by phone"}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["data"]["verificationStatus"] == "VERIFIED"
    assert res.data["data"]["verifiedBy"] == coordinator.id

    entry = AuditLogEntry.objects.get(action="ASSESSMENT_VERIFIED")
    assert entry.old_values["verificationStatus"] == "SUBMITTED"
    assert entry.new_values["notes"] == "checked by phone"

    res = coordinator_client.post(_url(a, "verify"), {}, format="json")
    assert res.status_code == 409
    assert res.data["code"] == "conflict"


def test_reject_requires_reason(coordinator_client, make_assessment, camp):
    a = make_assessment(camp)

    res = coordinator_client.post(_url(a, "reject"), {"reason": "  "}, format="json")
    assert res.status_code == 400
    assert res.data["errors"][0]["field"] == "reason"

    res = coordinator_client.post(
        _url(a, "reject"),
        {"reason": "Duplicate", "feedback": "Already filed yesterday"},
        format="json",
    )
    assert res.status_code == 200
    assert res.data["data"]["verificationStatus"] == "REJECTED"
    assert res.data["data"]["rejectionFeedback"] == "Already filed yesterday"


def test_auto_verified_cannot_be_rejected(coordinator_client, make_assessment, camp):
    a = make_assessment(camp, verification_status="AUTO_VERIFIED")
    res = coordinator_client.post(_url(a, "reject"), {"reason": "late"}, format="json")
    assert res.status_code == 409


def test_assessor_cannot_verify(assessor_client, make_assessment, camp):
    a = make_assessment(camp)
    res = assessor_client.post(_url(a, "verify"), {}, format="json")
    assert res.status_code == 403
    a.refresh_from_db()
    assert a.verification_status == "SUBMITTED"


def test_unknown_assessment_is_404(coordinator_client):
    res = coordinator_client.post(f"/api/v1/rapid-assessments/{uuid.uuid4()}/verify", {}, format="json")
    assert res.status_code == 404
    assert res.data["error"] == "Assessment not found."


def test_terminal_rows_are_frozen(make_assessment, camp):
    a = make_assessment(camp, verification_status="VERIFIED")
    loaded = RapidAssessment.objects.get(id=a.id)
    loaded.priority = "LOW"
    with pytest.raises(AssessmentLockedError):
        loaded.save()
