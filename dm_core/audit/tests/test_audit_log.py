# backend/dm_core/audit/tests/test_audit_log.py
import pytest

from dm_core.audit.models import AuditImmutableError, AuditLogEntry
from dm_core.audit.selectors import audit_entries_for_resource, list_audit_entries
from dm_core.audit.services import AuditService, RequestMeta

pytestmark = pytest.mark.django_db


def _log(action="ENTITY_AUTO_APPROVAL_ENABLED", resource_id="e-1", user_id=None, **kw):
    return AuditService.log(
        action=action,
        resource="Entity",
        resource_id=resource_id,
        user_id=user_id,
        new_values={"entityName": "Camp"},
        **kw,
    )


def test_log_writes_row_with_request_meta(coordinator):
    entry = _log(
        user_id=coordinator.id,
        request_meta=RequestMeta(ip_address="10.0.0.5", user_agent="pytest"),
    )
    entry.refresh_from_db()

    assert entry.user_id == coordinator.id
    assert entry.resource_id == "e-1"
    assert entry.ip_address == "10.0.0.5"
    assert entry.user_agent == "pytest"


def test_entries_are_append_only():
    entry = _log()

    entry.action = "SOMETHING_ELSE"
    with pytest.raises(AuditImmutableError):
        entry.save()
    with pytest.raises(AuditImmutableError):
        entry.delete()
    with pytest.raises(AuditImmutableError):
        AuditLogEntry.objects.filter(id=entry.id).update(action="X")
    with pytest.raises(AuditImmutableError):
        AuditLogEntry.objects.all().delete()

    assert AuditLogEntry.objects.get(id=entry.id).action == "ENTITY_AUTO_APPROVAL_ENABLED"


def test_request_meta_prefers_forwarded_for(rf):
    req = rf.get("/", HTTP_X_FORWARDED_FOR="41.58.1.1, 10.0.0.1", HTTP_USER_AGENT="field-app")
    meta = RequestMeta.from_request(req)
    assert meta.ip_address == "41.58.1.1"
    assert meta.user_agent == "field-app"
    assert RequestMeta.from_request(None) == RequestMeta()


def test_list_filters_and_order(coordinator):
    first = _log(resource_id="a")
    second = _log(action="ENTITY_AUTO_APPROVAL_DISABLED", resource_id="b", user_id=coordinator.id)

    assert list(list_audit_entries()) == [second, first]
    assert list(list_audit_entries(actions=[])) == []
    assert list(list_audit_entries(user_id=coordinator.id)) == [second]
    assert list(list_audit_entries(search="coord")) == [second]
    assert list(audit_entries_for_resource(resource="Entity", resource_id="a")) == [first]
