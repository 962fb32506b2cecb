# backend/dm_core/audit/models.py
import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


class AuditImmutableError(RuntimeError):
    pass


class AuditLogEntryQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise AuditImmutableError("Audit log entries are append-only.")

    def delete(self):
        raise AuditImmutableError("Audit log entries are append-only.")


class AuditLogEntry(models.Model):
    """
    Immutable audit record. One row per state-changing operation per resource.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="audit_log_entries",
        null=True,
        blank=True,
    )

    action = models.CharField(max_length=128, db_index=True)  # e.g. "BULK_AUTO_APPROVAL_CONFIG_UPDATED"
    resource = models.CharField(max_length=64, db_index=True)  # e.g. "Entity"
    resource_id = models.CharField(max_length=64, db_index=True)

    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)

    timestamp = models.DateTimeField(default=timezone.now, db_index=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True, default="")

    objects = AuditLogEntryQuerySet.as_manager()

    class Meta:
        db_table = "audit_log_entry"
        indexes = [
            models.Index(fields=["action", "timestamp"], name="audit_action_ts_idx"),
            models.Index(fields=["resource", "resource_id"], name="audit_resource_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AuditImmutableError("Audit log entries are append-only.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AuditImmutableError("Audit log entries are append-only.")

    def __str__(self) -> str:
        return f"{self.action} {self.resource}:{self.resource_id}"
