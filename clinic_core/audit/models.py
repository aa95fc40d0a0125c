# backend/clinic_core/audit/models.py
from django.db import models


class AuditAction(models.TextChoices):
    """
    Well-known actions. The column is free-form so callers may record
    extension values (e.g. "grant", "export") without a schema change.
    """
    CREATE = "create", "Create"
    READ = "read", "Read"
    UPDATE = "update", "Update"
    DELETE = "delete", "Delete"
    LOGIN = "login", "Login"
    LOGOUT = "logout", "Logout"
    EXPORT = "export", "Export"


class AuditLogEntry(models.Model):
    """
    Immutable audit record.

    The sequence id doubles as the newest-first ordering key, so reads
    never depend on two entries having distinct timestamps.
    """
    id = models.BigAutoField(primary_key=True)

    # null for failed logins against unknown identities
    actor_account_id = models.UUIDField(null=True, blank=True, db_index=True)
    actor_name = models.CharField(max_length=255, blank=True, default="")
    actor_role = models.CharField(max_length=32, blank=True, default="")

    action = models.CharField(max_length=64, db_index=True)
    resource_type = models.CharField(max_length=64, db_index=True)
    resource_id = models.CharField(max_length=128, blank=True, default="", db_index=True)
    resource_name = models.CharField(max_length=255, blank=True, default="")

    details = models.TextField(blank=True, default="")
    payload = models.JSONField(default=dict, blank=True)

    timestamp = models.DateTimeField(db_index=True)
    is_success = models.BooleanField(default=True, db_index=True)
    error_message = models.TextField(null=True, blank=True)

    class Meta:
        db_table = "audit_log_entry"
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["resource_type", "resource_id"]),
            models.Index(fields=["actor_account_id", "timestamp"]),
        ]

    def __str__(self) -> str:
        status = "ok" if self.is_success else "failed"
        return f"{self.timestamp:%Y-%m-%d %H:%M:%S} {self.actor_name} {self.action} {self.resource_type} ({status})"
