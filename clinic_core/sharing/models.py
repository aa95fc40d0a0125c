# backend/clinic_core/sharing/models.py
from django.db import models

from clinic_core.common.models import VersionedModel


class AccessLevel(models.TextChoices):
    FULL = "full", "Full"
    READ_ONLY = "read-only", "Read only"
    LIMITED = "limited", "Limited"


class GrantPermission(models.TextChoices):
    READ = "read", "Read"
    UPDATE = "update", "Update"


# permission values each level may carry; the default is the whole allowance
LEVEL_ALLOWANCE: dict[str, tuple[str, ...]] = {
    AccessLevel.FULL: (GrantPermission.READ, GrantPermission.UPDATE),
    AccessLevel.LIMITED: (GrantPermission.READ, GrantPermission.UPDATE),
    AccessLevel.READ_ONLY: (GrantPermission.READ,),
}


class PatientAccessGrant(VersionedModel):
    """
    Time-boxed delegation of one patient's record to a support-role account.

    A grant is never deleted. Revocation flips `is_active`; expiry is
    a read-time filter on `expires_at` and never touches the row.
    """
    patient_id = models.CharField(max_length=64, db_index=True)
    grantee_account_id = models.UUIDField(db_index=True)
    granted_by_account_id = models.UUIDField()

    access_level = models.CharField(max_length=16, choices=AccessLevel.choices)
    permissions = models.JSONField(default=list)

    granted_at = models.DateTimeField()
    expires_at = models.DateTimeField(null=True, blank=True)  # null = indefinite

    is_active = models.BooleanField(default=True)
    reason = models.CharField(max_length=500)

    revoked_at = models.DateTimeField(null=True, blank=True)
    revoked_by_account_id = models.UUIDField(null=True, blank=True)

    class Meta:
        db_table = "sharing_patient_access_grant"
        ordering = ["-granted_at"]
        indexes = [
            models.Index(fields=["patient_id", "grantee_account_id", "is_active"]),
            models.Index(fields=["grantee_account_id", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"{self.access_level} access to {self.patient_id} for {self.grantee_account_id}"

    def is_expired(self, at) -> bool:
        return self.expires_at is not None and self.expires_at <= at

    def is_effective(self, at) -> bool:
        return self.is_active and not self.is_expired(at)
