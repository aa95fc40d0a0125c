# backend/clinic_core/iam/models.py
from django.db import models
from django.db.models.functions import Lower

from clinic_core.common.models import VersionedModel
from clinic_core.iam.roles import Role


def default_profile() -> dict:
    return {
        "title": "",
        "specialization": "",
        "license_number": "",
        "phone": "",
        "avatar": None,
    }


def default_settings() -> dict:
    return {
        "email_notifications": True,
        "theme": "light",
        "language": "en",
    }


class Account(VersionedModel):
    """
    Staff identity.

    `credential` holds a Django password hash and never leaves the
    directory: every read path converts to PublicAccount first.
    """
    email = models.CharField(max_length=254)  # stored lower-cased
    credential = models.CharField(max_length=256)
    display_name = models.CharField(max_length=255)
    role = models.CharField(max_length=32, choices=Role.choices, db_index=True)

    is_active = models.BooleanField(default=True, db_index=True)

    # null only for the bootstrap administrator
    created_by = models.UUIDField(null=True, blank=True)
    last_login_at = models.DateTimeField(null=True, blank=True)

    profile = models.JSONField(default=default_profile)
    settings = models.JSONField(default=default_settings)

    class Meta:
        db_table = "iam_account"
        constraints = [
            models.UniqueConstraint(Lower("email"), name="uq_account_email_ci"),
        ]
        indexes = [
            models.Index(fields=["role", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"{self.display_name} <{self.email}> ({self.role})"

    # DRF's IsAuthenticated checks this on request.user
    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_anonymous(self) -> bool:
        return False
