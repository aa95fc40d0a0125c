# config/settings/test.py
from .base import *  # noqa

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# hashing cost is irrelevant in tests
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

CLINIC_AUDIT_RETENTION = 1000
CLINIC_OWNERSHIP_RESOLVER = "clinic_core.iam.ownership.TrustingOwnershipResolver"

# let pytest's caplog (attached to the root logger) see clinic_core records
LOGGING["loggers"]["clinic_core"] = {"level": "WARNING", "propagate": True}  # noqa: F405
