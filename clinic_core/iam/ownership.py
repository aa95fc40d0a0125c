# backend/clinic_core/iam/ownership.py
"""
Boundary with the (external) patient store.

The access engine never reads patient content; it only asks the owning
store "does this clinician own this patient record". Which resolver is
used is configured by settings.CLINIC_OWNERSHIP_RESOLVER.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Mapping, Protocol
from uuid import UUID

from django.conf import settings
from django.utils.module_loading import import_string

DEFAULT_RESOLVER = "clinic_core.iam.ownership.TrustingOwnershipResolver"


class OwnershipResolver(Protocol):
    def owns_patient(self, account_id: UUID, patient_id: str) -> bool: ...


class TrustingOwnershipResolver:
    """
    Every clinician is treated as owning every patient; per-record
    ownership is enforced by the patient store itself when it lists rows.
    """

    def owns_patient(self, account_id: UUID, patient_id: str) -> bool:
        return True


class StaticOwnershipResolver:
    """
    Explicit patient_id -> owner account id map.
    """

    def __init__(self, owners: Mapping[str, UUID | str] | None = None):
        self._owners = {str(k): str(v) for k, v in (owners or {}).items()}

    def assign(self, patient_id: str, account_id: UUID | str) -> None:
        self._owners[str(patient_id)] = str(account_id)

    def owns_patient(self, account_id: UUID, patient_id: str) -> bool:
        return self._owners.get(str(patient_id)) == str(account_id)


@lru_cache(maxsize=None)
def _load(path: str) -> OwnershipResolver:
    return import_string(path)()


def get_ownership_resolver() -> OwnershipResolver:
    configured = getattr(settings, "CLINIC_OWNERSHIP_RESOLVER", DEFAULT_RESOLVER)
    if not isinstance(configured, str):
        # an instance (tests wire a StaticOwnershipResolver directly)
        return configured
    return _load(configured)
