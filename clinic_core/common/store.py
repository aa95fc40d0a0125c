# backend/clinic_core/common/store.py
from __future__ import annotations

import logging
from typing import Any, Generic, Iterable, TypeVar

from django.db.models import F
from django.utils.timezone import now

from clinic_core.common import errors
from clinic_core.common.models import VersionedModel

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=VersionedModel)


class VersionedStore(Generic[M]):
    """
    Durable key -> record adapter over one collection (a Django model).

    - get(key): point read by primary key, None when absent
    - put(instance, fields=...): point write guarded by the instance's
      `version`; a concurrent writer that got there first makes this
      raise errors.Conflict instead of silently losing its change
    - add(**values): insert a new record at version 1

    No retry logic lives here; callers surface Conflict to the user.
    """

    def __init__(self, model: type[M]):
        self.model = model

    def get(self, key: Any, *, for_update: bool = False) -> M | None:
        qs = self.model.objects.all()
        if for_update:
            qs = qs.select_for_update()
        return qs.filter(pk=key).first()

    def add(self, **values: Any) -> M:
        return self.model.objects.create(**values)

    def put(self, instance: M, *, fields: Iterable[str]) -> M:
        fields = [f for f in fields if f not in {"id", "version", "updated_at"}]
        stamp = now()
        values = {name: getattr(instance, name) for name in fields}

        updated = self.model.objects.filter(pk=instance.pk, version=instance.version).update(
            **values,
            updated_at=stamp,
            version=F("version") + 1,
        )
        if updated == 0:
            logger.warning(
                "Stale write rejected for %s %s (version %s)",
                self.model.__name__,
                instance.pk,
                instance.version,
            )
            raise errors.Conflict(
                f"{self.model._meta.verbose_name.capitalize()} was modified by another request. Reload and retry."
            )

        instance.version += 1
        instance.updated_at = stamp
        return instance

    def delete(self, instance: M) -> None:
        deleted, _ = self.model.objects.filter(pk=instance.pk, version=instance.version).delete()
        if deleted == 0:
            raise errors.Conflict(
                f"{self.model._meta.verbose_name.capitalize()} was modified by another request. Reload and retry."
            )
