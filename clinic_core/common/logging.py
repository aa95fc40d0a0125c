# backend/clinic_core/common/logging.py
from __future__ import annotations

import logging
from typing import Any

REDACTED = "[REDACTED]"

# Keys whose values must never reach a log sink.
SENSITIVE_KEYS = frozenset({"password", "credential", "secret", "token", "authorization", "cookie"})


def _is_sensitive(key: Any) -> bool:
    k = str(key).lower()
    return any(s in k for s in SENSITIVE_KEYS)


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: (REDACTED if _is_sensitive(k) else redact(v)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v) for v in value)
    return value


class RedactSecretsFilter(logging.Filter):
    """
    Masks credential-like keys in dict arguments and `extra` fields.

    Wired in config.settings.base LOGGING for every handler.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, dict):
            record.args = redact(record.args)
        elif isinstance(record.args, tuple):
            record.args = tuple(redact(a) for a in record.args)

        for key in list(vars(record)):
            if _is_sensitive(key):
                setattr(record, key, REDACTED)
        return True
