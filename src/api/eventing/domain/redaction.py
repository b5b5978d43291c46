"""Default payload redactor.

Masks values stored under keys that look like credentials or card/identity
numbers before a payload is written to the event log. Content-based PII
detection is out of scope here; richer redactors can be injected into the
relay through the Redactor port.
"""

from __future__ import annotations

from typing import Any

from eventing.domain.value_objects import RedactionResult

REDACTED = "[REDACTED]"

# Lowercased key fragments; matching is by substring after stripping separators
SENSITIVE_KEY_FRAGMENTS: tuple[str, ...] = (
    "password",
    "token",
    "secret",
    "apikey",
    "ssn",
    "creditcard",
    "cardnumber",
    "cvv",
)

SENSITIVE_FIELD_TAG = "sensitive_field"


def _normalize_key(key: str) -> str:
    return key.lower().replace("_", "").replace("-", "")


class SensitiveFieldRedactor:
    """Redacts values of sensitive-looking keys at any nesting depth.

    Never raises on unexpected shapes: non-container values are returned
    as they are.
    """

    def __init__(self, fragments: tuple[str, ...] = SENSITIVE_KEY_FRAGMENTS):
        self._fragments = fragments

    def redact(self, payload: dict[str, Any]) -> RedactionResult:
        found: set[str] = set()
        redacted = self._redact_value(payload, found)
        if not isinstance(redacted, dict):
            redacted = {"value": redacted}
        return RedactionResult(redacted_payload=redacted, pii_tags=tuple(sorted(found)))

    def _is_sensitive(self, key: str) -> bool:
        normalized = _normalize_key(key)
        return any(fragment in normalized for fragment in self._fragments)

    def _redact_value(self, value: Any, found: set[str]) -> Any:
        if isinstance(value, dict):
            result: dict[str, Any] = {}
            for key, item in value.items():
                if isinstance(key, str) and self._is_sensitive(key):
                    result[key] = REDACTED
                    found.add(SENSITIVE_FIELD_TAG)
                else:
                    result[key] = self._redact_value(item, found)
            return result

        if isinstance(value, (list, tuple)):
            return [self._redact_value(item, found) for item in value]

        return value
