"""Unit tests for SensitiveFieldRedactor."""

from eventing.domain.redaction import (
    REDACTED,
    SENSITIVE_FIELD_TAG,
    SensitiveFieldRedactor,
)
from eventing.ports.consumers import Redactor


class TestSensitiveFieldRedactor:
    def test_satisfies_redactor_protocol(self):
        assert isinstance(SensitiveFieldRedactor(), Redactor)

    def test_masks_sensitive_top_level_keys(self):
        result = SensitiveFieldRedactor().redact(
            {"email": "a@example.com", "password": "hunter2", "apiKey": "k"}
        )

        assert result.redacted_payload == {
            "email": "a@example.com",
            "password": REDACTED,
            "apiKey": REDACTED,
        }
        assert result.pii_tags == (SENSITIVE_FIELD_TAG,)

    def test_matches_key_fragments_case_and_separator_insensitively(self):
        result = SensitiveFieldRedactor().redact(
            {"passwordHash": "x", "ACCESS_TOKEN": "y", "credit-card": "z", "user_ssn": "w"}
        )

        assert set(result.redacted_payload.values()) == {REDACTED}

    def test_recurses_into_nested_dicts_and_lists(self):
        payload = {
            "user": {"name": "Ann", "secret": "s"},
            "cards": [{"cardNumber": "4111", "brand": "visa"}],
        }

        result = SensitiveFieldRedactor().redact(payload)

        assert result.redacted_payload == {
            "user": {"name": "Ann", "secret": REDACTED},
            "cards": [{"cardNumber": REDACTED, "brand": "visa"}],
        }

    def test_does_not_mutate_input(self):
        payload = {"token": "abc", "nested": {"secret": "s"}}

        SensitiveFieldRedactor().redact(payload)

        assert payload == {"token": "abc", "nested": {"secret": "s"}}

    def test_clean_payload_has_no_tags(self):
        result = SensitiveFieldRedactor().redact({"title": "Standup", "count": 3})

        assert result.redacted_payload == {"title": "Standup", "count": 3}
        assert result.pii_tags == ()

    def test_custom_fragments(self):
        result = SensitiveFieldRedactor(fragments=("salary",)).redact(
            {"salary": 100, "password": "kept"}
        )

        assert result.redacted_payload == {"salary": REDACTED, "password": "kept"}
