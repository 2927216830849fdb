"""
Quotebook Backend — Schema Tests
================================

What:  The shared timestamp decoder, id coercion, and the sign-up response
       discrimination.
"""

from datetime import datetime, timezone

import pytest

from quotebook.schemas.auth import ConfirmationPending, TokenIssued, parse_auth_payload
from quotebook.schemas.common import parse_timestamp
from quotebook.schemas.quote import Collection, Quote, QuotePage, category_names


class TestParseTimestamp:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2024-01-15T12:00:00Z", datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)),
            ("2024-01-15T12:00:00.123Z", datetime(2024, 1, 15, 12, 0, 0, 123000, tzinfo=timezone.utc)),
            ("2024-01-15T12:00:00.1+00:00", datetime(2024, 1, 15, 12, 0, 0, 100000, tzinfo=timezone.utc)),
            ("2024-01-15T12:00:00.123456789+00:00",
             datetime(2024, 1, 15, 12, 0, 0, 123456, tzinfo=timezone.utc)),
        ],
    )
    def test_iso_variants(self, raw, expected):
        assert parse_timestamp(raw) == expected

    def test_naive_timestamp_kept_naive(self):
        assert parse_timestamp("2024-01-15T12:00:00").tzinfo is None

    @pytest.mark.parametrize("raw", [None, "", "   ", "yesterday", 1700000000])
    def test_unreadable_values_become_none(self, raw):
        assert parse_timestamp(raw) is None

    def test_bad_timestamp_does_not_reject_record(self):
        quote = Quote(id="q-1", text="t", author="a", category="Love", created_at="not a date")

        assert quote.created_at is None


class TestRecordModels:

    def test_integer_ids_become_strings(self):
        collection = Collection.model_validate({"id": 7, "user_id": "u", "name": "Stoics"})

        assert collection.id == "7"

    def test_quote_is_immutable(self):
        quote = Quote(id="q-1", text="t", author="a", category="Love")

        with pytest.raises(Exception):
            quote.text = "changed"

    def test_page_rejects_zero_limit(self):
        with pytest.raises(Exception):
            QuotePage(quotes=[], page=0, limit=0, has_more=False)

    def test_category_names_in_display_order(self):
        assert category_names() == ["Motivation", "Love", "Success", "Wisdom", "Humor"]


class TestParseAuthPayload:

    def test_token_envelope(self):
        result = parse_auth_payload({
            "access_token": "a",
            "refresh_token": "r",
            "user": {"id": "u1", "email": "x@y.io", "user_metadata": {"name": "X"}},
        })

        assert isinstance(result, TokenIssued)
        assert result.user.metadata_name() == "X"

    def test_root_level_user_is_pending(self):
        result = parse_auth_payload({"id": "u1", "email": "x@y.io", "confirmation_sent_at": "2024-01-15T12:00:00Z"})

        assert isinstance(result, ConfirmationPending)
        assert result.user.id == "u1"
        assert result.access_token is None

    def test_nested_user_without_token_is_pending(self):
        result = parse_auth_payload({"user": {"id": "u1"}, "session": None})

        assert isinstance(result, ConfirmationPending)

    def test_empty_access_token_is_not_a_token(self):
        result = parse_auth_payload({"access_token": "", "user": {"id": "u1"}})

        assert isinstance(result, ConfirmationPending)

    @pytest.mark.parametrize("payload", [None, [], "ok", {"msg": "nope"}, {"id": 5}])
    def test_unknown_shapes(self, payload):
        assert parse_auth_payload(payload) is None

    def test_blank_metadata_name_ignored(self):
        result = parse_auth_payload({"access_token": "a", "user": {"id": "u1", "user_metadata": {"name": "  "}}})

        assert result.user.metadata_name() is None
