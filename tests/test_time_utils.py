"""Tests for timestamp helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from triadic.utils.time import format_declaration_time, format_timestamp, parse_timestamp


class TestFormatting:
    """Tests for the two timestamp forms."""

    def test_decision_timestamp_has_milliseconds(self) -> None:
        """Test millisecond truncation and the Z suffix."""
        dt = datetime(2025, 1, 15, 12, 0, 0, 123987, tzinfo=timezone.utc)

        assert format_timestamp(dt) == "2025-01-15T12:00:00.123Z"

    def test_declaration_time_has_seconds(self) -> None:
        """Test second precision for declaration times."""
        dt = datetime(2024, 11, 15, 9, 0, 0, 500000, tzinfo=timezone.utc)

        assert format_declaration_time(dt) == "2024-11-15T09:00:00Z"

    def test_offsets_converted_to_utc(self) -> None:
        """Test that non-UTC datetimes are converted before formatting."""
        dt = datetime(2025, 1, 15, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        assert format_timestamp(dt) == "2025-01-15T12:00:00.000Z"

    def test_naive_taken_as_utc(self) -> None:
        """Test that naive datetimes are treated as UTC."""
        assert format_declaration_time(datetime(2025, 1, 1)) == "2025-01-01T00:00:00Z"

    def test_mixed_precision_compares_after_parsing(self) -> None:
        """Test that a decision later in the declared second orders after it once parsed."""
        declared = format_declaration_time(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))
        decided = format_timestamp(datetime(2025, 1, 15, 12, 0, 0, 500000, tzinfo=timezone.utc))

        assert decided < declared
        assert parse_timestamp(declared) < parse_timestamp(decided)


class TestParsing:
    """Tests for parse_timestamp."""

    @pytest.mark.parametrize(
        "value",
        [
            "2025-01-15T12:00:00Z",
            "2025-01-15T12:00:00.000Z",
            "2025-01-15T13:00:00+01:00",
            "2025-01-15T12:00:00.000+00:00",
        ],
    )
    def test_accepted_forms(self, value: str) -> None:
        """Test each accepted input form."""
        assert parse_timestamp(value) == datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

    def test_result_is_utc(self) -> None:
        """Test that parsed values carry the UTC zone."""
        assert parse_timestamp("2025-01-15T13:00:00+01:00").tzinfo == timezone.utc

    def test_rejects_garbage(self) -> None:
        """Test that unparseable strings raise ValueError."""
        with pytest.raises(ValueError, match="Could not parse timestamp"):
            parse_timestamp("yesterday")
