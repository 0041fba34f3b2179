"""Tests for utils/formatting.py."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from modsync.models.filters import ModLoader
from modsync.utils.formatting import (
    format_duration,
    format_size,
    pad_width,
    parse_loaders,
    parse_timestamp,
)


class TestParseTimestamp:
    @pytest.mark.parametrize(
        "value, microsecond",
        [
            ("2024-01-03T12:00:00Z", 0),
            ("2024-01-03T12:00:00.653Z", 653000),
            ("2024-01-03T12:00:00.12345Z", 123450),
            ("2024-01-03T12:00:00.1234567Z", 123456),
            ("2024-01-03T12:00:00.5+00:00", 500000),
        ],
    )
    def test_any_fraction_length(self, value, microsecond):
        parsed = parse_timestamp(value)
        assert parsed == datetime(2024, 1, 3, 12, 0, 0, microsecond, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_unparseable(self, value):
        assert parse_timestamp(value) is None


def test_format_size():
    assert format_size(0) == "0 B"
    assert format_size(1536) == "1.5 KB"


def test_format_duration():
    assert format_duration(0) == "0s"
    assert format_duration(3725) == "1h 2m 5s"


def test_pad_width_is_clamped():
    assert pad_width([]) == 20
    assert pad_width(["short"]) == 20
    assert pad_width(["x" * 30]) == 30
    assert pad_width(["x" * 80]) == 50


def test_parse_loaders_ignores_unknown_names():
    assert parse_loaders(["Fabric", "bukkit", "quilt", "fabric"]) == [
        ModLoader.FABRIC,
        ModLoader.QUILT,
    ]
