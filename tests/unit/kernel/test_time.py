"""
Unit tests for time helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from chatgraph.kernel.time import epoch_seconds_to_iso, epoch_seconds_to_ms, isoformat_z

pytestmark = pytest.mark.unit


class TestTimeHelpers:
    def test_isoformat_z_converts_offsets(self):
        value = datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))

        assert isoformat_z(value) == "2024-01-01T00:00:00Z"

    def test_epoch_seconds_to_iso(self):
        assert epoch_seconds_to_iso(1_699_000_000) == "2023-11-03T08:26:40Z"
        assert epoch_seconds_to_iso(None) is None

    def test_out_of_range_values_yield_none(self):
        assert epoch_seconds_to_iso(1_700_000_000_000) is None
        assert epoch_seconds_to_iso(float("inf")) is None
        assert epoch_seconds_to_ms(float("inf")) is None
        assert epoch_seconds_to_ms(float("nan")) is None

    def test_epoch_seconds_to_ms(self):
        assert epoch_seconds_to_ms(1.5) == 1500
        assert epoch_seconds_to_ms(None) is None
