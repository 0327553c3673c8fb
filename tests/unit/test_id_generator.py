"""Tests for fm_common.id_generator and fm_common.datetime_utils."""

from datetime import timezone

import pytest

from src.fm_common.datetime_utils import utc_now, utc_today
from src.fm_common.id_generator import SnowflakeIdGenerator, new_load_id, new_offer_id


class TestSnowflakeIdGenerator:
    def test_prefixed_hex(self) -> None:
        result = SnowflakeIdGenerator(node_id=3).next_id("load")
        prefix, _, body = result.partition("_")
        assert prefix == "load"
        int(body, 16)

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(node_id=1)
        ids = {gen.next_id("offer") for _ in range(2000)}
        assert len(ids) == 2000

    def test_monotonically_increasing(self) -> None:
        gen = SnowflakeIdGenerator(node_id=1)
        prev = gen.next_int()
        for _ in range(100):
            current = gen.next_int()
            assert current > prev
            prev = current

    def test_node_id_encoded(self) -> None:
        value = SnowflakeIdGenerator(node_id=5).next_int()
        assert (value >> 12) & 0x3FF == 5

    def test_node_id_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(node_id=1024)

    def test_kind_helpers(self) -> None:
        assert new_load_id().startswith("load_")
        assert new_offer_id().startswith("offer_")


class TestUtcNow:
    def test_is_aware_utc(self) -> None:
        now = utc_now()
        assert now.tzinfo == timezone.utc

    def test_today_matches_now(self) -> None:
        assert utc_today() == utc_now().date()
