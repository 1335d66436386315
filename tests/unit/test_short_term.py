"""Unit tests for short-term session memory."""

import json

import pytest

from orbit_core.memory.short_term import ShortTermMemory
from orbit_core.models.memory import ShortTermItem


def item(item_id: str, content: str = "hi", **metadata) -> ShortTermItem:
    return ShortTermItem(id=item_id, content=content, metadata=metadata)


class TestShortTermMemory:
    """Tests for bounded per-session buckets."""

    def test_append_drops_oldest_past_cap(self):
        """A full bucket keeps only the newest max_items."""
        memory = ShortTermMemory(max_items=3)
        for i in range(5):
            memory.append("biz:s1", item(f"m{i}"))

        assert [i.id for i in memory.get("biz:s1")] == ["m2", "m3", "m4"]

    def test_sessions_are_isolated(self):
        """Buckets never share items."""
        memory = ShortTermMemory()
        memory.append(ShortTermMemory.session_key("biz", "s1"), item("a"))
        memory.append(ShortTermMemory.session_key("biz", "s2"), item("b"))

        assert [i.id for i in memory.get("biz:s1")] == ["a"]
        assert [i.id for i in memory.get("biz:s2")] == ["b"]
        assert memory.get("biz:s3") is None

    def test_get_returns_copy(self):
        """Mutating the returned list leaves the bucket intact."""
        memory = ShortTermMemory()
        memory.append("k", item("a"))
        memory.get("k").clear()

        assert len(memory.get("k")) == 1

    def test_remove_matches_id_or_metadata_id(self):
        """remove() checks both the item id and metadata["id"]."""
        memory = ShortTermMemory()
        memory.append("k1", item("a"))
        memory.append("k2", item("b", id="a"))
        memory.append("k2", item("c"))

        assert memory.remove("a") == 2
        assert [i.id for i in memory.get("k2")] == ["c"]
        assert memory.remove("a") == 0

    def test_serialize_is_json_without_ids(self):
        """serialize() renders content and metadata, oldest first."""
        memory = ShortTermMemory()
        memory.append("k", item("a", content="hello", channel="sms"))
        memory.append("k", item("b", content="world"))

        rendered = json.loads(memory.serialize("k"))

        assert [r["content"] for r in rendered] == ["hello", "world"]
        assert rendered[0]["metadata"] == {"channel": "sms"}
        assert "id" not in rendered[0]

    def test_invalid_size(self):
        """A bucket must hold at least one item."""
        with pytest.raises(ValueError):
            ShortTermMemory(max_items=0)
