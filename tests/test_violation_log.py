"""
Tests for the violation logger and log stores
"""

import json
import pytest
from unittest.mock import Mock, patch

from examguard.proctor.log_store import (
    MemoryLogStore,
    RedisLogStore,
    create_log_store,
)
from examguard.proctor.violation_log import (
    ViolationLogger,
    ViolationKind,
    ViolationRecord,
    now_iso,
)


class TestViolationLogger:
    """Tests for ViolationLogger"""

    def test_record_appends_in_order(self, violations):
        violations.record(ViolationKind.NO_FACE, timestamp="2026-01-01T00:00:00.000Z")
        violations.record(ViolationKind.LOOKING_AWAY, timestamp="2026-01-01T00:00:01.000Z")

        kinds = [r.kind for r in violations.records]
        assert kinds == [ViolationKind.NO_FACE, ViolationKind.LOOKING_AWAY]
        assert len(violations) == 2

    def test_record_serialization(self, violations, store):
        violations.record(
            ViolationKind.NO_FACE,
            timestamp="2026-01-01T00:00:00.000Z",
            snapshot_provider=lambda: "data:image/jpeg;base64,AAAA"
        )

        assert json.loads(store.get("examLogs")) == [
            {"time": "2026-01-01T00:00:00.000Z", "type": "no_face", "image": "data:image/jpeg;base64,AAAA"}
        ]

    def test_default_timestamp(self, violations):
        record = violations.record(ViolationKind.NO_FACE)
        assert record.timestamp.endswith("Z")
        assert "T" in record.timestamp

    def test_missing_snapshot(self, violations):
        record = violations.record(ViolationKind.NO_FACE, snapshot_provider=lambda: None)
        assert record.snapshot is None

    def test_snapshot_failure_still_records(self, violations):
        def broken():
            raise RuntimeError("camera gone")

        record = violations.record(ViolationKind.NO_FACE, snapshot_provider=broken)

        assert record.snapshot is None
        assert len(violations) == 1

    def test_store_failure_keeps_memory_log(self, session):
        """A full store never blocks the append"""
        store = MemoryLogStore(max_bytes=10)
        logger_ = ViolationLogger(store, session_id=session.id)

        logger_.record(ViolationKind.NO_FACE)
        logger_.record(ViolationKind.LOOKING_AWAY)

        assert len(logger_) == 2
        assert store.get("examLogs") is None

    def test_raising_store_is_contained(self):
        store = Mock()
        store.put.side_effect = RuntimeError("disk full")
        logger_ = ViolationLogger(store)

        logger_.record(ViolationKind.MULTIPLE_FACES_TERMINATE)

        assert len(logger_) == 1
        store.put.assert_called_once()

    def test_each_append_writes_full_log(self):
        store = Mock()
        store.put.return_value = True
        logger_ = ViolationLogger(store, store_key="k")

        logger_.record(ViolationKind.NO_FACE, timestamp="t1")
        logger_.record(ViolationKind.NO_FACE, timestamp="t2")

        last_key, last_value = store.put.call_args[0]
        assert last_key == "k"
        assert len(json.loads(last_value)) == 2
        assert store.put.call_count == 2

    def test_records_are_immutable(self, violations):
        record = violations.record(ViolationKind.NO_FACE)
        with pytest.raises(Exception):
            record.kind = ViolationKind.LOOKING_AWAY

    def test_records_view_is_read_only(self, violations):
        violations.record(ViolationKind.NO_FACE)
        assert isinstance(violations.records, tuple)


class TestNowIso:
    def test_format(self):
        stamp = now_iso()
        assert stamp.endswith("Z")
        assert len(stamp) == len("2026-01-01T00:00:00.000Z")


class TestMemoryLogStore:
    """Tests for MemoryLogStore"""

    def test_put_get(self):
        store = MemoryLogStore()
        assert store.put("examLogs", "[]") == True
        assert store.get("examLogs") == "[]"

    def test_quota_exceeded(self):
        store = MemoryLogStore(max_bytes=20)
        assert store.put("a", "x" * 10) == True
        assert store.put("b", "x" * 10) == False
        assert store.get("b") is None

    def test_overwrite_counts_once(self):
        store = MemoryLogStore(max_bytes=20)
        assert store.put("a", "x" * 15) == True
        assert store.put("a", "y" * 15) == True


class TestRedisLogStore:
    """Tests for RedisLogStore with a mocked client"""

    def test_put_uses_set(self):
        client = Mock()
        with patch("examguard.proctor.log_store.redis.from_url", return_value=client):
            store = RedisLogStore("redis://example:6379/0")
            assert store.put("examLogs", "[]") == True

        client.set.assert_called_once_with("examLogs", "[]")

    def test_put_with_ttl(self):
        client = Mock()
        with patch("examguard.proctor.log_store.redis.from_url", return_value=client):
            store = RedisLogStore(ttl=60)
            store.put("examLogs", "[]")

        client.setex.assert_called_once_with("examLogs", 60, "[]")

    def test_connection_failure(self):
        client = Mock()
        client.ping.side_effect = ConnectionError("refused")
        with patch("examguard.proctor.log_store.redis.from_url", return_value=client):
            store = RedisLogStore()
            assert store.put("examLogs", "[]") == False
            assert store.get("examLogs") is None

    def test_failed_connect_backs_off(self):
        """An unreachable server is not pinged again on every write"""
        client = Mock()
        client.ping.side_effect = ConnectionError("refused")
        with patch("examguard.proctor.log_store.redis.from_url", return_value=client) as from_url:
            store = RedisLogStore(retry_interval=30.0)
            assert store.put("examLogs", "[1]") == False
            assert store.put("examLogs", "[1,2]") == False
            assert from_url.call_count == 1

            store._failed_at -= 31.0
            client.ping.side_effect = None
            assert store.put("examLogs", "[1,2,3]") == True
            assert from_url.call_count == 2

        client.set.assert_called_once_with("examLogs", "[1,2,3]")

    def test_write_failure(self):
        client = Mock()
        client.set.side_effect = RuntimeError("OOM command not allowed")
        with patch("examguard.proctor.log_store.redis.from_url", return_value=client):
            store = RedisLogStore()
            assert store.put("examLogs", "[]") == False


class TestCreateLogStore:
    def test_backends(self):
        assert isinstance(create_log_store("memory", "redis://x"), MemoryLogStore)
        assert isinstance(create_log_store("redis", "redis://x"), RedisLogStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_log_store("sqlite", "redis://x")
