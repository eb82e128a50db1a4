import unittest
from unittest import mock

from redis import exceptions as redis_exceptions

from backend.cache import InMemoryMessageCache, RedisMessageCache
from backend.db import MessageRecord


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class InMemoryMessageCacheTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = InMemoryMessageCache(ttl_seconds=60, recent_limit=3, clock=self.clock)
        self.messages = [MessageRecord(content="hi", recipient="alice", message_id="m1")]

    def test_entries_expire_after_ttl(self):
        self.cache.set("alice", self.messages)
        self.clock.now += 59
        self.assertEqual(self.cache.get("alice"), self.messages)
        self.clock.now += 1
        self.assertIsNone(self.cache.get("alice"))
        self.assertNotIn("alice", self.cache.entries)

    def test_evict_expired(self):
        self.cache.set("alice", self.messages)
        self.clock.now += 30
        self.cache.set("bob", [])
        self.clock.now += 40
        self.assertEqual(self.cache.evict_expired(), 1)
        self.assertEqual(list(self.cache.entries), ["bob"])

    def test_invalidate(self):
        self.cache.set("alice", self.messages)
        self.cache.invalidate("alice")
        self.cache.invalidate("never-cached")
        self.assertIsNone(self.cache.get("alice"))

    def test_recent_moves_repeat_to_front_and_caps(self):
        for name in ["a", "b", "c", "a", "d"]:
            self.cache.touch_recent("viewer", name)
        self.assertEqual(self.cache.recent("viewer"), ["d", "a", "c"])
        self.assertEqual(self.cache.recent("someone-else"), [])


class RedisMessageCacheTests(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch("backend.cache.redis.Redis.from_url")
        self.from_url = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = self.from_url.return_value
        self.cache = RedisMessageCache(
            url="redis://localhost:6379/0", prefix="test", ttl_seconds=60
        )

    def test_set_uses_ttl(self):
        self.cache.set("alice", [MessageRecord(content="hi", recipient="alice", message_id="m1")])
        key, ttl, payload = self.client.setex.call_args.args
        self.assertEqual(key, "test:messages:alice")
        self.assertEqual(ttl, 60)
        self.assertIn('"message_id": "m1"', payload)

    def test_get_decodes_messages(self):
        self.client.get.return_value = (
            b'[{"message_id": "m1", "content": "hi", "recipient": "alice", "timestamp": 5.0}]'
        )
        messages = self.cache.get("alice")
        self.assertEqual(messages[0].message_id, "m1")
        self.assertEqual(messages[0].timestamp, 5.0)

    def test_redis_errors_are_misses(self):
        self.client.get.side_effect = redis_exceptions.ConnectionError("down")
        self.client.lrange.side_effect = redis_exceptions.ConnectionError("down")
        with self.assertLogs("backend.cache", level="WARNING"):
            self.assertIsNone(self.cache.get("alice"))
            self.assertEqual(self.cache.recent("viewer"), [])

    def test_recent_decodes_list(self):
        self.client.lrange.return_value = [b"bob", b"alice"]
        self.assertEqual(self.cache.recent("viewer"), ["bob", "alice"])
        self.client.lrange.assert_called_with("test:recent:viewer", 0, 4)


if __name__ == "__main__":
    unittest.main()
