import unittest
from unittest import mock

from redis import exceptions as redis_exceptions

from fratrank.errors import RateLimitedError
from fratrank.ratelimit import InMemoryRateLimiter, RedisRateLimiter, enforce_rate_limit


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now


class InMemoryRateLimiterTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.limiter = InMemoryRateLimiter(clock=self.clock)

    def test_limit_reached_then_window_slides(self):
        for _ in range(10):
            enforce_rate_limit(self.limiter, "u1", "comment")
            self.limiter.record("u1", "comment")
        with self.assertRaises(RateLimitedError) as ctx:
            enforce_rate_limit(self.limiter, "u1", "comment")
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertIn("10 comments per hour", ctx.exception.detail)

        self.assertTrue(self.limiter.check("u2", "comment"))
        self.assertTrue(self.limiter.check("u1", "post"))

        self.clock.now += 3601
        self.assertTrue(self.limiter.check("u1", "comment"))

    def test_check_does_not_record(self):
        for _ in range(20):
            self.assertTrue(self.limiter.check("u1", "post"))

    def test_reset(self):
        for _ in range(5):
            self.limiter.record("u1", "post")
        self.assertFalse(self.limiter.check("u1", "post"))
        self.limiter.reset()
        self.assertTrue(self.limiter.check("u1", "post"))


class RedisRateLimiterTests(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch("fratrank.ratelimit.redis.Redis.from_url")
        self.from_url = patcher.start()
        self.addCleanup(patcher.stop)
        self.client = self.from_url.return_value
        self.limiter = RedisRateLimiter(
            url="redis://localhost:6379/0", key_prefix="test", clock=FakeClock()
        )

    def test_check_counts_sorted_set(self):
        self.client.zcard.return_value = 5
        self.assertFalse(self.limiter.check("u1", "post"))
        self.client.zremrangebyscore.assert_called_once_with(
            "test:post:u1", 0, 1_000_000.0 - 3600
        )
        self.client.zcard.return_value = 4
        self.assertTrue(self.limiter.check("u1", "post"))

    def test_record_adds_member_with_expiry(self):
        self.limiter.record("u1", "vote")
        key, mapping = self.client.zadd.call_args[0]
        self.assertEqual(key, "test:vote:u1")
        self.assertEqual(list(mapping.values()), [1_000_000.0])
        self.client.expire.assert_called_once_with("test:vote:u1", 3600)

    def test_fails_open_and_reconnects(self):
        self.client.zremrangebyscore.side_effect = redis_exceptions.ConnectionError("down")
        with self.assertLogs("fratrank.ratelimit", level="WARNING"):
            self.assertTrue(self.limiter.check("u1", "report"))
        self.assertEqual(self.from_url.call_count, 2)


if __name__ == "__main__":
    unittest.main()
