import unittest

import pydantic

from fratrank.errors import NotFoundError, RateLimitedError, ValidationError
from fratrank.ratelimit import InMemoryRateLimiter
from fratrank.reports import create_report
from fratrank.schemas import ReportCreate
from fratrank.store import InMemoryEntityStore


class ReportTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryEntityStore()
        self.limiter = InMemoryRateLimiter()
        self.message = self.store.create("chat_messages", {"user_id": "a", "text": "rude"})

    def _report(self, content_id=None, content_type="chat_message", reporter="u1"):
        return create_report(
            self.store,
            self.limiter,
            reporter,
            content_type,
            content_id or self.message["id"],
            "harassment",
            "targets a named person",
        )

    def test_repeat_report_returns_existing(self):
        report, created = self._report()
        self.assertTrue(created)
        self.assertEqual(report["status"], "pending")
        again, created = self._report()
        self.assertFalse(created)
        self.assertEqual(again["id"], report["id"])
        other, created = self._report(reporter="u2")
        self.assertTrue(created)

    def test_content_must_exist(self):
        with self.assertRaises(NotFoundError):
            self._report(content_id="missing")
        with self.assertRaises(ValidationError):
            self._report(content_type="user")

    def test_payload_validation(self):
        with self.assertRaises(pydantic.ValidationError):
            ReportCreate(content_type="user", content_id="x", reason="spam")
        with self.assertRaises(pydantic.ValidationError):
            ReportCreate(content_type="party", content_id="x", reason="x" * 51)
        report = ReportCreate(content_type="party", content_id="x", reason=" spam  bot ")
        self.assertEqual(report.reason, "spam bot")

    def test_rate_limited(self):
        for i in range(5):
            message = self.store.create("chat_messages", {"user_id": "a", "text": f"m{i}"})
            self._report(content_id=message["id"])
        with self.assertRaises(RateLimitedError):
            self._report()


if __name__ == "__main__":
    unittest.main()
