import tempfile
import unittest
from unittest import mock

from fastapi import HTTPException

from fratrank import dependencies
from fratrank.config import Settings
from fratrank.db import SqlEntityStore
from fratrank.ratelimit import InMemoryRateLimiter
from fratrank.storage import InMemoryStorageClient
from fratrank.store import InMemoryEntityStore, LocalEntityStore


class DependencyWiringTests(unittest.TestCase):
    def setUp(self):
        for name in ("_store", "_storage_client", "_rate_limiter", "_vote_lock"):
            patcher = mock.patch.object(dependencies, name, None)
            patcher.start()
            self.addCleanup(patcher.stop)

    def _settings(self, **values):
        patcher = mock.patch.object(
            dependencies, "get_settings", return_value=Settings(_env_file=None, **values)
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_defaults_to_in_memory_backends(self):
        self._settings()
        store = dependencies.get_store()
        self.assertIsInstance(store, InMemoryEntityStore)
        self.assertIs(dependencies.get_store(), store)
        self.assertIsInstance(dependencies.get_storage_client(), InMemoryStorageClient)
        self.assertIsInstance(dependencies.get_rate_limiter(), InMemoryRateLimiter)
        self.assertIs(dependencies.get_vote_lock(), dependencies.get_vote_lock())

    def test_database_url_selects_sql_store(self):
        self._settings(database_url="sqlite+pysqlite:///:memory:")
        self.assertIsInstance(dependencies.get_store(), SqlEntityStore)

    def test_local_store_with_demo_data(self):
        with tempfile.TemporaryDirectory() as tmp:
            self._settings(local_store_dir=tmp, seed_demo_data=True)
            store = dependencies.get_store()
            self.assertIsInstance(store, LocalEntityStore)
            self.assertEqual(len(store.list("fraternities")), 24)

    def test_user_header(self):
        self.assertEqual(dependencies.get_current_user_id(" u1 "), "u1")
        with self.assertRaises(HTTPException) as ctx:
            dependencies.get_current_user_id(None)
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertIsNone(dependencies.get_optional_user_id(""))


if __name__ == "__main__":
    unittest.main()
