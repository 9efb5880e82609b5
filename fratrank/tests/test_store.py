import json
import os
import tempfile
import threading
import unittest

from fratrank.errors import StorageQuotaExceeded
from fratrank.store import (
    DirectoryKeyValueBackend,
    InMemoryEntityStore,
    LocalEntityStore,
    MemoryKeyValueBackend,
    evict_oldest,
    parse_timestamp,
    sort_records,
    to_timestamp,
)


class SortRecordsTests(unittest.TestCase):
    def test_numbers_sort_numerically_and_missing_last(self):
        records = [{"v": 10}, {"v": None}, {"v": 9}, {"v": 100}]
        self.assertEqual([r["v"] for r in sort_records(records, "v")], [9, 10, 100, None])
        self.assertEqual([r["v"] for r in sort_records(records, "-v")], [100, 10, 9, None])

    def test_strings_compare_as_strings(self):
        records = [{"v": "b"}, {"v": "a"}, {}]
        self.assertEqual([r.get("v") for r in sort_records(records, "v")], ["a", "b", None])


class InMemoryEntityStoreTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryEntityStore()

    def test_create_assigns_id_and_timestamp(self):
        record = self.store.create("campuses", {"id": "mine", "name": "Duke"})
        self.assertNotEqual(record["id"], "mine")
        self.assertIsNotNone(parse_timestamp(record["created_at"]))
        self.assertEqual(self.store.get("campuses", record["id"])["name"], "Duke")

    def test_filter_ignores_none_values(self):
        self.store.create("parties", {"title": "A", "fraternity_id": "f1"})
        self.store.create("parties", {"title": "B", "fraternity_id": "f2"})
        self.assertEqual(len(self.store.filter("parties", {"fraternity_id": None})), 2)
        matched = self.store.filter("parties", {"fraternity_id": "f2"})
        self.assertEqual([p["title"] for p in matched], ["B"])

    def test_update_and_delete(self):
        record = self.store.create("campuses", {"name": "Duke"})
        updated = self.store.update("campuses", record["id"], {"name": "UNC", "id": "x"})
        self.assertEqual(updated["name"], "UNC")
        self.assertEqual(updated["id"], record["id"])
        self.assertIsNone(self.store.update("campuses", "missing", {"name": "x"}))
        self.assertTrue(self.store.delete("campuses", record["id"]))
        self.assertFalse(self.store.delete("campuses", record["id"]))

    def test_returned_records_are_copies(self):
        record = self.store.create("campuses", {"name": "Duke"})
        record["name"] = "changed"
        self.assertEqual(self.store.get("campuses", record["id"])["name"], "Duke")

    def test_unknown_entity(self):
        with self.assertRaises(ValueError):
            self.store.list("sororities")


class LocalEntityStoreTests(unittest.TestCase):
    def test_records_live_under_prefixed_keys(self):
        backend = MemoryKeyValueBackend()
        store = LocalEntityStore(backend)
        record = store.create("campuses", {"name": "Duke"})
        saved = json.loads(backend.items["fratrank_campuses"])
        self.assertEqual(saved[0]["id"], record["id"])

    def test_quota_evicts_oldest_half_and_retries(self):
        backend = MemoryKeyValueBackend(quota_bytes=2500)
        store = LocalEntityStore(backend)
        created = [
            store.create("chat_messages", {"user_id": "u", "text": "x" * 50})
            for _ in range(30)
        ]
        remaining = store.list("chat_messages")
        self.assertLess(len(remaining), 30)
        self.assertIn(created[-1]["id"], {r["id"] for r in remaining})
        self.assertLessEqual(
            len("fratrank_chat_messages") + len(backend.items["fratrank_chat_messages"]),
            2500,
        )

    def test_second_quota_failure_propagates(self):
        store = LocalEntityStore(MemoryKeyValueBackend(quota_bytes=10))
        with self.assertRaises(StorageQuotaExceeded):
            store.create("campuses", {"name": "Duke"})

    def test_directory_backend_persists(self):
        with tempfile.TemporaryDirectory() as tmp:
            store = LocalEntityStore(DirectoryKeyValueBackend(tmp))
            record = store.create("campuses", {"name": "Duke"})
            reopened = LocalEntityStore(DirectoryKeyValueBackend(tmp))
            self.assertEqual(reopened.get("campuses", record["id"])["name"], "Duke")
            reopened.clear()
            self.assertEqual(reopened.list("campuses"), [])

    def test_concurrent_writers_keep_valid_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            store = LocalEntityStore(DirectoryKeyValueBackend(tmp))

            def post_many(worker):
                for i in range(25):
                    store.create("chat_messages", {"user_id": f"u{worker}", "text": f"m{i}"})

            threads = [threading.Thread(target=post_many, args=(n,)) for n in range(8)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

            self.assertEqual(len(store.list("chat_messages")), 200)
            self.assertEqual([n for n in os.listdir(tmp) if n.endswith(".tmp")], [])

    def test_evict_oldest_keeps_newest_half(self):
        records = [
            {"id": str(i), "created_at": to_timestamp(parse_timestamp(f"2024-01-0{i}T00:00:00+00:00"))}
            for i in range(1, 7)
        ]
        kept = evict_oldest(records)
        self.assertEqual({r["id"] for r in kept}, {"4", "5", "6"})
        kept = evict_oldest(records, keep_id="1")
        self.assertIn("1", {r["id"] for r in kept})


if __name__ == "__main__":
    unittest.main()
