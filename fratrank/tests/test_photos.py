import unittest

from fratrank.errors import NotFoundError, ValidationError
from fratrank.photos import (
    add_photo,
    list_photos,
    party_cover,
    request_upload,
    select_cover_photo,
)
from fratrank.storage import InMemoryStorageClient, validate_upload
from fratrank.store import InMemoryEntityStore


class UploadTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryEntityStore()
        self.storage = InMemoryStorageClient()
        self.party = self.store.create("parties", {"title": "Spring Fling"})

    def test_upload_url_for_allowed_type(self):
        upload = request_upload(self.store, self.storage, self.party["id"], "image/png", 1024)
        self.assertTrue(upload["storage_path"].startswith(f"party-photos/{self.party['id']}/"))
        self.assertTrue(upload["storage_path"].endswith(".png"))
        self.assertIn(upload["storage_path"], upload["upload_url"])
        self.assertIn("type=image/png", upload["upload_url"])

    def test_rejects_bad_type_and_size(self):
        with self.assertRaises(ValidationError):
            validate_upload("application/pdf", 10)
        with self.assertRaises(ValidationError):
            validate_upload("image/gif", 6 * 1024 * 1024)
        self.assertEqual(validate_upload("image/jpeg", 9 * 1024 * 1024).extension, "jpg")
        with self.assertRaises(NotFoundError):
            request_upload(self.store, self.storage, "missing", "image/png", 1)


class PhotoTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryEntityStore()
        self.storage = InMemoryStorageClient()
        self.party = self.store.create("parties", {"title": "Spring Fling"})
        self.path = f"party-photos/{self.party['id']}/abc.jpg"

    def _add(self, **kwargs):
        kwargs.setdefault("consent_verified", True)
        return add_photo(
            self.store, self.storage, self.party["id"], "u1", kwargs.pop("path", self.path), **kwargs
        )

    def test_requires_consent_and_matching_path(self):
        with self.assertRaises(ValidationError):
            self._add(consent_verified=False)
        with self.assertRaises(ValidationError):
            self._add(path="party-photos/other/abc.jpg")

    def test_pending_unless_auto_approved(self):
        self.assertEqual(self._add()["moderation_status"], "pending")
        photo = self._add(auto_approve=True)
        self.assertEqual(photo["moderation_status"], "approved")
        self.assertEqual(photo["url"], self.storage.public_url(self.path))

    def test_gallery_excludes_rejected(self):
        kept = self._add()
        rejected = self._add()
        self.store.update("party_photos", rejected["id"], {"moderation_status": "rejected"})
        self.assertEqual([p["id"] for p in list_photos(self.store, self.party["id"])], [kept["id"]])

    def test_cover_selection(self):
        photos = [
            {"id": "a", "likes": 5, "dislikes": 1, "created_at": "2024-10-01"},
            {"id": "b", "likes": 4, "dislikes": 0, "created_at": "2024-10-02"},
            {"id": "c", "likes": 9, "dislikes": 0, "created_at": "2024-10-03", "moderation_status": "rejected"},
        ]
        self.assertEqual(select_cover_photo(photos)["id"], "b")
        self.assertIsNone(select_cover_photo([]))

    def test_creator_cover_wins(self):
        self.assertIsNone(party_cover(self.store, self.party["id"]))
        photo = self._add()
        self.assertEqual(party_cover(self.store, self.party["id"]), photo["url"])
        self.store.update("parties", self.party["id"], {"display_photo_url": "https://cdn/x.jpg"})
        self.assertEqual(party_cover(self.store, self.party["id"]), "https://cdn/x.jpg")


if __name__ == "__main__":
    unittest.main()
