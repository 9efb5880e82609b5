import unittest

from fratrank.errors import DuplicateSubmissionError, NotFoundError, ValidationError
from fratrank.store import InMemoryEntityStore
from fratrank.votes import (
    VoteLock,
    adjust_counts,
    cast_vote,
    next_vote_value,
    votes_by_user,
)


class ToggleTests(unittest.TestCase):
    def test_next_vote_value(self):
        self.assertEqual(next_vote_value(None, 1), 1)
        self.assertIsNone(next_vote_value(1, 1))
        self.assertEqual(next_vote_value(1, -1), -1)
        with self.assertRaises(ValidationError):
            next_vote_value(None, 0)

    def test_adjust_counts(self):
        self.assertEqual(adjust_counts(3, 1, None, 1), (4, 1, 1))
        self.assertEqual(adjust_counts(3, 1, 1, 1), (2, 1, None))
        self.assertEqual(adjust_counts(3, 1, 1, -1), (2, 2, -1))


class CastVoteTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryEntityStore()
        self.lock = VoteLock()
        self.comment = self.store.create(
            "party_comments",
            {"party_id": "p1", "user_id": "author", "text": "hi", "upvotes": 0, "downvotes": 0},
        )

    def _vote(self, user_id, direction, kind="party_comment", target_id=None):
        return cast_vote(
            self.store, self.lock, kind, target_id or self.comment["id"], user_id, direction
        )

    def test_toggle_off_and_on_restores_counts(self):
        first = self._vote("u1", 1)
        self.assertEqual((first.upvotes, first.downvotes, first.value), (1, 0, 1))
        off = self._vote("u1", 1)
        self.assertEqual((off.upvotes, off.downvotes, off.value), (0, 0, None))
        on = self._vote("u1", 1)
        self.assertEqual((on.upvotes, on.downvotes), (first.upvotes, first.downvotes))

    def test_flip_and_counts_written_back(self):
        self._vote("u1", 1)
        self._vote("u2", 1)
        result = self._vote("u1", -1)
        self.assertEqual((result.upvotes, result.downvotes), (1, 1))
        self.assertEqual(result.previous, 1)
        stored = self.store.get("party_comments", self.comment["id"])
        self.assertEqual((stored["upvotes"], stored["downvotes"]), (1, 1))
        self.assertEqual(len(self.store.list("party_comment_votes")), 2)

    def test_counts_recomputed_from_rows(self):
        self.store.update("party_comments", self.comment["id"], {"upvotes": 40})
        result = self._vote("u1", -1)
        self.assertEqual((result.upvotes, result.downvotes), (0, 1))

    def test_in_flight_vote_rejected(self):
        key = ("u1", "party_comment", self.comment["id"])
        with self.lock.hold(key):
            with self.assertRaises(DuplicateSubmissionError):
                self._vote("u1", 1)
        self.assertFalse(self.lock.is_held(key))
        self.assertEqual(self._vote("u1", 1).upvotes, 1)

    def test_missing_or_deleted_target(self):
        with self.assertRaises(NotFoundError):
            self._vote("u1", 1, target_id="missing")
        message = self.store.create(
            "chat_messages", {"user_id": "a", "text": "gone", "deleted_at": "2024-01-01"}
        )
        with self.assertRaises(NotFoundError):
            self._vote("u1", 1, kind="chat_message", target_id=message["id"])
        with self.assertRaises(NotFoundError):
            self._vote("u1", 1, kind="sorority")

    def test_photo_votes_use_likes(self):
        photo = self.store.create(
            "party_photos", {"party_id": "p1", "user_id": "a", "url": "u", "likes": 0, "dislikes": 0}
        )
        self._vote("u1", -1, kind="party_photo", target_id=photo["id"])
        stored = self.store.get("party_photos", photo["id"])
        self.assertEqual((stored["likes"], stored["dislikes"]), (0, 1))

    def test_votes_by_user(self):
        self._vote("u1", -1)
        self.assertEqual(votes_by_user(self.store, "party_comment", "u1"), {self.comment["id"]: -1})
        self.assertEqual(votes_by_user(self.store, "party_comment", "u2"), {})


if __name__ == "__main__":
    unittest.main()
