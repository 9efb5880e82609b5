import math
import unittest
from datetime import datetime, timedelta, timezone

from fratrank.scoring import (
    CampusBaseline,
    FraternityActivity,
    campus_baseline,
    combined_reputation,
    compute_fraternity_scores,
    confidence,
    hot_score,
    party_quality,
    shrink,
    sort_by_stored_overall,
    sort_fraternities,
    stored_overall_score,
    tier_for_rank,
)
from fratrank.store import to_timestamp

NOW = datetime(2024, 10, 5, 20, 0, tzinfo=timezone.utc)


def _rep_rating(score, days_ago=0):
    return {
        "combined_score": score,
        "brotherhood_score": score,
        "reputation_score": score,
        "community_score": score,
        "created_at": to_timestamp(NOW - timedelta(days=days_ago)),
    }


class ScoreFormulaTests(unittest.TestCase):
    def test_combined_reputation_weights_and_clamp(self):
        self.assertAlmostEqual(combined_reputation(10, 0, 0), 3.0)
        self.assertAlmostEqual(combined_reputation(0, 10, 0), 6.0)
        self.assertAlmostEqual(combined_reputation(0, 0, 10), 1.0)
        self.assertEqual(combined_reputation(20, 20, 20), 10.0)
        self.assertEqual(combined_reputation(-5, -5, -5), 0.0)

    def test_party_quality_weights(self):
        self.assertAlmostEqual(party_quality(10, 0, 0), 5.0)
        self.assertAlmostEqual(party_quality(8, 8, 8), 8.0)

    def test_stored_scores_default_to_five(self):
        self.assertAlmostEqual(stored_overall_score({}), 5.0)
        frat = {"reputation_score": 10, "historical_party_score": 0}
        self.assertAlmostEqual(stored_overall_score(frat), 7.0)

    def test_sort_by_stored_overall_tie_breaks(self):
        a = {"chapter": "B", "reputation_score": 6, "historical_party_score": 6}
        b = {"chapter": "A", "reputation_score": 6, "historical_party_score": 6}
        c = {"chapter": "C", "reputation_score": 9, "historical_party_score": 1}
        ordered = sort_by_stored_overall([a, b, c])
        self.assertEqual([f["chapter"] for f in ordered], ["C", "A", "B"])

    def test_shrink_pulls_toward_prior(self):
        self.assertAlmostEqual(shrink([], 5.0, 5.0), 5.0)
        self.assertAlmostEqual(shrink([(10.0, 1.0)] * 5, 5.0, 5.0), 7.5)

    def test_confidence(self):
        self.assertEqual(confidence(0, 0), 0.0)
        self.assertAlmostEqual(confidence(25, 40), 1 - math.exp(-1))

    def test_campus_baseline_defaults(self):
        baseline = campus_baseline([], [])
        self.assertEqual(baseline.rep_avg, 5.0)
        self.assertEqual(baseline.party_avg, 5.0)
        baseline = campus_baseline(
            [{"reputation_score": 8}, {"reputation_score": 6}],
            [{"party_quality_score": 4}],
        )
        self.assertAlmostEqual(baseline.rep_avg, 7.0)
        self.assertAlmostEqual(baseline.party_avg, 4.0)


class FraternityScoreTests(unittest.TestCase):
    def test_no_activity_uses_baseline(self):
        scores = compute_fraternity_scores(FraternityActivity(), CampusBaseline(), NOW)
        self.assertAlmostEqual(scores.overall, 5.0)
        self.assertFalse(scores.has_overall_data)
        self.assertEqual(scores.trending, 0.0)
        self.assertEqual(scores.activity_trending, 0.0)
        self.assertEqual(scores.semester_party_score, 0.0)

    def test_recent_ratings_trend_above_baseline(self):
        activity = FraternityActivity(
            reputation_ratings=[_rep_rating(9.0) for _ in range(5)]
        )
        scores = compute_fraternity_scores(activity, CampusBaseline(), NOW)
        self.assertAlmostEqual(scores.trending, 4.0)
        self.assertTrue(scores.has_rep_data)
        self.assertFalse(scores.has_party_score_data)
        self.assertAlmostEqual(scores.rep_adj, 7.0)
        self.assertAlmostEqual(scores.avg_brotherhood, 9.0)
        self.assertAlmostEqual(scores.activity_trending, 5.0)

    def test_trending_compares_against_older_ratings(self):
        activity = FraternityActivity(
            reputation_ratings=[_rep_rating(8.0, days_ago=1), _rep_rating(4.0, days_ago=30)]
        )
        scores = compute_fraternity_scores(activity, CampusBaseline(), NOW)
        self.assertAlmostEqual(scores.trending, (8.0 - 4.0) * (1 / 5))

    def test_sorts_by_category(self):
        high_rep = ({"name": "A"}, compute_fraternity_scores(
            FraternityActivity(reputation_ratings=[_rep_rating(10.0)] * 10),
            CampusBaseline(),
            NOW,
        ))
        high_party = ({"name": "B"}, compute_fraternity_scores(
            FraternityActivity(
                party_ratings=[{"party_quality_score": 10.0, "created_at": to_timestamp(NOW)}] * 10
            ),
            CampusBaseline(),
            NOW,
        ))
        entries = [high_party, high_rep]
        self.assertEqual(sort_fraternities(entries, "reputation")[0][0]["name"], "A")
        self.assertEqual(sort_fraternities(entries, "party")[0][0]["name"], "B")
        self.assertEqual(sort_fraternities(entries, "overall")[0][0]["name"], "A")
        with self.assertRaises(ValueError):
            sort_fraternities(entries, "bogus")


class TierAndFeedTests(unittest.TestCase):
    def test_tiers(self):
        self.assertEqual(tier_for_rank(1, 10), "Upper Touse")
        self.assertEqual(tier_for_rank(10, 10), "The Pit")
        self.assertEqual(tier_for_rank(1, 1), "Upper Touse")
        self.assertEqual(tier_for_rank(6, 11), "Lower Mouse")

    def test_hot_score(self):
        self.assertEqual(hot_score(0, 0, 0), 0.0)
        self.assertAlmostEqual(hot_score(4, 0, 2), 0.5)
        self.assertGreater(hot_score(1, 2, 1), hot_score(1, 0, 1))
        self.assertGreater(hot_score(5, 0, 1), hot_score(5, 0, 10))


if __name__ == "__main__":
    unittest.main()
