"""
Score arithmetic for fraternities, parties and feed posts.

Every 0-10 score is clamped. Fraternity scores blend a reputation part and a
party part, each shrunk toward the campus average until enough ratings exist.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from fratrank.store import Record, parse_timestamp, utc_now

DEFAULT_SCORE = 5.0

# brotherhood, reputation, community
REPUTATION_WEIGHTS = (0.30, 0.60, 0.10)
# vibe, music, execution
PARTY_QUALITY_WEIGHTS = (0.50, 0.30, 0.20)

OVERALL_REP_WEIGHT = 0.65
OVERALL_PARTY_WEIGHT = 0.35
STORED_REP_WEIGHT = 0.7
STORED_PARTY_WEIGHT = 0.3

REP_PRIOR_WEIGHT = 5.0
PARTY_PRIOR_WEIGHT = 8.0
REP_CONFIDENCE_SCALE = 25.0
PARTY_CONFIDENCE_SCALE = 40.0

TRENDING_WINDOW_DAYS = 14
TRENDING_FULL_SAMPLE = 5
ACTIVITY_DECAY_DAYS = 7.0
ACTIVITY_PARTY_WINDOW_DAYS = 7
ACTIVITY_WEIGHTS = {
    "reputation_rating": 1.0,
    "party_rating": 1.0,
    "party_comment": 0.5,
    "fraternity_comment": 0.5,
    "party": 2.0,
}

TIERS = (
    "Upper Touse",
    "Touse",
    "Lower Touse",
    "Upper Mouse",
    "Mouse",
    "Lower Mouse",
    "Upper Bouse",
    "Bouse",
    "Lower Bouse",
    "The Pit",
)


def clamp(value: float, low: float = 0.0, high: float = 10.0) -> float:
    return min(max(value, low), high)


def combined_reputation(brotherhood: float, reputation: float, community: float) -> float:
    wb, wr, wc = REPUTATION_WEIGHTS
    return clamp(wb * brotherhood + wr * reputation + wc * community)


def party_quality(vibe: float, music: float, execution: float) -> float:
    wv, wm, we = PARTY_QUALITY_WEIGHTS
    return clamp(wv * vibe + wm * music + we * execution)


def _or_default(value: Optional[float], default: float = DEFAULT_SCORE) -> float:
    return default if value is None else float(value)


def stored_reputation_score(fraternity: Record) -> float:
    return _or_default(fraternity.get("reputation_score"))


def stored_party_score(fraternity: Record) -> float:
    return _or_default(fraternity.get("historical_party_score"))


def stored_overall_score(fraternity: Record) -> float:
    overall = (
        STORED_REP_WEIGHT * stored_reputation_score(fraternity)
        + STORED_PARTY_WEIGHT * stored_party_score(fraternity)
    )
    return clamp(overall)


def sort_by_stored_overall(fraternities: Iterable[Record]) -> list[Record]:
    return sorted(
        fraternities,
        key=lambda f: (
            -stored_overall_score(f),
            -stored_party_score(f),
            f.get("chapter") or "",
        ),
    )


@dataclass(frozen=True)
class CampusBaseline:
    rep_avg: float = DEFAULT_SCORE
    party_avg: float = DEFAULT_SCORE

    @property
    def overall(self) -> float:
        return OVERALL_REP_WEIGHT * self.rep_avg + OVERALL_PARTY_WEIGHT * self.party_avg


def _mean(values: list[float], default: float = DEFAULT_SCORE) -> float:
    return sum(values) / len(values) if values else default


def campus_baseline(
    fraternities: Iterable[Record], party_ratings: Iterable[Record]
) -> CampusBaseline:
    rep = [stored_reputation_score(f) for f in fraternities]
    party = [
        float(r["party_quality_score"])
        for r in party_ratings
        if r.get("party_quality_score") is not None
    ]
    return CampusBaseline(rep_avg=_mean(rep), party_avg=_mean(party))


def _weight(rating: Record) -> float:
    weight = rating.get("weight")
    return 1.0 if weight is None else float(weight)


def shrink(
    scored: list[tuple[float, float]], prior_mean: float, prior_weight: float
) -> float:
    """Weighted mean of (score, weight) pairs pulled toward ``prior_mean``."""
    total_weight = sum(w for _, w in scored) + prior_weight
    if total_weight <= 0:
        return clamp(prior_mean)
    total = sum(s * w for s, w in scored) + prior_mean * prior_weight
    return clamp(total / total_weight)


def confidence(num_rep_ratings: int, num_party_ratings: int) -> float:
    rep_part = 1 - math.exp(-num_rep_ratings / REP_CONFIDENCE_SCALE)
    party_part = 1 - math.exp(-num_party_ratings / PARTY_CONFIDENCE_SCALE)
    return OVERALL_REP_WEIGHT * rep_part + OVERALL_PARTY_WEIGHT * party_part


def _age_days(timestamp: Optional[str], now: datetime) -> Optional[float]:
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return None
    return (now - parsed).total_seconds() / 86400


@dataclass
class FraternityActivity:
    """Everything about one fraternity the score computation reads."""

    reputation_ratings: list[Record] = field(default_factory=list)
    party_ratings: list[Record] = field(default_factory=list)
    parties: list[Record] = field(default_factory=list)
    party_comments: list[Record] = field(default_factory=list)
    fraternity_comments: list[Record] = field(default_factory=list)


@dataclass(frozen=True)
class FraternityScores:
    overall: float
    rep_adj: float
    party_adj: float
    semester_party_score: float
    avg_brotherhood: float
    avg_reputation: float
    avg_community: float
    confidence_overall: float
    trending: float
    activity_trending: float
    num_rep_ratings: int
    num_party_ratings: int
    has_rep_data: bool
    has_party_score_data: bool
    has_overall_data: bool

    def as_dict(self) -> dict:
        return asdict(self)


def _rating_scores(activity: FraternityActivity) -> list[tuple[Optional[str], float]]:
    scored = [
        (r.get("created_at"), float(r["combined_score"]))
        for r in activity.reputation_ratings
        if r.get("combined_score") is not None
    ]
    scored += [
        (r.get("created_at"), float(r["party_quality_score"]))
        for r in activity.party_ratings
        if r.get("party_quality_score") is not None
    ]
    return scored


def trending_score(
    activity: FraternityActivity, baseline: CampusBaseline, now: datetime
) -> float:
    recent: list[float] = []
    older: list[float] = []
    for created_at, score in _rating_scores(activity):
        age = _age_days(created_at, now)
        if age is not None and age <= TRENDING_WINDOW_DAYS:
            recent.append(score)
        else:
            older.append(score)
    if not recent:
        return 0.0
    reference = _mean(older) if older else baseline.overall
    sample_factor = min(1.0, len(recent) / TRENDING_FULL_SAMPLE)
    return (_mean(recent) - reference) * sample_factor


def activity_trending(activity: FraternityActivity, now: datetime) -> float:
    def decayed(records: list[Record], weight: float) -> float:
        total = 0.0
        for record in records:
            age = _age_days(record.get("created_at"), now)
            if age is None:
                continue
            total += weight * math.exp(-max(age, 0.0) / ACTIVITY_DECAY_DAYS)
        return total

    score = decayed(activity.reputation_ratings, ACTIVITY_WEIGHTS["reputation_rating"])
    score += decayed(activity.party_ratings, ACTIVITY_WEIGHTS["party_rating"])
    score += decayed(activity.party_comments, ACTIVITY_WEIGHTS["party_comment"])
    score += decayed(
        activity.fraternity_comments, ACTIVITY_WEIGHTS["fraternity_comment"]
    )
    for party in activity.parties:
        age = _age_days(party.get("starts_at"), now)
        if age is not None and abs(age) <= ACTIVITY_PARTY_WINDOW_DAYS:
            score += ACTIVITY_WEIGHTS["party"] * math.exp(-abs(age) / ACTIVITY_DECAY_DAYS)
    return score


def _avg_field(records: list[Record], key: str) -> float:
    values = [float(r[key]) for r in records if r.get(key) is not None]
    return _mean(values, default=0.0)


def compute_fraternity_scores(
    activity: FraternityActivity,
    baseline: CampusBaseline,
    now: Optional[datetime] = None,
) -> FraternityScores:
    now = now or utc_now()
    rep_scored = [
        (float(r["combined_score"]), _weight(r))
        for r in activity.reputation_ratings
        if r.get("combined_score") is not None
    ]
    party_scored = [
        (float(r["party_quality_score"]), _weight(r))
        for r in activity.party_ratings
        if r.get("party_quality_score") is not None
    ]
    rep_adj = shrink(rep_scored, baseline.rep_avg, REP_PRIOR_WEIGHT)
    party_adj = shrink(party_scored, baseline.party_avg, PARTY_PRIOR_WEIGHT)
    overall = clamp(OVERALL_REP_WEIGHT * rep_adj + OVERALL_PARTY_WEIGHT * party_adj)
    num_rep = len(rep_scored)
    num_party = len(party_scored)
    return FraternityScores(
        overall=overall,
        rep_adj=rep_adj,
        party_adj=party_adj,
        semester_party_score=_mean([s for s, _ in party_scored], default=0.0),
        avg_brotherhood=_avg_field(activity.reputation_ratings, "brotherhood_score"),
        avg_reputation=_avg_field(activity.reputation_ratings, "reputation_score"),
        avg_community=_avg_field(activity.reputation_ratings, "community_score"),
        confidence_overall=confidence(num_rep, num_party),
        trending=trending_score(activity, baseline, now),
        activity_trending=activity_trending(activity, now),
        num_rep_ratings=num_rep,
        num_party_ratings=num_party,
        has_rep_data=num_rep > 0,
        has_party_score_data=num_party > 0,
        has_overall_data=num_rep + num_party > 0,
    )


ScoredFraternity = tuple[Record, FraternityScores]


def _name(entry: ScoredFraternity) -> str:
    return entry[0].get("name") or ""


SORT_KEYS = {
    "overall": lambda e: (-e[1].overall, -e[1].party_adj, _name(e)),
    "reputation": lambda e: (-e[1].rep_adj, -e[1].overall, _name(e)),
    "party": lambda e: (-e[1].party_adj, -e[1].overall, _name(e)),
    "trending": lambda e: (-e[1].activity_trending, -e[1].overall, _name(e)),
}


def sort_fraternities(
    entries: Iterable[ScoredFraternity], category: str = "overall"
) -> list[ScoredFraternity]:
    if category not in SORT_KEYS:
        raise ValueError(f"Unknown leaderboard category: {category}")
    return sorted(entries, key=SORT_KEYS[category])


def tier_for_rank(rank: int, total: int) -> str:
    percentile = (rank - 1) / max(total - 1, 1)
    index = min(int(percentile * 10), len(TIERS) - 1)
    return TIERS[index]


def net_score(upvotes: Optional[int], downvotes: Optional[int]) -> int:
    return (upvotes or 0) - (downvotes or 0)


def hot_score(net: int, reply_count: int, age_hours: float) -> float:
    return (net + reply_count * 2) / math.pow(max(age_hours, 0.0) + 2, 1.5)
