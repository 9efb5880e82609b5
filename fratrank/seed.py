"""
Demo data for offline mode: Duke University, its fraternities and a handful
of parties around today.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import Optional

from fratrank.store import EntityStore, to_timestamp, utc_now

logger = logging.getLogger(__name__)

DEMO_CAMPUS = {
    "name": "Duke University",
    "domain": "duke.edu",
    "active": True,
    "location": "Durham, NC",
}

# (name, chapter, description, founded_year)
DEMO_FRATERNITIES = (
    ("Kappa Alpha Psi", "ΚΑΨ", "Achievement in every field of human endeavor", 1911),
    ("Sigma Chi", "ΣΧ", "Brotherhood of lifelong friends", 1855),
    ("Alpha Epsilon Pi", "ΑΕΠ", "Developing leadership for the Jewish community", 1913),
    ("Sigma Alpha Epsilon", "ΣΑΕ", "True Gentlemen", 1856),
    ("Pi Kappa Phi", "ΠΚΦ", "Building better men through service", 1904),
    ("Omega Psi Phi", "ΩΨΦ", "Manhood, scholarship, perseverance, and uplift", 1911),
    ("Sigma Nu", "ΣΝ", "Love, honor, and truth", 1869),
    ("Pi Kappa Alpha", "ΠΚΑ", "Once a Pike, always a Pike", 1868),
    ("Alpha Tau Omega", "ΑΤΩ", "Building better men", 1865),
    ("Kappa Alpha Order", "ΚΑ", "Dieu et les Dames", 1865),
    ("Lambda Phi Epsilon", "ΛΦΕ", "Authentic leaders of the world", 1981),
    ("Psi Upsilon", "ΨΥ", "Union of hearts and hands", 1833),
    ("Lambda Upsilon Lambda", "ΛΥΛ", "Latino unity and academic excellence", 1982),
    ("Delta Sigma Phi", "ΔΣΦ", "Better men, better lives", 1899),
    ("Chi Psi", "ΧΨ", "Gentleman, scholar, jolly good fellow", 1841),
    ("Alpha Delta Phi", "ΑΔΦ", "Mind, heart, character", 1832),
    ("Sigma Pi", "ΣΠ", "Promote fellowship and scholarship", 1897),
    ("Phi Delta Theta", "ΦΔΘ", "Becoming the greatest version of ourselves", 1848),
    ("Sigma Phi Epsilon", "ΣΦΕ", "Building balanced men", 1901),
    ("Delta Tau Delta", "ΔΤΔ", "Committed to lives of excellence", 1858),
    ("Delta Sigma Iota", "ΔΣΙ", "Serving the South Asian community", 1998),
    ("Phi Beta Sigma", "ΦΒΣ", "Culture for service and service for humanity", 1914),
    ("Alpha Phi Alpha", "ΑΦΑ", "First and finest", 1906),
    ("Delta Kappa Epsilon", "ΔΚΕ", "Friends from the heart forever", 1844),
)

DEMO_PARTY_TITLES = (
    "Margaritaville",
    "Casino Night",
    "Neon Nights",
    "Beach Bash",
    "Winter Formal",
    "Spring Fling",
    "Halloween Havoc",
    "Tailgate Throwdown",
)
DEMO_THEMES = ("casual", "formal", "themed", "mixer")
PARTY_LENGTH = timedelta(hours=5)


def _party_offset_days(index: int) -> int:
    # First three parties are in the past, the rest upcoming.
    return -7 - index * 3 if index < 3 else index * 2


def seed_demo_data(
    store: EntityStore,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> bool:
    """Populate an empty store. Returns False when fraternities already exist."""
    if store.list("fraternities"):
        return False
    now = now or utc_now()
    rng = rng or random.Random()

    campus = store.create("campuses", dict(DEMO_CAMPUS))
    fraternities = []
    for name, chapter, description, founded_year in DEMO_FRATERNITIES:
        reputation = 5 + rng.random() * 3
        party_score = 5 + rng.random() * 3
        fraternity = {
            "campus_id": campus["id"],
            "name": name,
            "chapter": chapter,
            "description": description,
            "founded_year": founded_year,
            "logo_url": "",
            "base_score": 5 + rng.random() * 3,
            "reputation_score": reputation,
            "historical_party_score": party_score,
            "momentum": (rng.random() - 0.5) * 2,
            "display_score": 0.7 * reputation + 0.3 * party_score,
            "status": "active",
        }
        fraternities.append(store.create("fraternities", fraternity))

    for index, title in enumerate(DEMO_PARTY_TITLES):
        fraternity = fraternities[index % len(fraternities)]
        offset = _party_offset_days(index)
        starts = now + timedelta(days=offset)
        theme = DEMO_THEMES[index % len(DEMO_THEMES)]
        store.create(
            "parties",
            {
                "fraternity_id": fraternity["id"],
                "title": title,
                "starts_at": to_timestamp(starts),
                "ends_at": to_timestamp(starts + PARTY_LENGTH),
                "venue": f"{fraternity['name']} House",
                "theme": theme,
                "access_type": "open",
                "tags": ["social", theme],
                "display_photo_url": "",
                "performance_score": 6 + rng.random() * 3 if offset < 0 else 0,
                "quantifiable_score": 6 + rng.random() * 3 if offset < 0 else 0,
                "unquantifiable_score": 5,
                "total_ratings": 0,
                "status": "completed" if offset < 0 else "upcoming",
            },
        )
    logger.info(
        "Seeded %d fraternities and %d parties",
        len(fraternities),
        len(DEMO_PARTY_TITLES),
    )
    return True
