"""
Quality scoring and arbitration between competing extractions.

When several fetch attempts for the same article succeed, the one with the
most complete extraction wins. The score is recomputed on demand and never
stored.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from .types import ArticleRecord
from ..utils.logging import log_event

BYLINE_BONUS = 100
PUBLISHED_TIME_BONUS = 100
IMAGE_BONUS = 50


@dataclass(frozen=True)
class Candidate:
    """One successful extraction, tagged with where it came from.

    Attributes:
        record: The extracted article
        strategy: Identity used for the fetch ("browser", "crawler", ...)
        attempt: 1-based attempt number within the escalation run
    """
    record: ArticleRecord
    strategy: str
    attempt: int

    @property
    def score(self) -> int:
        return quality_score(self.record)


def quality_score(record: ArticleRecord) -> int:
    """Score an article: text length plus bonuses for byline, date and image."""
    score = len(record.text_content)
    if record.byline:
        score += BYLINE_BONUS
    if record.published_time:
        score += PUBLISHED_TIME_BONUS
    if record.image:
        score += IMAGE_BONUS
    return score


def rank(candidates: list[Candidate]) -> list[Candidate]:
    """Order candidates best-first; ties keep attempt order."""
    ordered = sorted(candidates, key=lambda c: c.attempt)
    return sorted(ordered, key=lambda c: c.score, reverse=True)


def pick(candidates: list[Candidate], logger: logging.Logger | None = None) -> Candidate:
    """Return the highest-scoring candidate and log the runner-ups.

    Raises:
        ValueError: If candidates is empty
    """
    if not candidates:
        raise ValueError("pick() needs at least one candidate")
    ranked = rank(candidates)
    winner = ranked[0]
    log_event(
        logger,
        "Selected best quality result",
        event="arbitration",
        winner=winner.strategy,
        winner_attempt=winner.attempt,
        winner_quality=winner.score,
        alternatives=[
            {"strategy": c.strategy, "attempt": c.attempt, "quality": c.score}
            for c in ranked[1:]
        ],
    )
    return winner
