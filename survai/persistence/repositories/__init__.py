"""Repositories."""

from survai.persistence.repositories.click_track_repository import ClickAggregate, ClickTrackRepository
from survai.persistence.repositories.offer_repository import OfferRepository
from survai.persistence.repositories.question_repository import QuestionRepository

__all__ = [
    "ClickAggregate",
    "ClickTrackRepository",
    "OfferRepository",
    "QuestionRepository",
]
