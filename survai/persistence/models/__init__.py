"""Database models."""

from survai.persistence.models.click_track import ClickTrack
from survai.persistence.models.offer import Offer
from survai.persistence.models.survey import Question, Survey

__all__ = [
    "ClickTrack",
    "Offer",
    "Question",
    "Survey",
]
