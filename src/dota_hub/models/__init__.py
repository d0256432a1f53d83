"""Pydantic v2 models for raw source records, games and series.

Re-exports all model classes for convenient import::

    from dota_hub.models import CanonicalGame, Series, OpenDotaMatchModel
"""

from .game import CanonicalGame
from .raw import DbMatchModel, OpenDotaMatchModel, ScrapedMatchModel
from .series import Series

__all__ = [
    "CanonicalGame",
    "Series",
    "OpenDotaMatchModel",
    "ScrapedMatchModel",
    "DbMatchModel",
]
