"""tale-mind: evolving personalities and episodic memory for story characters."""

from __future__ import annotations

import sys

from loguru import logger

from tale_mind.catalog import MemoryCatalog
from tale_mind.character import Character
from tale_mind.config import Settings, get_settings
from tale_mind.dna import CharacterDNA
from tale_mind.engine import MemoryEngine
from tale_mind.errors import NotFoundError, StoreError, TaleMindError, ValidationError
from tale_mind.facade import CharacterDevelopment
from tale_mind.models import (
    ImportanceTier,
    InfluenceContext,
    Memory,
    MemoryAnalysis,
    MemoryKind,
    MergedText,
    TraitChangeResult,
    TraitKind,
)
from tale_mind.storage import InMemoryStore, MemoryStore, SQLiteStore
from tale_mind.traits import Trait, TraitEngine, TraitSet

__version__ = "0.1.0"
__all__ = [
    "CharacterDevelopment", "Character", "CharacterDNA",
    "Trait", "TraitSet", "TraitEngine", "TraitKind", "TraitChangeResult",
    "InfluenceContext", "Memory", "MemoryKind", "ImportanceTier", "MemoryAnalysis",
    "MergedText", "MemoryEngine", "MemoryCatalog",
    "MemoryStore", "InMemoryStore", "SQLiteStore",
    "Settings", "get_settings", "configure_logging",
    "TaleMindError", "ValidationError", "NotFoundError", "StoreError",
]


def configure_logging(level: str | None = None) -> None:
    """Replace loguru's default sink with one at ``level`` (default: settings)."""
    logger.remove()
    logger.add(sys.stderr, level=(level or get_settings().log_level).upper())
