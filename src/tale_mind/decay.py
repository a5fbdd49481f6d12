"""Memory decay. Memories that nobody touches fade into the archive."""

from __future__ import annotations

import time

from tale_mind.models import DAY, Memory

DEFAULT_WINDOW_DAYS = 30.0      # days of neglect for a full unit of decay
DEFAULT_ARCHIVE_FACTOR = 0.5

WEAK_IMPORTANCE = 3
WEAK_RESISTANCE = 2


def days_since_access(mem: Memory, now: float | None = None) -> float:
    if now is None:
        now = time.time()
    return (now - mem.last_touched) / DAY


def compute_decay(mem: Memory, now: float | None = None,
                  window_days: float = DEFAULT_WINDOW_DAYS) -> float:
    """Decay factor, floored at 0.

    Formula: days/window - resistance/10 - importance/10
    Important and resistant memories need much longer neglect to decay.
    """
    days = days_since_access(mem, now)
    factor = days / window_days - mem.decay_resistance / 10 - mem.importance / 10
    return max(0.0, factor)


def decay_reason(mem: Memory, now: float | None = None,
                 window_days: float = DEFAULT_WINDOW_DAYS,
                 archive_factor: float = DEFAULT_ARCHIVE_FACTOR) -> str | None:
    """Why ``mem`` should be archived, or None if it survives."""
    if mem.archived:
        return None
    if compute_decay(mem, now, window_days) <= archive_factor:
        return None
    if mem.importance <= WEAK_IMPORTANCE and mem.decay_resistance <= WEAK_RESISTANCE:
        return "natural decay"
    if mem.access_count == 0 and days_since_access(mem, now) > window_days:
        return f"no access for {window_days:g} days"
    return None


def apply_decay(memories: list[Memory], now: float | None = None,
                window_days: float = DEFAULT_WINDOW_DAYS,
                archive_factor: float = DEFAULT_ARCHIVE_FACTOR
                ) -> tuple[list[Memory], list[Memory]]:
    """Archive decayed memories in place.

    Returns:
        (kept, archived) - memories left untouched and memories archived now
    """
    if now is None:
        now = time.time()
    kept = []
    archived = []

    for mem in memories:
        reason = decay_reason(mem, now, window_days, archive_factor)
        if reason is None:
            kept.append(mem)
        else:
            mem.archive(reason)
            archived.append(mem)

    return kept, archived
