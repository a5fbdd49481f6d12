#!/usr/bin/env python3
"""
tale-mind demo: a character lives through a few stories.

No LLM needed. No API keys. Just run it.
"""

import os
import random
import tempfile

from tale_mind import (
    CharacterDevelopment,
    CharacterDNA,
    Settings,
    SQLiteStore,
    TraitKind,
    configure_logging,
)
from tale_mind.models import DAY


class Clock:
    """Simulated time, so weeks pass in milliseconds."""

    def __init__(self):
        self.now = 1_700_000_000.0

    def __call__(self):
        return self.now

    def advance(self, days):
        self.now += days * DAY


def header(text):
    print(f"\n{'='*64}")
    print(f"  {text}")
    print(f"{'='*64}\n")


def show_traits(character):
    for trait in character.traits:
        bar = "█" * trait.value + "░" * (10 - trait.value)
        print(f"    {bar} {trait.value:2d} | {trait.kind.label}")
    print()


def show_memories(store, character, label=""):
    memories = [m for m in store.load_by_character(character.id) if m.is_active]
    memories.sort(key=lambda m: m.importance, reverse=True)
    if label:
        print(f"  [{label}] {len(memories)} active memories:")
    for m in memories:
        bar = "█" * m.importance + "░" * (10 - m.importance)
        merged = f" ← merged from {len(m.source_ids)}" if m.source_ids else ""
        print(f"    {bar} {m.importance:2d} | {m.title[:50]}{merged}")
    print()


def main():
    configure_logging("WARNING")
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    clock = Clock()
    store = SQLiteStore(db_path)
    dev = CharacterDevelopment(store, Settings(), clock=clock)

    header("TALE-MIND: A character grows up")

    dna = CharacterDNA.random(random.Random(7), archetype="explorer")
    pip = dev.create_character("Pip", "family-1", dna)
    print(f"  {pip.display_info()}")
    print(f"  DNA: {dna.summary()}\n")
    show_traits(pip)

    # ── Story 1 ────────────────────────────────────────────────────────

    header("STORY 1: The lighthouse")

    results = dev.apply_story_experience(
        pip, "lighthouse", 60,
        new_words=["beacon", "horizon"],
        trait_influences={TraitKind.COURAGE: 1.0, TraitKind.CURIOSITY: 0.5},
        learning_moments=["light travels far"],
        genre="adventure",
    )
    for r in results:
        if r.value_changed:
            print(f"  {r.message}")
    dev.record_story_memory(pip, "Pip climbed the old lighthouse and lit the beacon", 7,
                            story_id="lighthouse", tags=["lighthouse", "night", "sea"],
                            emotions=["proud"])

    # ── Story 2 ────────────────────────────────────────────────────────

    header("STORY 2: Back to the lighthouse")

    clock.advance(2)
    dev.apply_story_experience(pip, "lighthouse-2", 40,
                               trait_influences={TraitKind.COURAGE: 0.8})
    merged = dev.record_story_memory(
        pip, "Pip climbed the old lighthouse and lit the beacon", 6,
        story_id="lighthouse-2", tags=["lighthouse", "night", "sea"])
    print(f"  Recorded: {merged}")
    print("  (a near-duplicate, so it merged with the first visit)\n")

    dev.record_story_memory(pip, "Pip found a shiny pebble on the beach", 2,
                            story_id="pebble", tags=["beach"])
    show_memories(store, pip, "After two stories")

    # ── A month later ──────────────────────────────────────────────────

    header("A MONTH LATER: Decay")

    clock.advance(40)
    for m in dev.process_decay(pip):
        print(f"  Faded: {m.title} ({m.archive_reason})")
    print()
    show_memories(store, pip, "What Pip still remembers")

    # ── Next story ─────────────────────────────────────────────────────

    header("NEXT STORY: Prompt context")

    print(dev.prompt_context(pip, "a stormy night at sea"))
    print()
    show_traits(pip)

    # ── Adoption ───────────────────────────────────────────────────────

    header("ADOPTION: Pip visits another family")

    twin = dev.adopt(pip, "family-2")
    print(f"  {twin.display_info()} (adopted from {twin.original_id})")
    show_memories(store, twin, "Faded memories Pip brings along")

    dev.close()
    os.unlink(db_path)


if __name__ == "__main__":
    main()
