"""Utilities for creating deterministic identifiers."""
from __future__ import annotations


def make_run_id(seed: int) -> str:
    """Run identifier derived from the seed alone; consumes no randomness."""
    return f"run_{seed & 0xFFFFFFFF:08x}"


def make_member_id(creature_id: str, slot: int) -> str:
    return f"{creature_id}_{slot + 1}"
