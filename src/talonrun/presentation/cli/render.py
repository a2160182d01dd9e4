"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
from typing import Iterable, Sequence

from talonrun.domain.boons import BoonOffering
from talonrun.domain.entities import Combatant
from talonrun.domain.run_state import StageResult
from talonrun.domain.scoring import Score

DEBUG_ENV_VAR = "TALONRUN_DEBUG"

_SCORE_LABELS = {
    "stage_score": "Stages",
    "speed_bonus": "Speed bonus",
    "hp_remaining_score": "HP remaining",
    "boss_kill_score": "Boss kills",
    "all_cats_alive_bonus": "Full squad",
    "boon_efficiency_score": "Boons",
    "flawless_stage_score": "Flawless stages",
}


def debug_enabled() -> bool:
    """Return True only when TALONRUN_DEBUG is explicitly set to '1'."""
    return os.getenv(DEBUG_ENV_VAR) == "1"


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def render_bullet_lines(lines: Iterable[str]) -> None:
    for line in lines:
        print(f"- {line}")


def format_squad_line(squad: Sequence[Combatant]) -> str:
    parts = []
    for member in squad:
        status = "KO" if not member.is_alive else f"{member.current_hp}/{member.max_hp}"
        parts.append(f"{member.name} {status}")
    return " | ".join(parts)


def format_stage_line(result: StageResult, victory: bool) -> str:
    outcome = "cleared" if victory else "lost"
    tags = []
    if result.boss_defeated:
        tags.append("boss")
    if result.flawless:
        tags.append("flawless")
    suffix = f" [{', '.join(tags)}]" if tags else ""
    return f"Stage {result.stage_index:>2} {outcome} vs {result.enemy_name} in {result.turns_elapsed} turns{suffix}"


def format_offering(offering: BoonOffering) -> str:
    return ", ".join(f"{boon.name} ({boon.rarity})" for boon in offering.boons)


def format_score_lines(score: Score) -> list[str]:
    """Breakdown lines that always reconcile to the total."""
    width = max(len(label) for label in _SCORE_LABELS.values())
    lines = [f"{_SCORE_LABELS[name]:<{width}}  {value:>6}" for name, value in score.components().items()]
    lines.append(f"{'Total':<{width}}  {score.total_score:>6}")
    lines.append(f"{'Coins earned':<{width}}  {score.coins_earned:>6}")
    return lines


def render_score(score: Score) -> None:
    render_heading("Score")
    for line in format_score_lines(score):
        print(line)
