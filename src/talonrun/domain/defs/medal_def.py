"""Cosmetic run medal definitions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

MedalType = Literal["badge", "border", "title"]
MedalRequirementKind = Literal["complete_run", "reach_stage", "score", "boss_kill", "flawless"]


@dataclass(frozen=True, slots=True)
class MedalDef:
    id: str
    name: str
    description: str
    type: MedalType
    requirement_kind: MedalRequirementKind
    requirement_value: int
