"""Boon offering generation, stacking and effect aggregation."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Sequence, Tuple

from talonrun.core.types import BoonRarity
from talonrun.domain.defs import BoonDef
from talonrun.domain.entities import Combatant

# Rarity weights before the fortune bias; they need not sum to 1.
BOON_WEIGHT_COMMON = 0.60
BOON_WEIGHT_RARE = 0.30
BOON_WEIGHT_LEGENDARY = 0.10
MIN_COMMON_WEIGHT = 0.1
FORTUNE_BOOST_PER_STACK = 0.15
# Consecutive all-Common offerings after which the next offering is pity-boosted.
BOON_PITY_THRESHOLD = 2
PITY_RARE_CHANCE = 0.85
OFFERING_SIZE = 3

Draw = Callable[[], float]


@dataclass(frozen=True, slots=True)
class ActiveBoon:
    boon_id: str
    stacks: int


@dataclass(frozen=True, slots=True)
class BoonOffering:
    boons: Tuple[BoonDef, BoonDef, BoonDef]
    was_guaranteed_rare: bool = False

    @property
    def is_all_common(self) -> bool:
        return all(boon.rarity == "Common" for boon in self.boons)

    def contains(self, boon_id: str) -> bool:
        return any(boon.id == boon_id for boon in self.boons)


@dataclass(frozen=True, slots=True)
class PoisonDot:
    damage: int
    turns: int


@dataclass(frozen=True, slots=True)
class BoonEffects:
    """Every active boon folded into one additive modifier bundle."""

    total_atk_boost: int = 0
    total_hp_boost: int = 0
    crit_threshold_reduction: int = 0
    lifesteal_fraction: float = 0.0
    thorns_fraction: float = 0.0
    coin_multiplier: float = 0.0
    bonus_attack_chance: float = 0.0
    damage_reduction: int = 0
    poison_dot: PoisonDot | None = None
    stage_start_heal: int = 0
    execute_threshold: float = 0.0
    execute_bonus_damage: int = 0
    rarity_boost: float = 0.0


def get_boon(catalog: Sequence[BoonDef], boon_id: str) -> BoonDef | None:
    for boon in catalog:
        if boon.id == boon_id:
            return boon
    return None


def get_active_stacks(active_boons: Sequence[ActiveBoon], boon_id: str) -> int:
    for active in active_boons:
        if active.boon_id == boon_id:
            return active.stacks
    return 0


def count_fortune_stacks(active_boons: Sequence[ActiveBoon], catalog: Sequence[BoonDef]) -> int:
    """Stacks of every boon whose effect biases future offerings."""
    total = 0
    for boon in catalog:
        if boon.effect == "fortune_favor":
            total += min(boon.max_stacks, get_active_stacks(active_boons, boon.id))
    return total


def rarity_weights(fortune_stacks: int) -> Dict[BoonRarity, float]:
    """Rarity weights after the fortune bias; higher stacks never lower Rare/Legendary."""
    boost = max(0, fortune_stacks) * FORTUNE_BOOST_PER_STACK
    return {
        "Common": max(MIN_COMMON_WEIGHT, BOON_WEIGHT_COMMON - boost),
        "Rare": BOON_WEIGHT_RARE + boost * 0.7,
        "Legendary": BOON_WEIGHT_LEGENDARY + boost * 0.3,
    }


def pick_rarity(draw: Draw, weights: Dict[BoonRarity, float]) -> BoonRarity:
    total = weights["Common"] + weights["Rare"] + weights["Legendary"]
    roll = draw() * total
    if roll < weights["Common"]:
        return "Common"
    if roll < weights["Common"] + weights["Rare"]:
        return "Rare"
    return "Legendary"


def generate_boon_offering(
    draw: Draw,
    active_boons: Sequence[ActiveBoon],
    consecutive_all_common_offerings: int,
    fortune_stacks: int,
    *,
    catalog: Sequence[BoonDef],
) -> BoonOffering:
    """
    Draw three distinct boons weighted by rarity.

    Randomness comes from ``draw`` only, so the caller can count consumed draws.
    Boons at their stack cap are excluded unless fewer than three remain.
    """
    if len(catalog) < OFFERING_SIZE:
        raise ValueError(f"Boon catalog needs at least {OFFERING_SIZE} entries.")

    weights = rarity_weights(fortune_stacks)
    pity_active = consecutive_all_common_offerings >= BOON_PITY_THRESHOLD

    eligible = [boon for boon in catalog if get_active_stacks(active_boons, boon.id) < boon.max_stacks]
    pool = eligible if len(eligible) >= OFFERING_SIZE else list(catalog)

    selected: List[BoonDef] = []
    used_ids: set[str] = set()
    for slot in range(OFFERING_SIZE):
        rarity = pick_rarity(draw, weights)
        if slot == 0 and pity_active and rarity == "Common":
            rarity = "Rare" if draw() < PITY_RARE_CHANCE else "Legendary"

        candidates = [boon for boon in pool if boon.rarity == rarity and boon.id not in used_ids]
        if not candidates:
            candidates = [boon for boon in pool if boon.id not in used_ids]
        if not candidates:
            candidates = [boon for boon in catalog if boon.id not in used_ids]

        pick = candidates[int(draw() * len(candidates))]
        selected.append(pick)
        used_ids.add(pick.id)

    was_guaranteed_rare = pity_active and any(boon.rarity != "Common" for boon in selected)
    return BoonOffering(boons=(selected[0], selected[1], selected[2]), was_guaranteed_rare=was_guaranteed_rare)


def apply_boon(active_boons: List[ActiveBoon], boon_id: str, catalog: Sequence[BoonDef]) -> List[ActiveBoon]:
    """
    Add one stack of ``boon_id``.

    Returns the very same list object when nothing changed (unknown id or the
    boon is already capped), otherwise a new list.
    """
    boon = get_boon(catalog, boon_id)
    if boon is None:
        return active_boons

    current = get_active_stacks(active_boons, boon_id)
    if current >= boon.max_stacks:
        return active_boons
    if current == 0:
        return [*active_boons, ActiveBoon(boon_id=boon_id, stacks=1)]
    return [
        ActiveBoon(boon_id=active.boon_id, stacks=active.stacks + 1) if active.boon_id == boon_id else active
        for active in active_boons
    ]


def calculate_boon_effects(active_boons: Sequence[ActiveBoon], catalog: Sequence[BoonDef]) -> BoonEffects:
    """Fold active boons in catalog declaration order; stacks are clamped to the cap."""
    atk = hp = crit = reduction = heal = execute_bonus = 0
    lifesteal = thorns = coins = bonus_attack = rarity = execute_threshold = 0.0
    poison: PoisonDot | None = None

    for boon in catalog:
        stacks = min(boon.max_stacks, get_active_stacks(active_boons, boon.id))
        if stacks <= 0:
            continue
        p = boon.params
        if boon.effect == "atk_boost":
            atk += p.atk_boost * stacks
        elif boon.effect == "hp_boost":
            hp += p.hp_boost * stacks
        elif boon.effect == "crit_chance":
            crit += p.crit_threshold_reduction * stacks
        elif boon.effect == "lifesteal":
            lifesteal += p.lifesteal_fraction * stacks
        elif boon.effect == "thorns":
            thorns += p.thorns_fraction * stacks
        elif boon.effect == "scavenger":
            coins += p.coin_multiplier * stacks
        elif boon.effect == "swift_paws":
            bonus_attack += p.bonus_attack_chance * stacks
        elif boon.effect == "iron_fur":
            reduction += p.damage_reduction * stacks
        elif boon.effect == "poison_claws":
            if p.dot_damage and p.dot_turns:
                poison = PoisonDot(damage=p.dot_damage * stacks, turns=p.dot_turns)
        elif boon.effect == "rally_cry":
            heal += p.heal_amount * stacks
        elif boon.effect == "executioner":
            execute_threshold = p.execute_threshold
            execute_bonus += p.execute_bonus_damage * stacks
        elif boon.effect == "fortune_favor":
            rarity += p.rarity_boost * stacks

    return BoonEffects(
        total_atk_boost=atk,
        total_hp_boost=hp,
        crit_threshold_reduction=crit,
        lifesteal_fraction=lifesteal,
        thorns_fraction=thorns,
        coin_multiplier=coins,
        bonus_attack_chance=bonus_attack,
        damage_reduction=reduction,
        poison_dot=poison,
        stage_start_heal=heal,
        execute_threshold=execute_threshold,
        execute_bonus_damage=execute_bonus,
        rarity_boost=rarity,
    )


def apply_boon_stats_to_squad(squad: Sequence[Combatant], effects: BoonEffects) -> List[Combatant]:
    """
    Recompute max HP and attack of living members from their base stats.

    Always derived from ``base_*`` so re-applying the same effects is a no-op.
    Current HP is only clamped to the new ceiling, never raised.
    """
    updated: List[Combatant] = []
    for member in squad:
        if not member.is_alive:
            updated.append(replace(member))
            continue
        max_hp = member.base_max_hp + effects.total_hp_boost
        updated.append(
            replace(
                member,
                max_hp=max_hp,
                current_attack=member.base_attack + effects.total_atk_boost,
                current_hp=min(max_hp, member.current_hp),
            )
        )
    return updated
