# dh_importer/feature_actions.py
"""
Heuristics that read a feature's description for action mechanics.

The document builder turns these hints into system-specific action data;
nothing here knows about that schema. Every field falls back to an empty or
neutral value when the text gives no signal.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from dh_importer.models import DamageType, Feature, FeatureType


@dataclass(frozen=True)
class DamageRoll:
    count: int
    size: int
    bonus: int = 0
    damage_type: DamageType = DamageType.PHYSICAL

    @property
    def notation(self) -> str:
        base = f"{self.count}d{self.size}"
        if self.bonus:
            return f"{base}{self.bonus:+d}"
        return base


@dataclass
class ActionDetails:
    costs: list[str] = field(default_factory=list)
    uses: Optional[int] = None
    recovery: Optional[str] = None
    save_trait: Optional[str] = None
    range: str = "melee"
    all_targets: bool = False
    damage: list[DamageRoll] = field(default_factory=list)
    action_kind: str = ""


# ── Range ───────────────────────────────────────────────────────────

# Longest phrases first so "very close" is not read as "close".
_RANGE_BANDS = (
    ("very close", "very_close"),
    ("very far", "very_far"),
    ("close", "close"),
    ("far", "far"),
    ("melee", "melee"),
)


def map_range(text: str) -> str:
    """'Very Close' → 'very_close'. Unknown wording maps to 'melee'."""
    lowered = text.lower()
    for phrase, band in _RANGE_BANDS:
        if phrase in lowered:
            return band
    return "melee"


def _feature_range(description: str) -> str:
    if re.search(r'\bself\b', description):
        return "self"
    if "melee" in description:
        return "melee"
    m = re.search(r'within (very close|very far|close|far) range', description)
    if m:
        return map_range(m.group(1))
    return "melee"


# ── Costs / uses ────────────────────────────────────────────────────

# Fear and Stress are alternatives; a feature pays one or the other.
_PRIMARY_COSTS = (
    ("fear", ("spend a fear", "spend fear")),
    ("stress", ("mark a stress", "mark stress")),
)
_EXTRA_COSTS = (
    ("hope", ("mark hope", "spend hope", "spend a hope")),
    ("armor", ("mark an armor slot", "mark armor")),
    ("hit_points", ("mark a hp", "mark an hp", "mark hp")),
)


def _costs(description: str) -> list[str]:
    costs = []
    for key, phrases in _PRIMARY_COSTS:
        if any(p in description for p in phrases):
            costs.append(key)
            break
    for key, phrases in _EXTRA_COSTS:
        if any(p in description for p in phrases):
            costs.append(key)
    return costs


_USES_RE = re.compile(
    r'(\d+)\s*(?:time|use)s?\s*per\s*(scene|session|short\s*rest|long\s*rest)'
)


def _uses(description: str) -> tuple[Optional[int], Optional[str]]:
    m = _USES_RE.search(description)
    if not m:
        return None, None
    recovery = re.sub(r'\s+', '_', m.group(2))
    return int(m.group(1)), recovery


# ── Saves / damage ──────────────────────────────────────────────────

_TRAITS = ("agility", "strength", "finesse", "instinct", "presence", "knowledge")


def _save_trait(description: str) -> Optional[str]:
    for trait in _TRAITS:
        if f"{trait} reaction roll" in description or f"{trait} save" in description:
            return trait
    return None


_DAMAGE_RE = re.compile(r'(\d+)d(\d+)(?:\s*([+-])\s*(\d+))?\s+(physical|magical|phy|mag)\b')


def parse_damage(description: str) -> list[DamageRoll]:
    """Every 'XdY[+Z] physical|magical' roll in *description*, in order."""
    rolls = []
    for m in _DAMAGE_RE.finditer(description.lower()):
        bonus = int(m.group(4)) if m.group(4) else 0
        if m.group(3) == "-":
            bonus = -bonus
        rolls.append(DamageRoll(
            count=int(m.group(1)),
            size=int(m.group(2)),
            bonus=bonus,
            damage_type=DamageType.from_tag(m.group(5)),
        ))
    return rolls


def _action_kind(feature: Feature, description: str, name: str) -> str:
    if "heal" in description or "heal" in name:
        return "healing"
    if "summon" in description or "summon" in name:
        return "summon"
    if feature.type is FeatureType.REACTION and "damage" in description:
        return "damage"
    if "make an attack" in description or "attack against" in description or "damage" in description:
        return "attack"
    return ""


# ── Entry point ─────────────────────────────────────────────────────

def analyze_feature(feature: Feature) -> ActionDetails:
    description = feature.description.lower()
    name = feature.name.lower()
    uses, recovery = _uses(description)
    return ActionDetails(
        costs=_costs(description),
        uses=uses,
        recovery=recovery,
        save_trait=_save_trait(description),
        range=_feature_range(description),
        all_targets="all creatures" in description or "all targets" in description,
        damage=parse_damage(description),
        action_kind=_action_kind(feature, description, name),
    )
