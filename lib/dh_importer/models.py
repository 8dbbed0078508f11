# dh_importer/models.py
"""
Structured records produced by the statblock parser.

A ParsedStatblock is built fresh for every parse and frozen before it is
handed to the caller. `to_dict()` gives the plain-dict shape expected by the
document-building side (camelCase keys, lowercase enum values).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class StatblockKind(Enum):
    ADVERSARY = "adversary"
    ENVIRONMENT = "environment"

    def __repr__(self) -> str:
        return str(self.name)


class FeatureType(Enum):
    PASSIVE = "passive"
    ACTION = "action"
    REACTION = "reaction"

    def __repr__(self) -> str:
        return str(self.name)

    @classmethod
    def from_text(cls, text: str) -> FeatureType:
        return cls(text.strip().lower())


class DamageType(Enum):
    PHYSICAL = "physical"
    MAGICAL = "magical"

    def __repr__(self) -> str:
        return str(self.name)

    @classmethod
    def from_tag(cls, tag: str) -> DamageType:
        """'phy' / 'physical' → PHYSICAL, 'mag' / 'magical' → MAGICAL."""
        if tag.strip().lower().startswith("phy"):
            return cls.PHYSICAL
        return cls.MAGICAL


@dataclass(frozen=True)
class AttackInfo:
    name: str
    range: str
    dice: str
    bonus: int = 0
    damage_type: DamageType = DamageType.PHYSICAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "range": self.range,
            "dice": self.dice,
            "bonus": self.bonus,
            "damageType": self.damage_type.value,
        }


@dataclass(frozen=True)
class Experience:
    name: str
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class Feature:
    name: str
    type: FeatureType
    value: Optional[str] = None
    description: str = ""

    @property
    def display_name(self) -> str:
        """'Relentless' with value '2' → 'Relentless (2)'."""
        if self.value:
            return f"{self.name} ({self.value})"
        return self.name

    def with_text(self, text: str) -> Feature:
        """Return a copy with *text* appended to the description."""
        if not self.description:
            return Feature(self.name, self.type, self.value, text)
        return Feature(self.name, self.type, self.value, f"{self.description} {text}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "type": self.type.value,
            "value": self.value or "",
            "description": self.description,
        }


@dataclass(frozen=True)
class HitPoints:
    minor: int = 0
    major: int = 0
    severe: int = 0

    @property
    def total(self) -> int:
        return self.minor + self.major + self.severe

    def to_dict(self) -> Dict[str, int]:
        return {"minor": self.minor, "major": self.major, "severe": self.severe}


@dataclass(frozen=True)
class ParsedStatblock:
    name: str
    kind: StatblockKind = StatblockKind.ADVERSARY
    tier: int = 1
    subtype: str = ""
    description: str = ""
    difficulty: int = 10
    attack: int = 0
    attack_info: Optional[AttackInfo] = None
    experience: str = ""
    experiences: tuple[Experience, ...] = ()
    motives_and_tactics: str = ""
    features: tuple[Feature, ...] = ()
    hit_points: HitPoints = field(default_factory=HitPoints)
    stress: int = 0
    # Reserved; nothing populates these yet.
    resistances: tuple[str, ...] = ()
    immunities: tuple[str, ...] = ()
    vulnerabilities: tuple[str, ...] = ()

    @property
    def is_environment(self) -> bool:
        return self.kind is StatblockKind.ENVIRONMENT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.kind.value,
            "tier": self.tier,
            "subtype": self.subtype,
            "description": self.description,
            "difficulty": self.difficulty,
            "attack": self.attack,
            "attackInfo": self.attack_info.to_dict() if self.attack_info else None,
            "experience": self.experience,
            "experiences": [e.to_dict() for e in self.experiences],
            "motivesAndTactics": self.motives_and_tactics,
            "features": [f.to_dict() for f in self.features],
            "hitPoints": self.hit_points.to_dict(),
            "stress": self.stress,
            "resistances": list(self.resistances),
            "immunities": list(self.immunities),
            "vulnerabilities": list(self.vulnerabilities),
        }
