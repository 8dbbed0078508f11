# dh_importer/extractors.py
"""
Stateless line matchers used by the statblock state machine.

Every matcher takes one trimmed line and returns a small result object, or
None when the line does not have the expected shape. Nothing here raises on
bad input and nothing here touches parser state; the caller decides what to
do with a match.

Where a field has more than one accepted shape, the shapes are listed as an
ordered tuple of (name, matcher) strategies and tried first to last.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from dh_importer.models import AttackInfo, DamageType, Experience, FeatureType


# ── Result types ────────────────────────────────────────────────────

@dataclass(frozen=True)
class StatMatch:
    """A recognized header field: `field` names the record attribute.

    `value` is None only for a header-only "Motives & Tactics:" line, whose
    content is expected on the following line.
    """
    field: str
    value: Any
    strategy: str = ""


@dataclass(frozen=True)
class FeatureHeader:
    name: str
    type: FeatureType
    value: Optional[str] = None
    strategy: str = ""


@dataclass(frozen=True)
class TierType:
    tier: int
    subtype: str
    is_environment: bool
    name: Optional[str] = None


@dataclass(frozen=True)
class HpStressMatch:
    minor: Optional[int] = None
    major: Optional[int] = None
    severe: Optional[int] = None
    stress: Optional[int] = None


# ── Section markers ─────────────────────────────────────────────────

_EXPERIENCE_SECTION_RE = re.compile(r'^Experience:\s*$', re.IGNORECASE)
_MOTIVES_HEADER_RE = re.compile(r'^Motives\s*&\s*Tactics:', re.IGNORECASE)
_MOTIVES_EMPTY_RE = re.compile(r'^Motives\s*&\s*Tactics:\s*$', re.IGNORECASE)
_FIELD_HEADER_RE = re.compile(
    r'^(Difficulty|Attack|Experience|Motives\s*&\s*Tactics):', re.IGNORECASE
)
_HP_LABEL_RE = re.compile(r'^(minor|major|severe)', re.IGNORECASE)
# Anchored: "Mark a Stress ... mark an additional HP" is feature text.
_HP_STRESS_HEADER_RE = re.compile(r'^(HP\W*(and\W*)?STRESS|STRESS\W*(and\W*)?HP)\b', re.IGNORECASE)
_HP_COUNT_RE = re.compile(r'^\d+\s+HP', re.IGNORECASE)


def is_features_marker(line: str) -> bool:
    """'FEATURES' anywhere in the line, with no colon."""
    return "FEATURES" in line.upper() and ":" not in line


def is_hp_stress_marker(line: str) -> bool:
    """'HP & STRESS' style header: HP, STRESS and an ampersand."""
    upper = line.upper()
    return "HP" in upper and "STRESS" in upper and "&" in line


def is_experience_section_marker(line: str) -> bool:
    """Bare 'Experience:' with nothing after the colon."""
    return bool(_EXPERIENCE_SECTION_RE.match(line))


def is_motives_header(line: str) -> bool:
    return bool(_MOTIVES_HEADER_RE.match(line))


def is_empty_motives_header(line: str) -> bool:
    return bool(_MOTIVES_EMPTY_RE.match(line))


def is_field_header(line: str) -> bool:
    """Difficulty / Attack / Experience / Motives & Tactics with a colon."""
    return bool(_FIELD_HEADER_RE.match(line))


def is_new_section(line: str) -> bool:
    """True when *line* starts something other than feature text.

    Used inside the features section to decide whether a line continues the
    current feature's description.
    """
    if is_hp_stress_marker(line) or _HP_STRESS_HEADER_RE.match(line):
        return True
    if _HP_LABEL_RE.match(line) or _HP_COUNT_RE.match(line):
        return True
    if is_features_marker(line):
        return True
    if is_field_header(line):
        return True
    # Feature headers belong to the features section, so never a new section.
    return False


# ── Name / tier / description ───────────────────────────────────────

_TIER_TOKEN_RE = re.compile(r'\bT\d+\b', re.IGNORECASE)
_TIER_TYPE_RE = re.compile(r'^T(\d+)\s+(.+?)(?:\s*-\s*Environment)?$', re.IGNORECASE)
_LEGACY_NAME_TIER_RE = re.compile(r'^(.+?)\s+T(\d+)\s+(.+)$', re.IGNORECASE)
_TIER_PREFIX_RE = re.compile(r'^T\d+', re.IGNORECASE)
_STAT_PREFIX_RE = re.compile(
    r'^(Difficulty|Attack|Experience|Motives|HP|STRESS|Features)', re.IGNORECASE
)


def looks_like_name(line: str) -> bool:
    """A bare title line: no tier token and no colon."""
    return ":" not in line and not _TIER_TOKEN_RE.search(line)


def match_tier_type(line: str) -> Optional[TierType]:
    """Modern tier line: 'T2 Support' or 'T1 Traversal - Environment'."""
    m = _TIER_TYPE_RE.match(line)
    if not m:
        return None
    return TierType(
        tier=int(m.group(1)),
        subtype=m.group(2).strip().lower(),
        is_environment="environment" in line.lower(),
    )


def match_legacy_name_tier(line: str) -> Optional[TierType]:
    """Legacy title line: 'ACID BURROWER T1 Solo'."""
    m = _LEGACY_NAME_TIER_RE.match(line)
    if not m:
        return None
    return TierType(
        tier=int(m.group(2)) or 1,
        subtype=m.group(3).strip().lower(),
        is_environment="environment" in line.lower(),
        name=m.group(1).strip(),
    )


def looks_like_description(line: str) -> bool:
    """A flavor-text line: nothing that any stat, tier or feature matcher claims."""
    if ":" in line:
        return False
    if _STAT_PREFIX_RE.match(line) or _TIER_PREFIX_RE.match(line):
        return False
    if match_legacy_name_tier(line):
        return False
    if match_feature_header(line) or match_experience_line(line):
        return False
    return True


# ── Basic stats ─────────────────────────────────────────────────────

_DIFFICULTY_RE = re.compile(r'^Difficulty:\s*(\d+)', re.IGNORECASE)
_ATTACK_RE = re.compile(r'^Attack:\s*([+-]?\d+)', re.IGNORECASE)
_ATTACK_LINE_RE = re.compile(r'^([^:]+):\s*([^|]+)\|\s*(.+)')
_DAMAGE_RE = re.compile(r'(\d+d\d+)(?:\s*([+-]\s*\d+))?\s+(physical|magical|phy|mag)\b', re.IGNORECASE)
_INLINE_EXPERIENCE_RE = re.compile(r'^Experience:\s*(.+)', re.IGNORECASE)
_MOTIVES_RE = re.compile(r'^Motives\s*&\s*Tactics:\s*(.*)$', re.IGNORECASE)


def _match_difficulty(line: str) -> Optional[StatMatch]:
    m = _DIFFICULTY_RE.match(line)
    if m:
        return StatMatch("difficulty", int(m.group(1)))
    return None


def _match_attack(line: str) -> Optional[StatMatch]:
    m = _ATTACK_RE.match(line)
    if m:
        return StatMatch("attack", int(m.group(1)))
    return None


def _match_attack_line(line: str) -> Optional[StatMatch]:
    """'Claws: Very Close | 1d12+2 phy' → AttackInfo."""
    m = _ATTACK_LINE_RE.match(line)
    if not m:
        return None
    damage = _DAMAGE_RE.search(m.group(3))
    if not damage:
        return None
    bonus = int(damage.group(2).replace(" ", "")) if damage.group(2) else 0
    info = AttackInfo(
        name=m.group(1).strip(),
        range=m.group(2).strip(),
        dice=damage.group(1).lower(),
        bonus=bonus,
        damage_type=DamageType.from_tag(damage.group(3)),
    )
    return StatMatch("attack_info", info)


def _match_inline_experience(line: str) -> Optional[StatMatch]:
    m = _INLINE_EXPERIENCE_RE.match(line)
    if m:
        return StatMatch("experience", m.group(1).strip())
    return None


def _match_motives(line: str) -> Optional[StatMatch]:
    m = _MOTIVES_RE.match(line)
    if not m:
        return None
    content = m.group(1).strip()
    return StatMatch("motives_and_tactics", content or None)


BASIC_STAT_STRATEGIES: tuple[tuple[str, Callable[[str], Optional[StatMatch]]], ...] = (
    ("difficulty", _match_difficulty),
    ("attack", _match_attack),
    ("attack_line", _match_attack_line),
    ("experience", _match_inline_experience),
    ("motives", _match_motives),
)


def extract_basic_stat(line: str) -> Optional[StatMatch]:
    for strategy, matcher in BASIC_STAT_STRATEGIES:
        match = matcher(line)
        if match is not None:
            return StatMatch(match.field, match.value, strategy)
    return None


# ── Feature headers ─────────────────────────────────────────────────

_FEATURE_TYPES = r'(Action|Passive|Reaction)'
_STRICT_HEADER_RE = re.compile(rf'^(.+?)\s*-\s*{_FEATURE_TYPES}\s*$', re.IGNORECASE)
_NAME_VALUE_RE = re.compile(r'^(.+?)\s*\((\d+)\)$')
_VALUE_COLON_HEADER_RE = re.compile(rf'^(.+?)\s*\((\d+)\)\s*:\s*{_FEATURE_TYPES}\s*$', re.IGNORECASE)
_COLON_HEADER_RE = re.compile(rf'^(.+?)\s*:\s*{_FEATURE_TYPES}\s*$', re.IGNORECASE)
_TRAILING_TYPE_RE = re.compile(rf'^(.+?)\s+{_FEATURE_TYPES}\s*$', re.IGNORECASE)

# Shortest name the bare 'Name Action' form will accept.
_MIN_TRAILING_NAME_LEN = 4


def match_feature_header(line: str) -> Optional[FeatureHeader]:
    """Strict header: 'Relentless (2) - Passive', 'Earth Eruption - Action'."""
    m = _STRICT_HEADER_RE.match(line)
    if not m:
        return None
    name = m.group(1).strip()
    feature_type = FeatureType.from_text(m.group(2))
    value_match = _NAME_VALUE_RE.match(name)
    if value_match:
        return FeatureHeader(value_match.group(1).strip(), feature_type, value_match.group(2), "dash")
    return FeatureHeader(name, feature_type, None, "dash")


def _match_value_colon_header(line: str) -> Optional[FeatureHeader]:
    m = _VALUE_COLON_HEADER_RE.match(line)
    if m:
        return FeatureHeader(m.group(1).strip(), FeatureType.from_text(m.group(3)), m.group(2))
    return None


def _match_colon_header(line: str) -> Optional[FeatureHeader]:
    m = _COLON_HEADER_RE.match(line)
    if m:
        return FeatureHeader(m.group(1).strip(), FeatureType.from_text(m.group(2)))
    return None


def _match_trailing_type_header(line: str) -> Optional[FeatureHeader]:
    m = _TRAILING_TYPE_RE.match(line)
    if m and len(m.group(1).strip()) >= _MIN_TRAILING_NAME_LEN:
        return FeatureHeader(m.group(1).strip(), FeatureType.from_text(m.group(2)))
    return None


FLEXIBLE_HEADER_STRATEGIES: tuple[tuple[str, Callable[[str], Optional[FeatureHeader]]], ...] = (
    ("colon", _match_colon_header),
    ("trailing_type", _match_trailing_type_header),
    ("value_colon", _match_value_colon_header),
)


def match_feature_header_flexible(line: str) -> Optional[FeatureHeader]:
    """Permissive fallbacks for headers that drifted from the dash form."""
    for strategy, matcher in FLEXIBLE_HEADER_STRATEGIES:
        header = matcher(line)
        if header is not None:
            return FeatureHeader(header.name, header.type, header.value, strategy)
    return None


# ── Experience lines ────────────────────────────────────────────────

_EXPERIENCE_LINE_RE = re.compile(r'^(.+?)\s+\+(\d+)$')


def match_experience_line(line: str) -> Optional[Experience]:
    """'Fallen Lore +2' → Experience('Fallen Lore', 2)."""
    m = _EXPERIENCE_LINE_RE.match(line)
    if m:
        return Experience(m.group(1).strip(), int(m.group(2)))
    return None


# ── HP / Stress ─────────────────────────────────────────────────────

_HP_PATTERNS = {
    "minor": re.compile(r'MINOR\s+HP[^\d]*(\d+)', re.IGNORECASE),
    "major": re.compile(r'MAJOR\s+HP[^\d]*(\d+)', re.IGNORECASE),
    "severe": re.compile(r'SEVERE\s+HP[^\d]*(\d+)', re.IGNORECASE),
}
_STRESS_RE = re.compile(r'STRESS[^\d]*(\d+)', re.IGNORECASE)


def extract_hp_stress(line: str) -> Optional[HpStressMatch]:
    """Pull threshold numbers off an HP & Stress line.

    'MINOR HP [ ] [ ] 8 MAJOR HP [ ] [ ] 15' → minor=8, major=15.
    Labels without a trailing number stay None.
    """
    found: dict[str, int] = {}
    for label, pattern in _HP_PATTERNS.items():
        m = pattern.search(line)
        if m:
            found[label] = int(m.group(1))
    m = _STRESS_RE.search(line)
    if m:
        found["stress"] = int(m.group(1))
    if not found:
        return None
    return HpStressMatch(**found)
