# dh_importer/statblock_parser.py
"""
Statblock parser for freshcutgrass.app Daggerheart text.

Converts pasted plain-text adversary and environment statblocks into a
frozen ParsedStatblock.

The scan is a finite-state machine over trimmed, non-blank lines. The
current section (header, experience, features, hp_stress) and the feature
being accumulated live in a ScanState; `transition()` maps one
(state, line) pair to a Step holding the next state, a field patch and the
line's disposition. `StatblockParser.parse()` folds `transition()` over the
input and applies the patches to a draft record.

Entry points:
    parse_statblock(text, config=None) -> ParsedStatblock
    StatblockParser(config).parse(text) -> ParsedStatblock
    validate_statblock(record) -> list[str]
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

from dh_importer.config import ParserConfig
from dh_importer.exceptions import EmptyInputError, MissingNameError
from dh_importer.extractors import (
    FeatureHeader,
    extract_basic_stat,
    extract_hp_stress,
    is_experience_section_marker,
    is_features_marker,
    is_hp_stress_marker,
    is_motives_header,
    is_new_section,
    looks_like_description,
    looks_like_name,
    match_experience_line,
    match_feature_header,
    match_feature_header_flexible,
    match_legacy_name_tier,
    match_tier_type,
)
from dh_importer.models import (
    Experience,
    Feature,
    HitPoints,
    ParsedStatblock,
    StatblockKind,
)

logger = logging.getLogger("dh-importer.parser")


# ── Ligature normalization ──────────────────────────────────────────

_LIGATURES = {
    "\ufb01": "fi",
    "\ufb02": "fl",
    "\ufb03": "ffi",
    "\ufb04": "ffl",
}


def _normalize(text: str) -> str:
    for lig, repl in _LIGATURES.items():
        text = text.replace(lig, repl)
    return text


def _normalize_lines(text: str) -> list[str]:
    lines = [line.strip() for line in _normalize(text).splitlines()]
    return [line for line in lines if line]


# ── State machine ───────────────────────────────────────────────────

class Section(Enum):
    HEADER = "header"
    EXPERIENCE = "experience"
    FEATURES = "features"
    HP_STRESS = "hp_stress"


class Disposition(Enum):
    """What the state machine did with a line."""
    SECTION = "section"
    NAME = "name"
    TIER = "tier"
    DESCRIPTION = "description"
    FIELD = "field"
    MOTIVES = "motives"
    EXPERIENCE = "experience"
    FEATURE_HEADER = "feature_header"
    FEATURE_TEXT = "feature_text"
    HP_STRESS = "hp_stress"
    IGNORED = "ignored"


@dataclass(frozen=True)
class ScanState:
    section: Section = Section.HEADER
    feature: Optional[Feature] = None
    expecting_motives: bool = False
    has_name: bool = False
    has_description: bool = False
    has_tier: bool = False


@dataclass(frozen=True)
class Step:
    state: ScanState
    disposition: Disposition
    patch: dict[str, Any] = field(default_factory=dict)
    completed: tuple[Feature, ...] = ()
    experiences: tuple[Experience, ...] = ()


def _flushed(state: ScanState) -> tuple[Feature, ...]:
    return (state.feature,) if state.feature is not None else ()


def _enter(state: ScanState, section: Section) -> Step:
    """Switch section, closing any feature in progress."""
    new_state = replace(state, section=section, feature=None, expecting_motives=False)
    return Step(new_state, Disposition.SECTION, completed=_flushed(state))


def _kind(is_environment: bool) -> StatblockKind:
    return StatblockKind.ENVIRONMENT if is_environment else StatblockKind.ADVERSARY


def _basic_stat_step(state: ScanState, line: str) -> Optional[Step]:
    stat = extract_basic_stat(line)
    if stat is None:
        return None
    if stat.field == "motives_and_tactics":
        if stat.value is None:
            # Header only; content arrives on the next line.
            return Step(replace(state, expecting_motives=True), Disposition.FIELD)
        return Step(
            replace(state, expecting_motives=False),
            Disposition.MOTIVES,
            {"motives_and_tactics": stat.value},
        )
    return Step(state, Disposition.FIELD, {stat.field: stat.value})


def _header_step(state: ScanState, line: str) -> Step:
    if state.expecting_motives:
        # Stat lines between the header and its content are still applied.
        step = _basic_stat_step(state, line)
        if step is not None:
            return step
        if "FEATURES" not in line.upper():
            return Step(
                replace(state, expecting_motives=False),
                Disposition.MOTIVES,
                {"motives_and_tactics": line},
            )

    if not state.has_name and looks_like_name(line):
        return Step(replace(state, has_name=True), Disposition.NAME, {"name": line})

    tier = match_tier_type(line)
    if tier:
        return Step(replace(state, has_tier=True), Disposition.TIER, {
            "tier": tier.tier,
            "subtype": tier.subtype,
            "kind": _kind(tier.is_environment),
        })

    legacy = match_legacy_name_tier(line)
    if legacy and not state.has_name:
        return Step(replace(state, has_name=True, has_tier=True), Disposition.NAME, {
            "name": legacy.name,
            "tier": legacy.tier,
            "subtype": legacy.subtype,
            "kind": _kind(legacy.is_environment),
        })
    if legacy and not state.has_tier:
        # Name already set: keep it, take only the tier and type.
        return Step(replace(state, has_tier=True), Disposition.TIER, {
            "tier": legacy.tier,
            "subtype": legacy.subtype,
            "kind": _kind(legacy.is_environment),
        })

    if state.has_name and not state.has_description and looks_like_description(line):
        return Step(
            replace(state, has_description=True),
            Disposition.DESCRIPTION,
            {"description": line},
        )

    return _basic_stat_step(state, line) or Step(state, Disposition.IGNORED)


def _experience_step(state: ScanState, line: str) -> Step:
    experience = match_experience_line(line)
    if experience:
        return Step(state, Disposition.EXPERIENCE, experiences=(experience,))

    if "FEATURES" in line.upper() and not is_motives_header(line):
        return _enter(state, Section.FEATURES)

    # Motives header or any other non-experience line: the experience block
    # is over, so hand the line back to the header's stat matchers.
    header_state = replace(state, section=Section.HEADER)
    return _basic_stat_step(header_state, line) or Step(header_state, Disposition.IGNORED)


def _start_feature(state: ScanState, header: FeatureHeader) -> Step:
    feature = Feature(name=header.name, type=header.type, value=header.value)
    return Step(replace(state, feature=feature), Disposition.FEATURE_HEADER, completed=_flushed(state))


def _features_step(state: ScanState, line: str) -> Step:
    header = match_feature_header(line)
    if header:
        return _start_feature(state, header)

    if state.feature is not None:
        if is_new_section(line):
            return Step(state, Disposition.IGNORED)
        return Step(replace(state, feature=state.feature.with_text(line)), Disposition.FEATURE_TEXT)

    if is_new_section(line):
        return Step(state, Disposition.IGNORED)

    header = match_feature_header_flexible(line)
    if header:
        return _start_feature(state, header)
    return Step(state, Disposition.IGNORED)


def _hp_stress_step(state: ScanState, line: str, config: ParserConfig) -> Step:
    # HP and stress stay at zero unless extraction is switched on.
    if not config.extract_hp_stress:
        return Step(state, Disposition.IGNORED)
    found = extract_hp_stress(line)
    if found is None:
        return Step(state, Disposition.IGNORED)
    patch: dict[str, Any] = {}
    thresholds = {
        key: getattr(found, key)
        for key in ("minor", "major", "severe")
        if getattr(found, key) is not None
    }
    if thresholds:
        patch["hit_points"] = thresholds
    if found.stress is not None:
        patch["stress"] = found.stress
    return Step(state, Disposition.HP_STRESS, patch)


_DEFAULT_CONFIG = ParserConfig()


def transition(state: ScanState, line: str, config: ParserConfig = _DEFAULT_CONFIG) -> Step:
    """Classify one line against the current state. Pure: never mutates *state*."""
    # Section markers win regardless of where we are.
    if is_features_marker(line):
        return _enter(state, Section.FEATURES)
    if is_hp_stress_marker(line):
        return _enter(state, Section.HP_STRESS)
    if is_experience_section_marker(line):
        return _enter(state, Section.EXPERIENCE)

    if state.section is Section.HEADER:
        return _header_step(state, line)
    if state.section is Section.EXPERIENCE:
        return _experience_step(state, line)
    if state.section is Section.FEATURES:
        return _features_step(state, line)
    return _hp_stress_step(state, line, config)


# ── Draft record ────────────────────────────────────────────────────

def _new_draft() -> dict:
    return {
        "name": "",
        "kind": StatblockKind.ADVERSARY,
        "tier": 1,
        "subtype": "",
        "description": "",
        "difficulty": 10,
        "attack": 0,
        "attack_info": None,
        "experience": "",
        "experiences": [],
        "motives_and_tactics": "",
        "features": [],
        "hit_points": {"minor": 0, "major": 0, "severe": 0},
        "stress": 0,
    }


def _apply(draft: dict, step: Step) -> None:
    for key, value in step.patch.items():
        if key == "hit_points":
            draft["hit_points"].update(value)
        else:
            draft[key] = value
    draft["features"].extend(step.completed)
    draft["experiences"].extend(step.experiences)


def _freeze(draft: dict) -> ParsedStatblock:
    return ParsedStatblock(
        name=draft["name"],
        kind=draft["kind"],
        tier=draft["tier"],
        subtype=draft["subtype"],
        description=draft["description"],
        difficulty=draft["difficulty"],
        attack=draft["attack"],
        attack_info=draft["attack_info"],
        experience=draft["experience"],
        experiences=tuple(draft["experiences"]),
        motives_and_tactics=draft["motives_and_tactics"],
        features=tuple(draft["features"]),
        hit_points=HitPoints(**draft["hit_points"]),
        stress=draft["stress"],
    )


# ── Main parser ─────────────────────────────────────────────────────

class StatblockParser:
    """Parses one statblock per call. Holds no state between calls."""

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()

    def parse(self, text: str) -> ParsedStatblock:
        if not isinstance(text, str):
            raise EmptyInputError()
        lines = _normalize_lines(text)
        if not lines:
            raise EmptyInputError()

        draft = _new_draft()
        state = ScanState()
        for index, line in enumerate(lines):
            step = transition(state, line, self.config)
            _apply(draft, step)
            self._debug(
                f"line {index} [{state.section.value} -> {step.state.section.value}] "
                f"{step.disposition.value}: {line!r}"
            )
            state = step.state

        if state.feature is not None:
            draft["features"].append(state.feature)

        if not draft["name"]:
            raise MissingNameError()

        record = _freeze(draft)
        self._debug(
            f"parsed {record.name!r}: {len(record.features)} features, "
            f"{len(record.experiences)} experiences"
        )
        return record

    def _debug(self, message: str) -> None:
        if self.config.debug:
            logger.debug(message)


def parse_statblock(text: str, config: Optional[ParserConfig] = None) -> ParsedStatblock:
    """Parse freshcutgrass statblock text into a ParsedStatblock."""
    return StatblockParser(config).parse(text)


# ── Validation ──────────────────────────────────────────────────────

def validate_statblock(record: ParsedStatblock) -> list[str]:
    """Return list of warning strings for suspect fields.

    None of these stop an import; they point at lines the parser probably
    dropped.
    """
    warnings = []

    if not record.subtype:
        warnings.append("No tier/type line found, tier defaulted to 1")

    if record.difficulty == 10:
        warnings.append("Difficulty is 10, may be the default rather than a parsed value")

    if not record.is_environment:
        if not record.features:
            warnings.append("No features parsed, check the FEATURES header")
        if record.attack == 0 and record.attack_info is None:
            warnings.append("No attack bonus or attack line parsed")

    if not record.is_environment and record.hit_points.total == 0:
        warnings.append("Hit points are 0, HP & Stress values are not extracted")

    for feature in record.features:
        if not feature.description:
            warnings.append(f"Feature '{feature.display_name}' has no description")

    return warnings
