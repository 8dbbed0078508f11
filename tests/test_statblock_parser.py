"""Tests for lib/dh_importer/statblock_parser.py"""

import os
import pytest
from dh_importer.config import ParserConfig
from dh_importer.exceptions import EmptyInputError, MissingNameError, StatblockParseError
from dh_importer.models import DamageType, FeatureType, StatblockKind
from dh_importer.statblock_parser import (
    Disposition,
    ScanState,
    Section,
    StatblockParser,
    parse_statblock,
    transition,
    validate_statblock,
)

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")


def _load_fixture(name: str) -> str:
    with open(os.path.join(FIXTURES, name)) as f:
        return f.read()


# ── Acid Burrower (legacy title line) ───────────────────────────────

class TestParseAcidBurrower:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.data = parse_statblock(_load_fixture("acid_burrower.txt"))

    def test_name_tier_subtype(self):
        assert self.data.name == "ACID BURROWER"
        assert self.data.tier == 1
        assert self.data.subtype == "solo"
        assert self.data.kind is StatblockKind.ADVERSARY

    def test_description(self):
        assert self.data.description == "A home-sized insect with digging claws and acidic blood."

    def test_stats(self):
        assert self.data.difficulty == 14
        assert self.data.attack == 3
        assert self.data.attack_info is None

    def test_inline_experience(self):
        assert self.data.experience == "Tremor Sense +2"
        assert self.data.experiences == ()

    def test_motives(self):
        assert self.data.motives_and_tactics == "Burrow, Drag away, Feed, Reposition"

    def test_features(self):
        names = [f.name for f in self.data.features]
        types = [f.type for f in self.data.features]
        assert names == ["Relentless", "Earth Eruption", "Acid Bath"]
        assert types == [FeatureType.PASSIVE, FeatureType.ACTION, FeatureType.REACTION]

    def test_feature_value(self):
        relentless = self.data.features[0]
        assert relentless.value == "2"
        assert relentless.display_name == "Relentless (2)"
        assert self.data.features[1].value is None

    def test_feature_descriptions(self):
        relentless, eruption, bath = self.data.features
        assert relentless.description.startswith("The Burrower can be spotlighted")
        assert eruption.description.startswith("Mark a Stress to have the Burrower")
        assert bath.description.endswith("take 1d6 physical damage.")

    def test_hp_and_stress_not_extracted(self):
        assert self.data.hit_points.minor == 0
        assert self.data.hit_points.major == 0
        assert self.data.hit_points.severe == 0
        assert self.data.stress == 0

    def test_reserved_lists_empty(self):
        assert self.data.resistances == ()
        assert self.data.immunities == ()
        assert self.data.vulnerabilities == ()


# ── Giant Rat (no features) ─────────────────────────────────────────

class TestParseGiantRat:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.data = parse_statblock(_load_fixture("giant_rat.txt"))

    def test_name(self):
        assert self.data.name == "GIANT RAT"
        assert self.data.subtype == "minion"

    def test_difficulty(self):
        assert self.data.difficulty == 10
        assert self.data.attack == 1

    def test_no_features(self):
        assert self.data.features == ()


# ── Archmage (modern tier line, experience block, attack line) ──────

class TestParseArchmage:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.data = parse_statblock(_load_fixture("archmage.txt"))

    def test_name_and_tier(self):
        assert self.data.name == "ARCHMAGE"
        assert self.data.tier == 4
        assert self.data.subtype == "leader"

    def test_description(self):
        assert self.data.description.startswith("A wizard who has spent centuries")

    def test_attack_line(self):
        info = self.data.attack_info
        assert info is not None
        assert info.name == "Staff"
        assert info.range == "Far"
        assert info.dice == "4d10"
        assert info.bonus == 8
        assert info.damage_type is DamageType.MAGICAL
        assert self.data.attack == 7

    def test_experiences(self):
        assert [(e.name, e.value) for e in self.data.experiences] == [
            ("Fallen Lore", 2),
            ("Rituals", 2),
            ("Boundless Knowledge", 4),
        ]
        assert self.data.experience == ""

    def test_motives_continuation(self):
        assert self.data.motives_and_tactics == "Hoard knowledge, Manipulate rivals, Open gateways"

    def test_features(self):
        assert [f.name for f in self.data.features] == [
            "Mind Spike", "Arcane Ward", "Teleport", "Mage Armor",
        ]
        assert self.data.features[0].type is FeatureType.ACTION
        assert self.data.features[1].value == "3"

    def test_flexible_header_description(self):
        assert self.data.features[0].description.startswith("All targets within Close range")


# ── Environment ─────────────────────────────────────────────────────

class TestParseEnvironment:
    @pytest.fixture(autouse=True)
    def setup(self):
        self.data = parse_statblock(_load_fixture("baronial_court.txt"))

    def test_kind(self):
        assert self.data.kind is StatblockKind.ENVIRONMENT
        assert self.data.is_environment

    def test_subtype_drops_environment_suffix(self):
        assert self.data.subtype == "social"

    def test_fields(self):
        assert self.data.name == "BARONIAL COURT"
        assert self.data.difficulty == 13
        assert len(self.data.features) == 2

    def test_legacy_environment_line(self):
        data = parse_statblock("ABANDONED GROVE T1 Event - Environment\nDifficulty: 12")
        assert data.name == "ABANDONED GROVE"
        assert data.kind is StatblockKind.ENVIRONMENT
        assert data.subtype == "event - environment"

    def test_second_title_line_does_not_rename(self):
        text = (
            "ABANDONED GROVE T1 Event - Environment\n"
            "A once-sacred grove now tainted by dark magic.\n"
            "BARONIAL COURT T1 Social - Environment\n"
        )
        data = parse_statblock(text)
        assert data.name == "ABANDONED GROVE"
        assert data.description == "A once-sacred grove now tainted by dark magic."

    def test_legacy_title_after_name_sets_tier(self):
        data = parse_statblock("BANDIT\nBANDIT T2 Standard\nDifficulty: 12")
        assert data.name == "BANDIT"
        assert data.tier == 2
        assert data.subtype == "standard"
        assert data.kind is StatblockKind.ADVERSARY

    def test_legacy_title_after_tier_line_is_ignored(self):
        data = parse_statblock("BANDIT\nT1 Standard\nBANDIT T3 Solo")
        assert (data.name, data.tier, data.subtype) == ("BANDIT", 1, "standard")


# ── Errors ──────────────────────────────────────────────────────────

class TestParseErrors:
    @pytest.mark.parametrize("text", ["", "   ", "\n\n  \n"])
    def test_empty_input(self, text):
        with pytest.raises(EmptyInputError):
            parse_statblock(text)

    def test_non_string_input(self):
        with pytest.raises(EmptyInputError):
            parse_statblock(None)

    def test_missing_name(self):
        with pytest.raises(MissingNameError):
            parse_statblock("Difficulty: 15\nAttack: +2")

    def test_errors_share_base(self):
        assert issubclass(EmptyInputError, StatblockParseError)
        assert issubclass(MissingNameError, StatblockParseError)


# ── Behavior properties ─────────────────────────────────────────────

class TestParserBehavior:
    def test_reparse_is_equal(self):
        text = _load_fixture("acid_burrower.txt")
        parser = StatblockParser()
        assert parser.parse(text) == parser.parse(text)

    def test_feature_order_preserved(self):
        names = [f"Feature {chr(ord('A') + i)}" for i in range(6)]
        body = "\n".join(f"{n} - Action\nDoes thing {i}." for i, n in enumerate(names))
        data = parse_statblock(f"SWARM T2 Horde\nFEATURES\n{body}")
        assert [f.name for f in data.features] == names
        assert data.features[3].description == "Does thing 3."

    def test_multiline_description_joined_with_spaces(self):
        data = parse_statblock("OOZE T1 Bruiser\nFEATURES\nSplit - Reaction\nFirst line.\nSecond line.")
        assert data.features[0].description == "First line. Second line."

    def test_motives_header_then_content(self):
        text = "WOLF\nT1 Skulk\nMotives & Tactics:\nCircle, Harry, Pounce\nFEATURES"
        assert parse_statblock(text).motives_and_tactics == "Circle, Harry, Pounce"

    def test_motives_continuation_beats_description(self):
        text = "WOLF\nT1 Skulk\nMotives & Tactics:\nCircle prey"
        data = parse_statblock(text)
        assert data.motives_and_tactics == "Circle prey"
        assert data.description == ""

    def test_motives_continuation_skips_attack_line(self):
        text = "WOLF\nT1 Skulk\nMotives & Tactics:\nBite: Melee | 1d8+2 phy\nCircle prey"
        data = parse_statblock(text)
        assert data.attack_info.name == "Bite"
        assert data.attack_info.bonus == 2
        assert data.motives_and_tactics == "Circle prey"
        assert data.description == ""

    def test_motives_continuation_skips_features_line(self):
        text = "WOLF\nT1 Skulk\nMotives & Tactics:\nFeatures: none listed\nCircle prey"
        assert parse_statblock(text).motives_and_tactics == "Circle prey"

    def test_flexible_value_colon_header_keeps_value_in_name(self):
        data = parse_statblock("ARCHMAGE\nT4 Leader\nFEATURES\nArcane Ward (3): Reaction\nReduce damage.")
        assert data.features[0].name == "Arcane Ward (3)"
        assert data.features[0].value is None

    def test_orphan_text_after_features_marker_is_dropped(self):
        data = parse_statblock("GOLEM T3 Bruiser\nFEATURES\nsome stray words\nSlam - Action\nHits hard.")
        assert [f.name for f in data.features] == ["Slam"]
        assert data.features[0].description == "Hits hard."

    def test_stat_line_inside_features_is_not_description(self):
        data = parse_statblock("GOLEM T3 Bruiser\nFEATURES\nSlam - Action\nHits hard.\nDifficulty: 18")
        assert data.features[0].description == "Hits hard."

    def test_experience_block_falls_back_to_stats(self):
        text = "SCOUT\nT1 Skulk\nExperience:\nTracking +3\nDifficulty: 12"
        data = parse_statblock(text)
        assert data.experiences[0].name == "Tracking"
        assert data.difficulty == 12

    def test_name_line_with_colon_is_skipped(self):
        data = parse_statblock("Note: pasted from the web\nBANDIT\nT1 Standard")
        assert data.name == "BANDIT"

    def test_ligatures_normalized(self):
        data = parse_statblock("BRIGAND\nA ﬁlthy thief.")
        assert data.description == "A filthy thief."


# ── HP extraction opt-in ────────────────────────────────────────────

class TestHpStressExtraction:
    def test_enabled_reads_thresholds(self):
        parser = StatblockParser(ParserConfig(extract_hp_stress=True))
        data = parser.parse(_load_fixture("acid_burrower.txt"))
        assert data.hit_points.minor == 8
        assert data.hit_points.major == 15
        assert data.hit_points.severe == 0

    def test_disabled_by_default(self):
        data = parse_statblock(_load_fixture("giant_rat.txt"))
        assert data.hit_points.total == 0


# ── Transition function ─────────────────────────────────────────────

class TestTransition:
    def test_features_marker_flushes_feature(self):
        state = ScanState(section=Section.HEADER)
        step = transition(state, "FEATURES")
        assert step.state.section is Section.FEATURES
        assert step.disposition is Disposition.SECTION

    def test_hp_marker_closes_feature(self):
        features_state = transition(ScanState(section=Section.FEATURES), "Bite - Action").state
        step = transition(features_state, "HP & STRESS")
        assert step.state.section is Section.HP_STRESS
        assert step.state.feature is None
        assert [f.name for f in step.completed] == ["Bite"]

    def test_experience_marker(self):
        step = transition(ScanState(has_name=True), "Experience:")
        assert step.state.section is Section.EXPERIENCE

    def test_inline_experience_is_a_field(self):
        step = transition(ScanState(has_name=True), "Experience: Keen Smell +1")
        assert step.state.section is Section.HEADER
        assert step.patch == {"experience": "Keen Smell +1"}

    def test_experience_to_header_on_motives(self):
        step = transition(ScanState(section=Section.EXPERIENCE), "Motives & Tactics:")
        assert step.state.section is Section.HEADER
        assert step.state.expecting_motives

    def test_hp_section_lines_ignored(self):
        step = transition(ScanState(section=Section.HP_STRESS), "MINOR HP [ ] 3")
        assert step.disposition is Disposition.IGNORED
        assert step.patch == {}

    def test_state_is_not_mutated(self):
        state = ScanState()
        transition(state, "GOBLIN")
        assert state.has_name is False


# ── Debug logging ───────────────────────────────────────────────────

class TestDebugLogging:
    def test_debug_logs_dispositions(self, caplog):
        caplog.set_level("DEBUG", logger="dh-importer.parser")
        StatblockParser(ParserConfig(debug=True)).parse("GOBLIN\nstray: line")
        assert any("ignored" in r.getMessage() for r in caplog.records)

    def test_quiet_without_debug(self, caplog):
        caplog.set_level("DEBUG", logger="dh-importer.parser")
        StatblockParser().parse("GOBLIN")
        assert not caplog.records


# ── Validation / dict output ────────────────────────────────────────

class TestValidateStatblock:
    def test_clean_record_only_warns_about_hp(self):
        data = parse_statblock(_load_fixture("acid_burrower.txt"))
        warnings = validate_statblock(data)
        assert warnings == ["Hit points are 0, HP & Stress values are not extracted"]

    def test_missing_features_warned(self):
        warnings = validate_statblock(parse_statblock(_load_fixture("giant_rat.txt")))
        assert any("No features" in w for w in warnings)
        assert any("Difficulty is 10" in w for w in warnings)

    def test_to_dict_shape(self):
        data = parse_statblock(_load_fixture("archmage.txt")).to_dict()
        assert data["type"] == "adversary"
        assert data["attackInfo"]["damageType"] == "magical"
        assert data["experiences"][0] == {"name": "Fallen Lore", "value": 2}
        assert data["features"][1]["type"] == "reaction"
        assert data["features"][1]["displayName"] == "Arcane Ward (3)"
        assert data["hitPoints"] == {"minor": 0, "major": 0, "severe": 0}
        assert data["motivesAndTactics"].startswith("Hoard knowledge")
