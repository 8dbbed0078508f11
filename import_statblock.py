#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, replace

from dh_importer.config import load_config
from dh_importer.exceptions import EmptyInputError, MissingNameError
from dh_importer.feature_actions import analyze_feature
from dh_importer.statblock_parser import StatblockParser, validate_statblock


def _read_input(path: str | None) -> str:
    if path:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()


def _feature_actions(record) -> list[dict]:
    actions = []
    for feature in record.features:
        details = asdict(analyze_feature(feature))
        details["damage"] = [
            {
                "count": roll["count"],
                "size": roll["size"],
                "bonus": roll["bonus"],
                "damageType": roll["damage_type"].value,
            }
            for roll in details["damage"]
        ]
        actions.append({"feature": feature.name, **details})
    return actions


def build_output(record, *, analyze: bool = False) -> dict:
    data = record.to_dict()
    if analyze:
        data["featureActions"] = _feature_actions(record)
    return data


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Parse a pasted freshcutgrass.app Daggerheart statblock into JSON."
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Path to a text file with one statblock. Reads stdin if omitted.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log every line's classification to stderr.",
    )
    parser.add_argument(
        "--extract-hp",
        action="store_true",
        help="Read HP thresholds and stress from the HP & Stress section (experimental).",
    )
    parser.add_argument(
        "--analyze",
        action="store_true",
        help="Add cost/range/damage hints for each feature.",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        help="JSON indent (default 2).",
    )
    args = parser.parse_args(argv)

    # DH_IMPORTER_* values from the environment or .env; flags only switch on.
    config = load_config()
    if args.debug:
        config = replace(config, debug=True)
    if args.extract_hp:
        config = replace(config, extract_hp_stress=True)
    if config.debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s | %(message)s")

    raw = _read_input(args.input)
    try:
        record = StatblockParser(config).parse(raw)
    except EmptyInputError as exc:
        print(f"Nothing to import: {exc}", file=sys.stderr)
        return 1
    except MissingNameError as exc:
        print(f"Import failed: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(build_output(record, analyze=args.analyze), indent=args.indent))

    warnings = validate_statblock(record)
    if warnings:
        print(f"\n{len(warnings)} warnings:", file=sys.stderr)
        for warning in warnings:
            print(f"- {warning}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
