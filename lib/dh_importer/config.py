# dh_importer/config.py
import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

DEBUG_ENV = "DH_IMPORTER_DEBUG"
EXTRACT_HP_ENV = "DH_IMPORTER_EXTRACT_HP"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ParserConfig:
    """Options handed to StatblockParser at construction.

    debug: log every line's disposition at DEBUG level.
    extract_hp_stress: read HP thresholds and stress from the HP & Stress
        section. Off by default, so hit points and stress stay at zero.
    """
    debug: bool = False
    extract_hp_stress: bool = False


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY


def load_config(use_dotenv: bool = True) -> ParserConfig:
    # Callers outside the parser (the CLI) build config from the environment;
    # the parser itself only ever sees the ParserConfig object.
    if use_dotenv:
        load_dotenv(find_dotenv(usecwd=True), override=False)
    return ParserConfig(
        debug=_env_flag(DEBUG_ENV),
        extract_hp_stress=_env_flag(EXTRACT_HP_ENV),
    )
