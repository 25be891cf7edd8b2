from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

ENV_STRICT = "MENAGERIE_STRICT"
ENV_SAVE_DIR = "MENAGERIE_SAVE_DIR"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class EconomySettings:
    gold_max: int = 999_999
    starting_gold: int = 100
    starting_level: int = 1
    inventory_capacity: int = 50


@dataclass
class BreedingSettings:
    base_cost: int = 300
    generation_cost_scale: float = 0.25
    # Cost multiplier applied once per previous breed of each parent.
    breeding_count_tax: float = 1.2
    exhaustion_penalty_per_level: float = 0.2
    # Effective stats never drop below this fraction of the base stats.
    min_stat_multiplier: float = 0.2
    max_generation: int = 5
    max_exhaustion: int = 5
    recovery_cost_per_level: int = 100
    # Optional rest period after a breed; 0 disables it.
    cooldown_seconds: float = 0.0


@dataclass
class PersistenceSettings:
    autosave_delay: float = 0.5
    autosave_slot: str = "autosave"
    manual_slot: str = "slot1"
    key_prefix: str = "menagerie/"
    save_dir: Optional[str] = None


@dataclass
class Settings:
    economy: EconomySettings = field(default_factory=EconomySettings)
    breeding: BreedingSettings = field(default_factory=BreedingSettings)
    persistence: PersistenceSettings = field(default_factory=PersistenceSettings)
    strict_actions: bool = False

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @classmethod
    def _from_dict(cls, data: dict) -> "Settings":
        return Settings(
            economy=EconomySettings(**data.get("economy", {})),
            breeding=BreedingSettings(**data.get("breeding", {})),
            persistence=PersistenceSettings(**data.get("persistence", {})),
            strict_actions=bool(data.get("strict_actions", False)),
        )

    @staticmethod
    def _apply_env(settings: "Settings") -> "Settings":
        strict = os.getenv(ENV_STRICT)
        if strict is not None:
            settings.strict_actions = strict.strip().lower() in _TRUTHY
        save_dir = os.getenv(ENV_SAVE_DIR)
        if save_dir:
            settings.persistence.save_dir = save_dir
        return settings

    @classmethod
    def load(cls, user_path: Optional[Path] = None) -> "Settings":
        """Load settings from built-in defaults and optional user override file.

        If user_path is provided and exists, overlay values onto defaults.
        Environment overrides are applied last.
        """
        try:
            with resources.files("menagerie.config").joinpath("default_settings.yaml").open("r", encoding="utf-8") as f:
                default_data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Default settings not found; falling back to dataclass defaults.")
            default_data = dataclasses.asdict(Settings())

        user_data = {}
        if user_path is not None:
            if user_path.exists():
                user_data = cls._load_yaml(user_path)
                logger.info("Loaded user settings from %s", user_path)
            else:
                logger.warning("User settings file not found: %s", user_path)

        merged = cls._deep_merge(default_data, user_data)
        settings = cls._apply_env(cls._from_dict(merged))
        logger.debug("Settings merged: %s", settings)
        return settings

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(dataclasses.asdict(self), f, sort_keys=False)
        logger.info("Saved settings to %s", path)
