from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict

import yaml

from .errors import ConfigError
from .models import PlayerIdentity


PROVIDERS = ("riot", "opgg", "lcu")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_LOCKFILE = "/Applications/League of Legends.app/Contents/LoL/lockfile"


@dataclass
class Config:
    raw: Dict[str, Any]

    @property
    def sync(self) -> Dict[str, Any]:
        return self.raw.get("sync") or {}

    @property
    def sync_days(self) -> int:
        return int(self.sync.get("days", 7))

    @property
    def provider(self) -> str:
        return self.sync.get("provider", "riot")

    @property
    def player(self) -> PlayerIdentity:
        player = self.raw.get("player") or {}
        return PlayerIdentity(
            puuid=player.get("puuid"),
            game_name=player.get("game_name"),
            tag_line=player.get("tag_line"),
        )

    @property
    def riot(self) -> Dict[str, Any]:
        return self.raw.get("riot") or {}

    @property
    def opgg(self) -> Dict[str, Any]:
        return self.raw.get("opgg") or {}

    @property
    def lcu(self) -> Dict[str, Any]:
        return self.raw.get("lcu") or {}

    @property
    def clockify(self) -> Dict[str, Any]:
        return self.raw.get("clockify") or {}

    @property
    def log_level(self) -> str:
        return self.raw.get("log_level", "INFO")


def validate_config(cfg: Config) -> Config:
    if cfg.log_level not in LOG_LEVELS:
        raise ConfigError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
    days = cfg.sync.get("days", 7)
    if not isinstance(days, int) or not 1 <= days <= 3650:
        raise ConfigError("sync.days must be a number between 1 and 3650")
    if cfg.provider not in PROVIDERS:
        raise ConfigError(f"sync.provider must be one of: {', '.join(PROVIDERS)}")

    player = cfg.player
    if cfg.provider == "riot":
        if not player.puuid and not player.riot_id:
            raise ConfigError("player.puuid or player.game_name + player.tag_line is required for riot")
        if not cfg.riot.get("base_url"):
            raise ConfigError("riot.base_url is required")
    elif not player.riot_id:
        raise ConfigError(f"player.game_name and player.tag_line are required for {cfg.provider}")
    if cfg.provider == "opgg" and not cfg.opgg.get("region"):
        raise ConfigError("opgg.region is required")

    delay = cfg.clockify.get("api_delay_ms", 0)
    if not isinstance(delay, int) or not 0 <= delay <= 10000:
        raise ConfigError("clockify.api_delay_ms must be a number between 0 and 10000 (milliseconds)")
    if not cfg.clockify.get("project_name"):
        raise ConfigError("clockify.project_name is required")
    return cfg


def load_config(path: str = "config.yaml") -> Config:
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return validate_config(Config(raw))


def get_riot_api_key() -> str:
    token = os.getenv("RIOT_API_KEY")
    if not token:
        raise RuntimeError("Missing Riot API key; set RIOT_API_KEY")
    return token


def get_clockify_token() -> str:
    token = os.getenv("CLOCKIFY_API_TOKEN")
    if not token:
        raise RuntimeError("Missing Clockify API token; set CLOCKIFY_API_TOKEN")
    return token
