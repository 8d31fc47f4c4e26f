"""Tests for config loading and validation."""

from __future__ import annotations

import textwrap

import pytest

from lolsync.config import Config, get_clockify_token, get_riot_api_key, load_config
from lolsync.errors import ConfigError


VALID = textwrap.dedent("""\
    sync:
      days: 14
      provider: riot
    player:
      puuid: abc-123
    riot:
      base_url: https://europe.api.riotgames.com
      rate_limits:
        short_limit: 20
    clockify:
      project_name: League of Legends
      api_delay_ms: 250
""")


def _write(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content)
    return str(path)


class TestLoadConfigFromYaml:
    def test_load_config_from_yaml(self, tmp_path):
        """Load a minimal config.yaml and check the accessors."""
        cfg = load_config(_write(tmp_path, VALID))
        assert cfg.sync_days == 14
        assert cfg.provider == "riot"
        assert cfg.player.puuid == "abc-123"
        assert cfg.player.riot_id is None
        assert cfg.riot["rate_limits"]["short_limit"] == 20
        assert cfg.clockify["api_delay_ms"] == 250
        assert cfg.log_level == "INFO"

    def test_empty_file_is_rejected(self, tmp_path):
        """An empty file is rejected because no player or project is set."""
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, ""))


class TestValidation:
    @pytest.mark.parametrize("days", [0, 3651, "seven"])
    def test_days_out_of_range(self, tmp_path, days):
        content = VALID.replace("days: 14", f"days: {days}")
        with pytest.raises(ConfigError, match="sync.days"):
            load_config(_write(tmp_path, content))

    def test_unknown_log_level(self, tmp_path):
        content = "log_level: verbose\n" + VALID
        with pytest.raises(ConfigError, match="log_level"):
            load_config(_write(tmp_path, content))

    def test_unknown_provider(self, tmp_path):
        content = VALID.replace("provider: riot", "provider: faceit")
        with pytest.raises(ConfigError, match="sync.provider"):
            load_config(_write(tmp_path, content))

    def test_api_delay_out_of_range(self, tmp_path):
        content = VALID.replace("api_delay_ms: 250", "api_delay_ms: 20000")
        with pytest.raises(ConfigError, match="api_delay_ms"):
            load_config(_write(tmp_path, content))

    def test_opgg_needs_riot_id(self, tmp_path):
        content = VALID.replace("provider: riot", "provider: opgg")
        with pytest.raises(ConfigError, match="game_name"):
            load_config(_write(tmp_path, content))

    def test_riot_accepts_riot_id_without_puuid(self, tmp_path):
        content = VALID.replace("  puuid: abc-123", "  game_name: Me\n  tag_line: EUW")
        cfg = load_config(_write(tmp_path, content))
        assert cfg.player.riot_id == "Me#EUW"

    def test_config_error_is_a_value_error(self):
        assert issubclass(ConfigError, ValueError)


class TestConfigDefaults:
    def test_defaults(self):
        cfg = Config({})
        assert cfg.sync_days == 7
        assert cfg.provider == "riot"
        assert cfg.clockify == {}


class TestSecrets:
    def test_riot_key_from_env(self, monkeypatch):
        monkeypatch.setenv("RIOT_API_KEY", "RGAPI-123")
        assert get_riot_api_key() == "RGAPI-123"

    def test_riot_key_missing(self, monkeypatch):
        monkeypatch.delenv("RIOT_API_KEY", raising=False)
        with pytest.raises(RuntimeError, match="RIOT_API_KEY"):
            get_riot_api_key()

    def test_clockify_token_missing(self, monkeypatch):
        monkeypatch.delenv("CLOCKIFY_API_TOKEN", raising=False)
        with pytest.raises(RuntimeError, match="CLOCKIFY_API_TOKEN"):
            get_clockify_token()
