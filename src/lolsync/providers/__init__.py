from importlib import import_module
from typing import Dict, Tuple

from ..config import DEFAULT_LOCKFILE, Config, get_riot_api_key
from .base import MatchProvider


PROVIDER_MODULES: Dict[str, Tuple[str, str]] = {
    "riot": ("riot", "RiotMatchProvider"),
    "opgg": ("opgg", "OpggMatchProvider"),
    "lcu": ("lcu", "LcuMatchProvider"),
}


def provider_class(name: str):
    try:
        mod_name, cls_name = PROVIDER_MODULES[name]
    except KeyError:
        raise ValueError(f"unknown provider: {name}") from None
    # Imported lazily so the MCP client is only loaded when OP.GG is used
    mod = import_module(f"lolsync.providers.{mod_name}")
    return getattr(mod, cls_name)


def build_provider(cfg: Config, name: str = None, logger=None) -> MatchProvider:
    name = name or cfg.provider
    cls = provider_class(name)
    if name == "riot":
        return cls.from_config(cfg.riot, get_riot_api_key(), logger=logger)
    if name == "opgg":
        return cls.from_config(cfg.opgg, logger=logger)
    return cls.from_config(cfg.lcu, cfg.lcu.get("lockfile", DEFAULT_LOCKFILE), logger=logger)
