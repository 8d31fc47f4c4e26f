from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import httpx

from .config import PROVIDERS, load_config, validate_config
from .errors import SyncError, UpstreamRequestFailed
from .logging_utils import log_json, setup_logging
from .orchestrate import SyncOrchestrator


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="lolsync")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML config file")
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Create Clockify entries for recent matches")
    sync.add_argument("--provider", choices=PROVIDERS, help="Override sync.provider")
    sync.add_argument("--days", type=_positive_days, help="Override sync.days")

    sub.add_parser("check-config", help="Load and validate the config file")

    return parser.parse_args(argv)


def _positive_days(raw: str) -> int:
    value = int(raw)
    if not 1 <= value <= 3650:
        raise argparse.ArgumentTypeError("--days must be between 1 and 3650")
    return value


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    logger = setup_logging()
    try:
        cfg = load_config(args.config)
        if getattr(args, "provider", None):
            cfg.raw.setdefault("sync", {})["provider"] = args.provider
            validate_config(cfg)
    except (OSError, ValueError) as exc:
        log_json(logger, "config_invalid", level=logging.ERROR, path=args.config, error=str(exc))
        sys.exit(1)
    logger.setLevel(cfg.log_level)

    if args.command == "check-config":
        log_json(logger, "config_ok", provider=cfg.provider, days=cfg.sync_days)
        return

    async def _run() -> None:
        orchestrator = SyncOrchestrator(cfg, logger)
        try:
            await orchestrator.run_sync(days=args.days)
        finally:
            await orchestrator.close()

    try:
        asyncio.run(_run())
    except UpstreamRequestFailed as exc:
        log_json(logger, "sync_failed", level=logging.ERROR, error=str(exc), **exc.as_dict())
        sys.exit(1)
    except (SyncError, RuntimeError, ValueError, httpx.HTTPError) as exc:
        log_json(logger, "sync_failed", level=logging.ERROR, error=str(exc))
        sys.exit(1)


if __name__ == "__main__":
    main()
