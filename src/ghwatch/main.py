from __future__ import annotations

import argparse
import logging
import os
import signal
import sqlite3

from .config import DEFAULT_INTERVAL_SECONDS, AppConfig, parse_interval
from .errors import GhWatchError
from .runner import NOTIFIER_CHOICES, build_watcher


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ghwatch", description="Watch GitHub repositories for new activity")
    p.add_argument(
        "--config",
        default=os.environ.get("GHWATCH_CONFIG"),
        help="Repository list: local path, file:// or http(s):// URL (JSON or TOML). Defaults to env GHWATCH_CONFIG",
    )
    p.add_argument(
        "--interval",
        default=os.environ.get("GHWATCH_INTERVAL") or str(int(DEFAULT_INTERVAL_SECONDS)),
        help="Check interval, e.g. 600, 30s, 10m, 1h30m. Defaults to env GHWATCH_INTERVAL or 600 seconds",
    )
    p.add_argument(
        "--notifiers",
        default=os.environ.get("GHWATCH_NOTIFIERS") or "console",
        help=f"Comma separated notifiers ({'/'.join(NOTIFIER_CHOICES)}). Defaults to console",
    )
    p.add_argument("--db", default=os.environ.get("GHWATCH_DB"), help="SQLite state path. Defaults to ~/.config/ghwatch/ghwatch.db")
    p.add_argument("--workers", type=int, default=10, help="Number of concurrent checks")
    p.add_argument("--queue-size", type=int, default=1000, help="Capacity of the pending check queue")
    p.add_argument("--token-env", default="GITHUB_TOKEN", help="Env var holding the GitHub token")
    p.add_argument("--webhook-env", default="GHWATCH_WEBHOOK_URL", help="Env var holding the chat webhook URL")
    p.add_argument("--verbose", action="store_true", help="Console notifier prints title and body as well")
    p.add_argument(
        "--log-level",
        default=None,
        help="Log level (DEBUG/INFO/WARNING/ERROR). Console notifications log at WARNING, so ERROR hides them. "
        "Defaults to env GHWATCH_LOG_LEVEL or INFO",
    )
    p.add_argument("--once", action="store_true", help="Run one check cycle, wait for it and exit")
    return p


def _resolve_log_level(value: str | None) -> int:
    v = (value or "").strip().upper()
    if not v:
        return logging.INFO
    level = logging.getLevelNamesMapping().get(v)
    if isinstance(level, int):
        return level
    return logging.INFO


def build_app_config(args: argparse.Namespace) -> AppConfig:
    if not args.config:
        raise ValueError("--config (or env GHWATCH_CONFIG) is required")
    return AppConfig(
        config_location=args.config,
        interval_seconds=parse_interval(args.interval),
        sqlite_path=args.db or "",
        workers=args.workers,
        queue_size=args.queue_size,
        notifiers=tuple(n.strip().lower() for n in str(args.notifiers).split(",") if n.strip()),
        token_env=args.token_env or None,
        webhook_url_env=args.webhook_env or None,
        verbose_console=args.verbose,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=_resolve_log_level(args.log_level or os.environ.get("GHWATCH_LOG_LEVEL")),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger = logging.getLogger("ghwatch")

    try:
        config = build_app_config(args)
        watcher = build_watcher(config)
    except (GhWatchError, ValueError) as e:
        logger.error("invalid configuration: %s", e)
        return 2

    mode = "once" if args.once else "watch"
    logger.info(
        "ghwatch start: mode=%s config=%s interval_seconds=%g workers=%d queue_size=%d notifiers=%s",
        mode,
        config.config_location,
        config.interval_seconds,
        config.workers,
        config.queue_size,
        ",".join(config.notifiers) if config.notifiers else "<none>",
    )
    if not len(watcher.fan_out):
        logger.warning("no notifiers configured; new activity will be recorded but not delivered")

    try:
        if args.once:
            outcomes = watcher.run_once()
            logger.info("once done: %s", ", ".join(f"{k.value}={v}" for k, v in outcomes.items()) or "<none>")
            return 0

        def _handle_signal(signum, frame) -> None:  # noqa: ANN001, ARG001
            logger.info("received signal %s, stopping", signal.Signals(signum).name)
            watcher.stop()

        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
        watcher.watch()
    except (GhWatchError, OSError, sqlite3.Error) as e:
        logger.error("watch aborted: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
