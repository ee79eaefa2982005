"""
Command-line entry point running the article store HTTP service.

Settings are read from ``ARTICLES_*`` environment variables first; command-line
flags override them.
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from dataclasses import replace

import uvicorn

from .api import create_app
from .config import ServiceConfig

_LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Article store CRUD service")
    parser.add_argument("--host", help="Interface to bind (env: ARTICLES_HOST)")
    parser.add_argument("--port", type=int, help="TCP port to listen on (env: ARTICLES_PORT)")
    parser.add_argument("--data-file", help="Snapshot file path (env: ARTICLES_DATA_FILE)")
    parser.add_argument("--log-level", help="Logging level (env: ARTICLES_LOG_LEVEL)")
    parser.add_argument(
        "--no-persistence",
        action="store_true",
        help="Serve seed data from memory only, without a snapshot file",
    )
    parser.add_argument(
        "--atomic-writes",
        action="store_true",
        help="Write snapshots through a temporary file and rename",
    )
    return parser


def build_config(args: argparse.Namespace) -> ServiceConfig:
    """Merge parsed command-line flags over the environment configuration."""
    config = ServiceConfig.from_env()
    persistence = config.persistence
    if args.data_file:
        persistence = replace(persistence, snapshot_path=args.data_file)
    if args.no_persistence:
        persistence = replace(persistence, enabled=False)
    if args.atomic_writes:
        persistence = replace(persistence, atomic_writes=True)
    return replace(
        config,
        host=args.host or config.host,
        port=args.port or config.port,
        log_level=args.log_level or config.log_level,
        persistence=persistence,
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    config = build_config(args)
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _LOGGER.info("Server starting on %s:%s", config.host, config.port)
    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
