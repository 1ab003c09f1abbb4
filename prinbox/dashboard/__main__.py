"""Entry point: pr-inbox, or python -m prinbox.dashboard"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ..config import (
    get_config_path,
    get_github_config,
    get_log_config,
    get_seen_path,
    get_timing_config,
    load_config,
)
from ..seen import SeenStore
from .app import InboxApp


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Keyboard-driven inbox for GitHub PR notifications")
    parser.add_argument("--config", type=Path,
                        help="Path to config.yaml (default: $PR_INBOX_CONFIG or ~/.config/pr-inbox/config.yaml)")
    parser.add_argument("--refresh", type=float,
                        help="Poll interval in seconds (default: 600)")
    parser.add_argument("--seen-file", type=Path,
                        help="Path of the seen-notifications JSON file")
    parser.add_argument("--log-level", type=str.upper,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Log level for the dashboard log file")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    config = load_config(args.config or get_config_path())

    log_config = get_log_config(config)
    log_path: Path = log_config["file"]
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(log_path),
        level=args.log_level or log_config["level"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("prinbox")

    timing = get_timing_config(config)
    if args.refresh is not None:
        timing["poll_interval_seconds"] = args.refresh
    seen_store = SeenStore(args.seen_file.expanduser() if args.seen_file else get_seen_path(config))

    try:
        app = InboxApp(
            seen_store=seen_store,
            github_config=get_github_config(config),
            timing=timing,
        )
        app.run()
    except Exception:
        logger.exception("Dashboard crashed")
        raise
    sys.exit(app.return_code or 0)


if __name__ == "__main__":
    main()
