#!/usr/bin/env python3
"""Command-line wrapper for the record distribution pipeline.

All heavy lifting is delegated to ``distributor.runner.run_distribution`` so
that the core logic can also be imported and executed from other Python code.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from pathlib import Path

import yaml

from distributor.runner import run_distribution


def main() -> None:
    parser = argparse.ArgumentParser(description="Distribute a record file across active agents")
    default_base = Path.cwd()

    parser.add_argument("records", help="CSV of normalized rows (firstName, phone, notes)")
    parser.add_argument(
        "--base",
        default=str(default_base),
        help=(
            "Root directory that contains the config/ folder. "
            "Defaults to the current working directory"
        ),
    )
    parser.add_argument(
        "--strategy",
        choices=["equal", "weighted", "priority"],
        default=None,
        help="Distribution strategy (default: from config/settings.yml)",
    )
    parser.add_argument("--uploaded-by", default=os.getenv("USER", "cli"))

    args = parser.parse_args()

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format="%(levelname)s: %(message)s")
    log = logging.getLogger("distribution")

    distribution = asyncio.run(
        run_distribution(
            base=Path(args.base).resolve(),
            records_path=Path(args.records).resolve(),
            strategy=args.strategy,
            uploaded_by=args.uploaded_by,
            log=log,
        )
    )

    report = {
        "distribution": distribution.id,
        "strategy": distribution.strategy.value,
        "summary": distribution.summary.to_dict(),
        "agents": {g.agent_name: g.assigned_count for g in distribution.agents},
    }
    print(yaml.safe_dump(report, sort_keys=False), end="")


if __name__ == "__main__":  # pragma: no cover
    main()
