"""
Quote Bar Converter CLI

Glue layer: config -> discovery -> fine stage -> coarse stage -> error log.

Usage:
    quotebar-convert [SOURCE_DIR]

SOURCE_DIR defaults to <data_directory>/<tick_subdirectory> from the config
($QUOTEBAR_CONFIG, else configs/base.yaml, else built-in defaults).
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

import yaml

from .config import ConverterConfig, resolve_config
from .driver import BatchConverter
from .errors import FatalStartupError
from .log_config import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_JOB_FAILURES = 1
EXIT_FATAL = 2


def _startup_config(config_path: Optional[str]) -> ConverterConfig:
    try:
        return resolve_config(config_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise FatalStartupError(f"cannot load config: {e}", {"config": str(config_path)}) from e


def cmd_convert(source_dir: Optional[str] = None, *, config_path: Optional[str] = None) -> int:
    """Runs one batch and maps its outcome to a process exit status."""
    try:
        cfg = _startup_config(config_path)
        report = BatchConverter(cfg, source_dir).run()
    except FatalStartupError as e:
        logger.error("QuoteBarConverter: %s", e.message)
        if e.details:
            logger.debug("startup failure details: %s", e.details)
        return EXIT_FATAL

    if report.failed and cfg.fail_on_job_error:
        return EXIT_JOB_FAILURES
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="quotebar-convert",
        description="Convert tick archives into second, minute, hour and daily quote bars.",
    )
    p.add_argument(
        "source_dir",
        nargs="?",
        default=None,
        help="Tick archive root (<root>/<symbol>/<YYYYMMDD>_*.zip|csv). "
        "Defaults to the configured data directory.",
    )
    args = p.parse_args(argv)

    configure_logging()
    return cmd_convert(args.source_dir)


if __name__ == "__main__":
    raise SystemExit(main())
