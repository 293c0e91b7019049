#!/usr/bin/env python3
# filename: install.py
# -*- coding: utf-8 -*-
"""
Entry point for the Nextcloud installer.

Provisions Apache, MariaDB and PHP on a Debian-family host, creates the
Nextcloud database, fetches the release and publishes it as an Apache site.
"""

import sys
from typing import List, Optional

from common.logging_config import setup_logging
from installer import config as static_config
from installer.cli_handler import (
    HelpRequested,
    UsageError,
    parse_arguments,
    print_usage,
)
from installer.config_loader import load_app_settings
from installer.main_installer import run_installation

PROG_NAME = "install.py"


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the installer.

    Returns:
        0 after a completed run (warnings included) or when help was shown,
        the usage error's exit code when the command line or configuration is
        invalid.
    """
    arguments = sys.argv[1:] if argv is None else argv
    try:
        cli_args = parse_arguments(arguments, prog=PROG_NAME)
        app_settings = load_app_settings(cli_args)
    except HelpRequested:
        print_usage(prog=PROG_NAME)
        return 0
    except UsageError as e:
        print_usage(e.message, prog=PROG_NAME)
        return e.exit_code

    try:
        logger = setup_logging(
            verbose=app_settings.verbose, log_file_path=app_settings.log_file
        )
    except OSError as e:
        print_usage(
            f"Cannot open log file {app_settings.log_file}: {e.strerror or e}",
            prog=PROG_NAME,
        )
        return 1
    logger.info(f"Nextcloud installer {static_config.SCRIPT_VERSION}")
    logger.debug(f"Effective settings: {app_settings.model_dump(exclude={'symbols'})}")

    run_installation(app_settings, logger)
    return 0


if __name__ == "__main__":
    sys.exit(main())
