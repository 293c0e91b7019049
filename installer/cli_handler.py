# installer/cli_handler.py
# -*- coding: utf-8 -*-
"""
Handles Command Line Interface (CLI) interactions for the Nextcloud installer.

Every value-taking flag is validated while it is parsed so that a forgotten
value followed by another flag ("--version --quiet") is reported against the
flag that lost its value instead of being swallowed.
"""

import argparse
import logging
import sys
from typing import List, Optional, Sequence, TextIO

from installer import config as static_config

module_logger = logging.getLogger(__name__)

HELP_FLAGS = ("-h", "--help", "--usage")

# Human readable names used in "<name> not specified" messages.
VALUE_FLAG_LABELS = {
    "--version": "Version",
    "--install-dir": "Installation directory",
    "--database-name": "Database name",
    "--database-user": "Database admin user",
    "--config": "Configuration file",
}


class UsageError(Exception):
    """Raised for invalid command line input; fatal before any step runs."""

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class HelpRequested(Exception):
    """Raised when one of the help flags is present."""


class _ValueFlagAction(argparse.Action):
    """Stores a flag value, rejecting missing values and values that look like flags."""

    def __call__(self, parser, namespace, values, option_string=None):
        label = VALUE_FLAG_LABELS.get(option_string, option_string)
        if not values:
            raise UsageError(f"{label} not specified ({option_string})")
        if values.startswith("-"):
            raise UsageError(f"Invalid value for {option_string}: {values}")
        setattr(namespace, self.dest, values)


class _InstallerArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


def _build_parser(prog: str) -> argparse.ArgumentParser:
    parser = _InstallerArgumentParser(
        prog=prog, add_help=False, allow_abbrev=False
    )
    parser.add_argument("-q", "--quiet", action="store_true", default=False)
    parser.add_argument(
        "--version", action=_ValueFlagAction, nargs="?", default=None
    )
    parser.add_argument(
        "--install-dir",
        dest="install_dir",
        action=_ValueFlagAction,
        nargs="?",
        default=None,
    )
    parser.add_argument(
        "--no-configure-mariadb",
        dest="no_configure_mariadb",
        action="store_true",
        default=False,
    )
    parser.add_argument(
        "--database-name",
        dest="database_name",
        action=_ValueFlagAction,
        nargs="?",
        default=None,
    )
    parser.add_argument(
        "--database-user",
        dest="database_user",
        action=_ValueFlagAction,
        nargs="?",
        default=None,
    )
    parser.add_argument(
        "--config", action=_ValueFlagAction, nargs="?", default=None
    )
    return parser


def get_usage_text(prog: str = "install.py") -> str:
    """Return the full usage text shown for help and usage errors."""
    return (
        f"Usage: {prog} [OPTIONS]\n"
        "\n"
        "OPTIONS:\n"
        "  -h, --help, --usage     Prints this help message and exits\n"
        "  -q, --quiet             Turns off verbose logging (default: False)\n"
        "  --version               Install a custom version of Nextcloud\n"
        f"                          (default: {static_config.NEXTCLOUD_VERSION_DEFAULT})\n"
        "  --install-dir           Specifies a custom path for installation\n"
        f"                          (default: \"{static_config.INSTALL_DIR_DEFAULT}\")\n"
        "  --no-configure-mariadb  Does not launch the default MariaDB server\n"
        "                          configuration scriptlet (default: False)\n"
        "  --database-name         Specifies a custom database name\n"
        f"                          (default: \"{static_config.DATABASE_NAME_DEFAULT}\")\n"
        "  --database-user         Specifies a custom database admin user\n"
        f"                          (default: \"{static_config.DATABASE_USER_DEFAULT}\")\n"
        "  --config                Loads settings from a YAML file\n"
        "                          (command line flags take precedence)\n"
    )


def print_usage(
    error_message: Optional[str] = None,
    prog: str = "install.py",
    stream: Optional[TextIO] = None,
) -> None:
    """
    Print the usage text, followed by an error line when one is given.

    Help output goes to stdout; usage errors go to stderr unless a stream
    is passed explicitly.
    """
    if stream is None:
        stream = sys.stderr if error_message else sys.stdout
    stream.write(get_usage_text(prog))
    if error_message:
        stream.write(f"\nError: {error_message}\n")
    stream.flush()


def parse_arguments(
    argv: Sequence[str], prog: str = "install.py"
) -> argparse.Namespace:
    """
    Parse the installer's command line.

    Args:
        argv: Arguments without the program name.
        prog: Program name used in the usage text.

    Returns:
        The parsed namespace. Value flags that were not given are None.

    Raises:
        HelpRequested: If any help flag is present, wherever it appears.
        UsageError: For unknown arguments and missing or invalid values.
    """
    arguments: List[str] = list(argv)
    if any(arg in HELP_FLAGS for arg in arguments):
        raise HelpRequested()

    parser = _build_parser(prog)
    namespace, unknown = parser.parse_known_args(arguments)
    if unknown:
        raise UsageError(f"Argument not recognized: {unknown[0]}")

    module_logger.debug(f"Parsed command line: {vars(namespace)}")
    return namespace
