# configure/filesystem_configurator.py
# -*- coding: utf-8 -*-
"""
Creates the Nextcloud installation directory tree and hands it to the web
server's service account.
"""

import logging
from typing import Optional

from common.command_utils import log_installer, run_step_command
from common.step_result import StepResult
from installer import config as static_config
from installer.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def configure_install_directories(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> StepResult:
    """
    Create the install directory with its 'public' and 'data' subdirectories
    and recursively set their ownership to the web server account.

    Directory and ownership targets are read from `app_settings` only, so
    running this twice on the same tree changes nothing the second time.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    install_dir = app_settings.install_dir

    log_installer(
        f"{symbols.get('step', '➡️')} Creating required folders and setting correct permissions under {install_dir}",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        install_dir.mkdir(parents=True, exist_ok=True)
        for subdirectory in static_config.INSTALL_SUBDIRECTORIES:
            (install_dir / subdirectory).mkdir(exist_ok=True)
    except OSError as e:
        return StepResult.warning(
            f"Error during directory creation: could not create {install_dir}: {e}"
        )

    return run_step_command(
        ["chown", "-R", app_settings.web_owner, str(install_dir)],
        app_settings,
        "ownership change",
        current_logger=logger_to_use,
    )
