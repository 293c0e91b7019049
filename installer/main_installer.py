# installer/main_installer.py
# -*- coding: utf-8 -*-
"""
Builds the ordered sequence of installation steps and runs it.

Steps, in order:
  Update system, Configure permissions, Configure MariaDB server (skipped
  with --no-configure-mariadb), Configure database, Download Nextcloud,
  Configure Apache virtual host, Enable site.
"""

import logging
from typing import List, Optional

from common.debian.apt_manager import AptManager
from common.orchestrator import Orchestrator, StepReport
from common.step_result import StepResult
from configure.apache_configurator import configure_virtual_host, enable_site
from configure.filesystem_configurator import configure_install_directories
from configure.mariadb_configurator import (
    configure_application_database,
    harden_mariadb_server,
)
from configure.nextcloud_deployer import deploy_nextcloud_release
from installer.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def update_system(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> StepResult:
    """Refresh the package cache, upgrade the system and install the web stack."""
    logger_to_use = current_logger if current_logger else module_logger
    apt_manager = AptManager(app_settings, logger_to_use)
    return apt_manager.update_cache().combine(
        apt_manager.upgrade(),
        apt_manager.install(list(app_settings.stack_packages)),
    )


def database_hardening_requested(app_settings: AppSettings) -> bool:
    return not app_settings.skip_database_hardening


def build_installation_orchestrator(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> Orchestrator:
    """Create an Orchestrator holding every installation step in order."""
    orchestrator = Orchestrator(app_settings, current_logger or module_logger)
    orchestrator.add_step("Update system", update_system)
    orchestrator.add_step("Configure permissions", configure_install_directories)
    orchestrator.add_step(
        "Configure MariaDB server",
        harden_mariadb_server,
        guard=database_hardening_requested,
    )
    orchestrator.add_step("Configure database", configure_application_database)
    orchestrator.add_step("Download Nextcloud", deploy_nextcloud_release)
    orchestrator.add_step("Configure Apache virtual host", configure_virtual_host)
    orchestrator.add_step("Enable site", enable_site)
    return orchestrator


def run_installation(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> List[StepReport]:
    """Run the whole installation; warnings never stop it."""
    return build_installation_orchestrator(app_settings, current_logger).run()
