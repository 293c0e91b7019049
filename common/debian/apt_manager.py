# common/debian/apt_manager.py
# -*- coding: utf-8 -*-
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple, Union

from common.command_utils import run_command, run_step_command
from common.step_result import StepResult
from installer.config_models import AppSettings

# sudo resets the environment, so the frontend is set on the command line itself.
NONINTERACTIVE_PREFIX = ["env", "DEBIAN_FRONTEND=noninteractive"]


class AptManager:
    """
    Runs the package manager steps of the installation: cache update, system
    upgrade, package installation and temporary dependencies.

    Every operation returns a StepResult. Stderr noise from apt's "does not
    have a stable CLI interface" notice is filtered out by run_step_command.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initializes the AptManager.
        Args:
            app_settings: The application settings.
            logger: An optional logging object.
        """
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(__name__)

    def _apt(self, arguments: List[str], description: str) -> StepResult:
        return run_step_command(
            NONINTERACTIVE_PREFIX + ["apt"] + arguments,
            self.app_settings,
            description,
            current_logger=self.logger,
        )

    def is_installed(self, pkg_name: str) -> bool:
        # dpkg-query exits 1 for a package it has never seen.
        try:
            result = run_command(
                ["dpkg-query", "-W", "-f=${db:Status-Status}", pkg_name],
                self.app_settings,
                capture_output=True,
                check=False,
                current_logger=self.logger,
            )
        except FileNotFoundError:
            return False
        return result.returncode == 0 and result.stdout.strip() == "installed"

    def update_cache(self) -> StepResult:
        """Refresh the package lists ('apt update')."""
        self.logger.info("Updating package cache...")
        return self._apt(["update"], "package cache update")

    def upgrade(self) -> StepResult:
        """Upgrade all installed packages ('apt -y upgrade')."""
        self.logger.info("Upgrading system packages...")
        return self._apt(["-y", "upgrade"], "system package updates")

    def install(self, packages: Union[List[str], str]) -> StepResult:
        """
        Installs the given packages, skipping those already installed.

        Args:
            packages: A single package name or a list of package names.
        """
        if not isinstance(packages, list):
            packages = [packages]

        packages_to_install = []
        for pkg_name in packages:
            if self.is_installed(pkg_name):
                self.logger.debug(
                    f"Package '{pkg_name}' is already installed. Skipping."
                )
            else:
                packages_to_install.append(pkg_name)

        if not packages_to_install:
            self.logger.info("All requested packages are already installed.")
            return StepResult.success()

        self.logger.info(
            f"Committing installation for: {', '.join(packages_to_install)}"
        )
        return self._apt(
            ["-y", "install"] + packages_to_install, "package installations"
        )

    def install_temporary(self, packages: List[str]) -> Tuple[List[str], StepResult]:
        """
        Install packages needed only for a while.

        Returns:
            The packages this call actually installed (those that were missing
            before) and the result of the installation.
        """
        missing = [pkg for pkg in packages if not self.is_installed(pkg)]
        if not missing:
            return [], StepResult.success()
        self.logger.info(
            f"Installing temporary dependencies: {', '.join(missing)}"
        )
        result = self._apt(["-y", "install"] + missing, "package installations")
        return missing, result

    def remove_temporary(self, packages: List[str]) -> StepResult:
        """Purge temporary dependencies ('apt -y remove --purge')."""
        if not packages:
            return StepResult.success()
        self.logger.info(
            f"Removing temporary dependencies: {', '.join(packages)}"
        )
        return self._apt(
            ["-y", "remove", "--purge"] + packages, "package removals"
        )

    @contextmanager
    def temporary_packages(
        self, packages: List[str], results: List[StepResult]
    ) -> Iterator[None]:
        """
        Keep `packages` installed for the duration of the block.

        Only packages missing on entry are removed on exit, whatever way the
        block is left. The install and removal results are appended to
        `results`.
        """
        installed, install_result = self.install_temporary(packages)
        results.append(install_result)
        try:
            yield
        finally:
            results.append(self.remove_temporary(installed))
