# configure/mariadb_configurator.py
# -*- coding: utf-8 -*-
"""
Handles configuration of MariaDB: the unattended run of the server's
hardening wizard and the creation of the Nextcloud database and its user.
"""

import logging
from typing import List, Optional, Tuple

from common.command_utils import (
    get_elevated_command_prefix,
    log_installer,
    run_step_command,
)
from common.prompt_automation import PromptStep, run_prompt_transcript
from common.secret_utils import (
    SecretAcquisitionError,
    generate_secret,
    prompt_secret,
)
from common.step_result import SECRET_ACQUISITION_WARNING, StepResult
from installer import config as static_config
from installer.config_models import AppSettings

module_logger = logging.getLogger(__name__)

ROOT_PASSWORD_PROMPT = "Please type a `root` password for mysql database: "


def build_hardening_transcript(root_password: str) -> Tuple[PromptStep, ...]:
    """
    Prompt/response protocol of mysql_secure_installation, in the order the
    wizard asks its questions.
    """
    return (
        PromptStep(
            prompt="Enter current password for root (enter for none):",
            response="",
            description="accept the current empty root password",
        ),
        PromptStep(
            prompt="Set root password?",
            response="y",
            description="choose to set a root password",
        ),
        PromptStep(
            prompt="New password:",
            response=root_password,
            description="enter the new root password",
            secret=True,
        ),
        PromptStep(
            prompt="Re-enter new password:",
            response=root_password,
            description="confirm the new root password",
            secret=True,
        ),
        PromptStep(
            prompt="Remove anonymous users?",
            response="y",
            description="remove anonymous accounts",
        ),
        PromptStep(
            prompt="Disallow root login remotely?",
            response="y",
            description="disallow remote root login",
        ),
        PromptStep(
            prompt="Remove test database and access to it?",
            response="y",
            description="remove the test database",
        ),
        PromptStep(
            prompt="Reload privilege tables now?",
            response="y",
            description="reload privilege tables",
        ),
    )


def harden_mariadb_server(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> StepResult:
    """
    Ask the operator for a MariaDB root password and run the hardening wizard
    unattended with it.

    The root password is wiped when this function returns, whatever the
    outcome; later steps authenticate through the local socket instead.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols

    try:
        root_secret = prompt_secret(
            ROOT_PASSWORD_PROMPT, app_settings, logger_to_use
        )
    except SecretAcquisitionError as e:
        return StepResult.warning(
            f"MariaDB hardening skipped: {e}",
            category=SECRET_ACQUISITION_WARNING,
        )

    with root_secret:
        log_installer(
            f"{symbols.get('lock', '🔒')} Configuring MariaDB in unattended mode",
            "info",
            logger_to_use,
            app_settings,
        )
        transcript = build_hardening_transcript(root_secret.reveal())
        command = get_elevated_command_prefix() + [
            static_config.DATABASE_HARDENING_COMMAND
        ]
        result = run_prompt_transcript(
            command,
            transcript,
            app_settings,
            current_logger=logger_to_use,
        )
    return result


def build_database_statements(
    database_name: str, database_user: str, password: str
) -> List[str]:
    """
    SQL creating the application database and granting its user full
    privileges on it, followed by a privilege reload.

    The names are expected to be validated identifiers (see AppSettings).
    """
    escaped_password = password.replace("\\", "\\\\").replace("'", "\\'")
    return [
        f"CREATE DATABASE IF NOT EXISTS `{database_name}`;",
        f"GRANT ALL PRIVILEGES ON `{database_name}`.* TO '{database_user}'@'localhost' "
        f"IDENTIFIED BY '{escaped_password}';",
        "FLUSH PRIVILEGES;",
    ]


def _announce_database_credentials(app_settings: AppSettings, password: str) -> None:
    # Shown once so the Nextcloud web setup can be completed; never logged.
    print(
        f"\nNextcloud database '{app_settings.database_name}', user "
        f"'{app_settings.database_user}', password: {password}\n"
        "Write the password down now, it is not stored anywhere.\n",
        flush=True,
    )


def configure_application_database(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> StepResult:
    """
    Create the Nextcloud database and its user, identified by a freshly
    generated password.

    Each statement is a separate `mysql` invocation with the SQL on stdin, so
    one failing statement does not keep the next from running. Without a
    usable generated password no statement is issued at all.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols

    log_installer(
        f"{symbols.get('step', '➡️')} Creating Nextcloud database with associated login",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        user_secret = generate_secret(app_settings, logger_to_use)
    except SecretAcquisitionError as e:
        return StepResult.warning(
            f"Database configuration aborted: {e}",
            category=SECRET_ACQUISITION_WARNING,
        )

    result = StepResult.success()
    with user_secret:
        statements = build_database_statements(
            app_settings.database_name,
            app_settings.database_user,
            user_secret.reveal(),
        )
        mysql_command = ["mysql", f"--user={static_config.DATABASE_ROOT_USER}"]
        for number, statement in enumerate(statements, start=1):
            result = result.combine(
                run_step_command(
                    mysql_command,
                    app_settings,
                    f"database statement {number} of {len(statements)}",
                    current_logger=logger_to_use,
                    cmd_input=statement,
                )
            )
        if result.ok:
            _announce_database_credentials(app_settings, user_secret.reveal())
    return result
