# configure/apache_configurator.py
# -*- coding: utf-8 -*-
"""
Handles configuration of the Apache web server: renders the Nextcloud
virtual host, writes it to sites-available and enables the site.
"""
import logging
import re
import string
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from common.command_utils import log_installer, run_step_command
from common.step_result import StepResult
from installer.config_models import AppSettings

module_logger = logging.getLogger(__name__)

HOSTNAME_PROMPT = "Please type the FQDN Nextcloud should run on: "

HOSTNAME_LABEL_PATTERN = re.compile(r"(?!-)[A-Za-z0-9-]{1,63}(?<!-)")
CONTROL_CHARACTERS_PATTERN = re.compile(r"[\x00-\x1f\x7f]")


def is_valid_hostname(hostname: str) -> bool:
    """Check `hostname` against RFC 1123: dot separated labels, 253 characters at most."""
    if not hostname or len(hostname) > 253:
        return False
    labels = hostname[:-1].split(".") if hostname.endswith(".") else hostname.split(".")
    return all(HOSTNAME_LABEL_PATTERN.fullmatch(label) for label in labels)


def quote_apache_argument(value: str) -> str:
    """Return `value` as a double-quoted Apache directive argument."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class VirtualHostSpec(BaseModel):
    """Values substituted into the virtual host template."""
    model_config = ConfigDict(frozen=True)

    hostname: str
    document_root: Path
    error_log_path: Path
    access_log_path: Path

    @field_validator("hostname")
    @classmethod
    def check_hostname(cls, v: str) -> str:
        if not is_valid_hostname(v):
            raise ValueError(f"'{v}' is not a valid host name")
        return v

    @field_validator("document_root", "error_log_path", "access_log_path")
    @classmethod
    def check_path(cls, v: Path) -> Path:
        if not v.is_absolute():
            raise ValueError(f"'{v}' must be an absolute path")
        if CONTROL_CHARACTERS_PATTERN.search(str(v)):
            raise ValueError(f"'{v}' contains control characters")
        return v

    @classmethod
    def from_settings(cls, app_settings: AppSettings, hostname: str) -> "VirtualHostSpec":
        return cls(
            hostname=hostname,
            document_root=app_settings.public_dir,
            error_log_path=app_settings.install_dir / "error.log",
            access_log_path=app_settings.install_dir / "access.log",
        )


def render_virtual_host(spec: VirtualHostSpec, template: str) -> str:
    """
    Substitute the virtual host values into `template`, quoting the paths for
    Apache. Unknown ${...} references such as ${APACHE_LOG_DIR} are kept as
    written so Apache can expand them.
    """
    return string.Template(template).safe_substitute(
        hostname=spec.hostname,
        document_root=quote_apache_argument(str(spec.document_root)),
        error_log_path=quote_apache_argument(str(spec.error_log_path)),
        access_log_path=quote_apache_argument(str(spec.access_log_path)),
    )


def prompt_for_hostname(
    app_settings: AppSettings,
    read_line: Optional[Callable[[str], str]] = None,
) -> Optional[str]:
    """Ask the operator for the FQDN; None when no input is available."""
    try:
        return (read_line or input)(HOSTNAME_PROMPT).strip()
    except EOFError:
        return None


def configure_virtual_host(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    read_line: Optional[Callable[[str], str]] = None,
) -> StepResult:
    """
    Ask for the host name, render the virtual host and write it to
    <sites_available_dir>/<site_name>.conf.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols

    hostname = prompt_for_hostname(app_settings, read_line)
    if hostname is None:
        return StepResult.warning("Virtual host not written: no host name was entered")

    try:
        spec = VirtualHostSpec.from_settings(app_settings, hostname)
    except ValidationError as e:
        first = e.errors()[0]["msg"].removeprefix("Value error, ")
        return StepResult.warning(f"Virtual host not written: {first}")

    log_installer(
        f"{symbols.get('step', '➡️')} Configuring Apache2 to serve {spec.hostname} from {spec.document_root}",
        "info",
        logger_to_use,
        app_settings,
    )
    content = render_virtual_host(spec, app_settings.apache.vhost_template)
    site_config_path = app_settings.apache.site_config_path
    result = run_step_command(
        ["tee", str(site_config_path)],
        app_settings,
        f"writing {site_config_path}",
        current_logger=logger_to_use,
        cmd_input=content,
    )
    if result.ok:
        log_installer(
            f"{symbols.get('success', '✅')} Virtual host written to {site_config_path}",
            "success",
            logger_to_use,
            app_settings,
        )
    return result


def enable_site(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> StepResult:
    """Enable the required Apache modules and the Nextcloud site, then reload Apache."""
    logger_to_use = current_logger if current_logger else module_logger
    apache = app_settings.apache

    log_installer(
        f"{app_settings.symbols.get('rocket', '🚀')} Enabling site '{apache.site_name}'",
        "info",
        logger_to_use,
        app_settings,
    )
    result = StepResult.success()
    if apache.modules:
        result = result.combine(
            run_step_command(
                ["a2enmod", "-q"] + list(apache.modules),
                app_settings,
                "Apache module activation",
                current_logger=logger_to_use,
            )
        )
    return result.combine(
        run_step_command(
            ["a2ensite", "-q", apache.site_name],
            app_settings,
            "site activation",
            current_logger=logger_to_use,
        ),
        run_step_command(
            ["systemctl", "reload", apache.service_name],
            app_settings,
            f"{apache.service_name} reload",
            current_logger=logger_to_use,
        ),
    )
