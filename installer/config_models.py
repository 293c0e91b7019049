# installer/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for application configuration.

This module defines the structured settings for the installer,
including defaults, type annotations, and descriptions.
It utilizes Pydantic for data validation and settings management.
Settings are frozen once built: every step receives the same object and
none of them may change it.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from installer import config as static_config

SYMBOLS_DEFAULT: Dict[str, str] = dict(static_config.SYMBOLS)

# MariaDB unquoted identifiers, restricted to what can be embedded safely.
DATABASE_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9_]{1,64}")
VERSION_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9.\-]*")


class ApacheSettings(BaseModel):
    """Apache web server settings."""
    model_config = ConfigDict(frozen=True)

    sites_available_dir: str = Field(
        default=static_config.APACHE_SITES_AVAILABLE_DIR,
        description="Directory holding Apache site definitions.",
    )
    site_name: str = Field(
        default=static_config.APACHE_SITE_NAME_DEFAULT,
        description="Name of the site; the file is <site_name>.conf.",
    )
    service_name: str = Field(
        default=static_config.APACHE_SERVICE_NAME,
        description="systemd unit reloaded after enabling the site.",
    )
    modules: List[str] = Field(
        default_factory=lambda: list(static_config.APACHE_MODULES_DEFAULT),
        description="Apache modules enabled before the site.",
    )
    vhost_template: str = Field(
        default=static_config.VHOST_TEMPLATE_DEFAULT,
        description="Template for the virtual host. Supports placeholders ${hostname}, ${document_root}, "
                    "${error_log_path}, ${access_log_path}; other ${...} references are left for Apache.",
    )

    @property
    def site_config_path(self) -> Path:
        return Path(self.sites_available_dir) / f"{self.site_name}.conf"


class NextcloudSettings(BaseModel):
    """Where the Nextcloud release comes from and how it is checked."""
    model_config = ConfigDict(frozen=True)

    download_base_url: str = Field(
        default=static_config.NEXTCLOUD_DOWNLOAD_BASE_URL,
        description="Base URL of the Nextcloud release archives.",
    )
    signing_key_url: str = Field(
        default=static_config.NEXTCLOUD_SIGNING_KEY_URL,
        description="URL of the public key used to sign the releases.",
    )
    verify_signature: bool = Field(
        default=True, description="Verify the detached signature of the release archive."
    )
    signature_packages: List[str] = Field(
        default_factory=lambda: list(static_config.SIGNATURE_CHECK_PACKAGES),
        description="Packages installed temporarily for the signature check.",
    )
    download_timeout: int = Field(
        default=static_config.DOWNLOAD_TIMEOUT_SECONDS,
        description="Timeout in seconds for each download request.",
    )


class AppSettings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_prefix=static_config.ENV_PREFIX,
        extra="ignore",
        frozen=True,
    )

    verbose: bool = Field(default=True, description="Verbose logging.")
    version: str = Field(
        default=static_config.NEXTCLOUD_VERSION_DEFAULT,
        description="Nextcloud release to install.",
    )
    install_dir: Path = Field(
        default=Path(static_config.INSTALL_DIR_DEFAULT),
        description="Installation directory of Nextcloud.",
    )
    skip_database_hardening: bool = Field(
        default=False,
        description="Do not run the unattended MariaDB hardening wizard.",
    )
    database_name: str = Field(
        default=static_config.DATABASE_NAME_DEFAULT,
        description="Name of the Nextcloud database.",
    )
    database_user: str = Field(
        default=static_config.DATABASE_USER_DEFAULT,
        description="Database user owning the Nextcloud database.",
    )

    web_user: str = Field(default=static_config.WEB_USER_DEFAULT, description="Web server service account.")
    web_group: str = Field(default=static_config.WEB_GROUP_DEFAULT, description="Web server service group.")
    stack_packages: List[str] = Field(
        default_factory=lambda: list(static_config.STACK_PACKAGES),
        description="System packages making up the web application stack.",
    )
    benign_stderr_patterns: List[str] = Field(
        default_factory=lambda: list(static_config.BENIGN_STDERR_PATTERNS),
        description="Substrings of stderr lines that are not treated as warnings.",
    )
    prompt_timeout: int = Field(
        default=static_config.PROMPT_TIMEOUT_SECONDS,
        description="Seconds to wait for each prompt of an automated interactive tool.",
    )
    password_service_url: str = Field(
        default=static_config.PASSWORD_SERVICE_URL,
        description="Endpoint of the password generation service.",
    )
    password_scheme: str = Field(
        default=static_config.PASSWORD_SCHEME_DEFAULT,
        description="Composition scheme of generated passwords (r = letter, n = digit).",
    )
    log_file: Optional[str] = Field(default=None, description="Optional JSON log file.")

    apache: ApacheSettings = Field(default_factory=ApacheSettings)
    nextcloud: NextcloudSettings = Field(default_factory=NextcloudSettings)

    # Static symbols, could also be loaded from a separate static config if preferred
    symbols: Dict[str, str] = Field(default_factory=lambda: dict(SYMBOLS_DEFAULT))

    @field_validator("database_name", "database_user")
    @classmethod
    def check_database_identifier(cls, v: str) -> str:
        if not DATABASE_IDENTIFIER_PATTERN.fullmatch(v):
            raise ValueError(
                f"'{v}' is not a valid database identifier (letters, digits and '_', at most 64 characters)"
            )
        return v

    @field_validator("version")
    @classmethod
    def check_version(cls, v: str) -> str:
        if not VERSION_PATTERN.fullmatch(v):
            raise ValueError(f"'{v}' is not a valid Nextcloud version")
        return v

    @field_validator("install_dir")
    @classmethod
    def check_install_dir(cls, v: Path) -> Path:
        if not v.is_absolute():
            raise ValueError(f"Installation directory '{v}' must be an absolute path")
        return v

    @field_validator("password_scheme")
    @classmethod
    def check_password_scheme(cls, v: str) -> str:
        if not v or set(v) - {"r", "n"}:
            raise ValueError(f"Password scheme '{v}' may only contain 'r' and 'n'")
        return v

    @property
    def public_dir(self) -> Path:
        return self.install_dir / static_config.PUBLIC_SUBDIRECTORY

    @property
    def web_owner(self) -> str:
        return f"{self.web_user}:{self.web_group}"
