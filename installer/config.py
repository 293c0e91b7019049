# installer/config.py
# -*- coding: utf-8 -*-
"""
Centralized static constants and definitions for the Nextcloud installer.

This module defines truly static values, such as default package lists,
well-known paths of the target system, logging symbols and the endpoints of
the external services the installer talks to.

Runtime configuration (install directory, database names, verbosity) is
handled by 'installer/config_models.py' and 'installer/config_loader.py'.
"""

SCRIPT_VERSION: str = "1.0.0"

SYMBOLS: dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "lock": "🔒",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
}

# Environment prefix for settings overrides, e.g. NEXTCLOUD_INSTALL_DIR.
ENV_PREFIX: str = "NEXTCLOUD_"

# --- Nextcloud ---
NEXTCLOUD_VERSION_DEFAULT: str = "18.0.4"
INSTALL_DIR_DEFAULT: str = "/var/www/nextcloud"
NEXTCLOUD_DOWNLOAD_BASE_URL: str = "https://download.nextcloud.com/server/releases"
NEXTCLOUD_SIGNING_KEY_URL: str = "https://nextcloud.com/nextcloud.asc"
# Subdirectories created below the install directory.
INSTALL_SUBDIRECTORIES: tuple[str, ...] = ("public", "data")
PUBLIC_SUBDIRECTORY: str = "public"

# --- MariaDB ---
DATABASE_NAME_DEFAULT: str = "nextcloud"
DATABASE_USER_DEFAULT: str = "nextcloud_admin"
DATABASE_ROOT_USER: str = "root"
DATABASE_HARDENING_COMMAND: str = "mysql_secure_installation"
PROMPT_TIMEOUT_SECONDS: int = 10

# --- Password generation service ---
PASSWORD_SERVICE_URL: str = "https://www.passwordrandom.com/query"
# r = random letter, n = random digit
PASSWORD_SCHEME_DEFAULT: str = "rrnnnrrnrnnnrrnrnnrr"
PASSWORD_SERVICE_TIMEOUT_SECONDS: int = 30

# --- Apache ---
WEB_USER_DEFAULT: str = "www-data"
WEB_GROUP_DEFAULT: str = "www-data"
APACHE_SITES_AVAILABLE_DIR: str = "/etc/apache2/sites-available"
APACHE_SITE_NAME_DEFAULT: str = "cloud"
APACHE_SERVICE_NAME: str = "apache2"
APACHE_MODULES_DEFAULT: list[str] = ["rewrite", "headers", "env", "dir", "mime"]

VHOST_TEMPLATE_DEFAULT: str = """\
<VirtualHost *:80>
    ServerName ${hostname}
    DocumentRoot ${document_root}

    <Directory ${document_root}>
            Options FollowSymlinks
            AllowOverride All
            Require all granted
    </Directory>

    ErrorLog ${error_log_path}
    CustomLog ${access_log_path} combined
</VirtualHost>
"""

# --- Package lists (for apt installation) ---
STACK_PACKAGES: list[str] = [
    "apache2",
    "mariadb-server",
    "libapache2-mod-php",
    "php-gd",
    "php-mysql",
    "php-curl",
    "php-mbstring",
    "php-intl",
    "php-gmp",
    "php-bcmath",
    "php-xml",
    "php-imagick",
    "php-zip",
]

# Installed only for the duration of the release signature check.
SIGNATURE_CHECK_PACKAGES: list[str] = ["gnupg"]

# Diagnostic stderr lines that do not indicate a problem.
BENIGN_STDERR_PATTERNS: list[str] = [
    "stable CLI interface",
]

DOWNLOAD_TIMEOUT_SECONDS: int = 120
