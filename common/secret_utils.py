# common/secret_utils.py
# -*- coding: utf-8 -*-
"""
Short-lived secrets: the prompted database root password and the generated
application database password.

A Secret keeps its value in a mutable buffer so it can be overwritten once
its consumer is done with it. Steps hold secrets in a `with` block, which
wipes the buffer on every exit path.
"""

import getpass
import logging
import string
from typing import Callable, Optional

import requests

from common.command_utils import log_installer
from installer import config as static_config
from installer.config_models import AppSettings

module_logger = logging.getLogger(__name__)

GENERATED_SECRET_ALPHABET = frozenset(string.ascii_letters + string.digits)


class SecretAcquisitionError(Exception):
    """Raised when no usable secret could be obtained."""


class SecretWipedError(ValueError):
    """Raised when a wiped secret is read."""


class Secret:
    """A sensitive value that is wiped explicitly when its scope ends."""

    __slots__ = ("label", "_buffer", "_wiped")

    def __init__(self, value: str, label: str = "secret"):
        self.label = label
        self._buffer = bytearray(value.encode("utf-8"))
        self._wiped = False

    def reveal(self) -> str:
        if self._wiped:
            raise SecretWipedError(f"Secret '{self.label}' has already been wiped")
        return self._buffer.decode("utf-8")

    def wipe(self) -> None:
        for index in range(len(self._buffer)):
            self._buffer[index] = 0
        self._buffer.clear()
        self._wiped = True

    @property
    def is_wiped(self) -> bool:
        return self._wiped

    def __len__(self) -> int:
        return len(self._buffer)

    def __enter__(self) -> "Secret":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else "hidden"
        return f"<Secret {self.label} [{state}]>"

    __str__ = __repr__


def wipe_secret(secret: Optional[Secret]) -> None:
    """Wipe `secret` if there is one; safe to call more than once."""
    if secret is not None:
        secret.wipe()


def prompt_secret(
    label: str,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    read_password: Optional[Callable[[str], str]] = None,
) -> Secret:
    """
    Read a secret from the controlling terminal with echo disabled.

    Args:
        label: Prompt text shown to the operator.
        app_settings: The application settings.
        current_logger: Logger to use.
        read_password: Reader used for the echo-less prompt; getpass by default.

    Returns:
        The secret typed by the operator.

    Raises:
        SecretAcquisitionError: On end of input or an empty answer.
    """
    logger_to_use = current_logger if current_logger else module_logger
    try:
        value = (read_password or getpass.getpass)(label)
    except EOFError as e:
        raise SecretAcquisitionError(f"No input available for '{label.strip()}'") from e

    value = value.rstrip("\r\n")
    if not value:
        raise SecretAcquisitionError(f"Empty value given for '{label.strip()}'")

    log_installer(
        f"{app_settings.symbols.get('lock', '')} Secret read from terminal.",
        "debug",
        logger_to_use,
        app_settings,
    )
    return Secret(value, label="prompted")


def _is_usable_generated_secret(value: str, scheme: str) -> bool:
    return len(value) == len(scheme) and set(value) <= GENERATED_SECRET_ALPHABET


def generate_secret(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> Secret:
    """
    Fetch a generated password from the password service.

    The service is asked for a password following `app_settings.password_scheme`
    and answers with the bare password as plain text. The answer is only
    accepted when it has exactly one character per scheme position and
    consists of letters and digits.

    Raises:
        SecretAcquisitionError: On network or HTTP errors and on empty or
            malformed responses.
    """
    logger_to_use = current_logger if current_logger else module_logger
    params = {
        "command": "password",
        "format": "plain",
        "scheme": app_settings.password_scheme,
    }
    log_installer(
        f"{app_settings.symbols.get('lock', '')} Requesting a generated password from {app_settings.password_service_url}",
        "debug",
        logger_to_use,
        app_settings,
    )
    response: Optional[requests.Response] = None
    try:
        response = requests.get(
            app_settings.password_service_url,
            params=params,
            timeout=static_config.PASSWORD_SERVICE_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except requests.exceptions.HTTPError as http_err:
        status_code = response.status_code if response is not None else "Unknown"
        raise SecretAcquisitionError(
            f"Password service returned HTTP {status_code}: {http_err}"
        ) from http_err
    except requests.exceptions.RequestException as req_err:
        raise SecretAcquisitionError(
            f"Password service request failed: {req_err}"
        ) from req_err

    value = response.text.strip()
    if not value:
        raise SecretAcquisitionError("Password service returned an empty response")
    if not _is_usable_generated_secret(value, app_settings.password_scheme):
        raise SecretAcquisitionError(
            "Password service returned an unexpected response "
            f"({len(value)} characters, expected {len(app_settings.password_scheme)} letters and digits)"
        )
    return Secret(value, label="generated")
