# configure/nextcloud_deployer.py
# -*- coding: utf-8 -*-
"""
Downloads a Nextcloud release archive, checks its detached signature and
unpacks it into the public directory of the installation.

Nothing is extracted unless the download (and, when enabled, the signature
check) succeeded.
"""

import logging
import os
import tarfile
import tempfile
from pathlib import Path, PurePosixPath
from typing import List, Optional, Union

import requests

from common.command_utils import log_installer, run_command, run_step_command
from common.debian.apt_manager import AptManager
from common.step_result import StepResult
from installer.config_models import AppSettings

module_logger = logging.getLogger(__name__)

ARCHIVE_ROOT = "nextcloud"


class DownloadError(Exception):
    """A release file could not be fetched."""


class UnsafeArchiveError(Exception):
    """An archive member would be written outside the target directory."""


def release_archive_url(app_settings: AppSettings) -> str:
    base_url = app_settings.nextcloud.download_base_url.rstrip("/")
    return f"{base_url}/nextcloud-{app_settings.version}.tar.bz2"


def download_file(
    url: str,
    destination: Union[str, Path],
    timeout: int,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Stream `url` into `destination`.

    Raises:
        DownloadError: On any HTTP, connection or file error.
    """
    logger_to_use = current_logger if current_logger else module_logger
    download_path = Path(destination)
    response: Optional[requests.Response] = None
    logger_to_use.debug(f"Downloading {url} to {download_path}")

    try:
        response = requests.get(url, stream=True, timeout=timeout)
        response.raise_for_status()
        with open(download_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                if chunk:
                    f.write(chunk)
    except requests.exceptions.HTTPError as http_err:
        status_code = response.status_code if response is not None else "Unknown"
        raise DownloadError(f"HTTP error for {url}: status {status_code}") from http_err
    except requests.exceptions.RequestException as req_err:
        raise DownloadError(f"could not download {url}: {req_err}") from req_err
    except OSError as io_err:
        raise DownloadError(f"could not save {url} to {download_path}: {io_err}") from io_err
    finally:
        if response is not None:
            response.close()
    return download_path


def verify_release_signature(
    archive_path: Path,
    signature_path: Path,
    key_path: Path,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> StepResult:
    """
    Check `signature_path` against `archive_path` with gpg, trusting only
    `key_path`. A throw-away GnuPG home keeps the operator's keyrings untouched.
    """
    logger_to_use = current_logger if current_logger else module_logger

    # gpg reports progress on stderr even when it succeeds; only the exit code counts.
    with tempfile.TemporaryDirectory(prefix="nextcloud-gpg-") as gpg_home:
        os.chmod(gpg_home, 0o700)
        base_command = ["gpg", "--batch", "--homedir", gpg_home]
        try:
            imported = run_command(
                base_command + ["--import", str(key_path)],
                app_settings,
                check=False,
                capture_output=True,
                current_logger=logger_to_use,
            )
            if imported.returncode != 0:
                return StepResult.warning(
                    f"Error during signing key import: {imported.stderr.strip()}"
                )
            verified = run_command(
                base_command + ["--verify", str(signature_path), str(archive_path)],
                app_settings,
                check=False,
                capture_output=True,
                current_logger=logger_to_use,
            )
        except FileNotFoundError:
            return StepResult.warning(
                "Error during signature verification: command not found: gpg"
            )
    if verified.returncode != 0:
        return StepResult.warning(
            f"Signature verification failed for {archive_path.name}: {verified.stderr.strip()}"
        )
    return StepResult.success()


def _stripped_member_name(name: str) -> Optional[str]:
    parts = PurePosixPath(name).parts
    if parts and parts[0] == ARCHIVE_ROOT:
        parts = parts[1:]
    if not parts:
        return None
    if PurePosixPath(name).is_absolute() or ".." in parts:
        raise UnsafeArchiveError(f"refusing archive member '{name}'")
    return str(PurePosixPath(*parts))


def extract_release(archive_path: Path, target_dir: Path) -> int:
    """
    Unpack the release below `target_dir`, dropping the leading 'nextcloud/'
    directory of every member.

    Returns:
        The number of members extracted.

    Raises:
        UnsafeArchiveError: If a member would land outside `target_dir`.
        tarfile.TarError, OSError: If the archive cannot be read or written.
    """
    selected: List[tarfile.TarInfo] = []
    with tarfile.open(archive_path, "r:*") as tar:
        for member in tar.getmembers():
            stripped = _stripped_member_name(member.name)
            if stripped is None:
                continue
            if member.islnk():
                linked = _stripped_member_name(member.linkname)
                if linked is None:
                    raise UnsafeArchiveError(f"refusing hard link '{member.name}'")
                member.linkname = linked
            member.name = stripped
            selected.append(member)
        target_dir.mkdir(parents=True, exist_ok=True)
        tar.extractall(target_dir, members=selected, filter="data")
    return len(selected)


def deploy_nextcloud_release(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> StepResult:
    """
    Fetch the configured Nextcloud release, verify it and unpack it into
    <install_dir>/public, then hand the tree back to the web server account.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    nextcloud = app_settings.nextcloud
    archive_url = release_archive_url(app_settings)
    public_dir = app_settings.public_dir

    log_installer(
        f"{symbols.get('package', '📦')} Downloading Nextcloud {app_settings.version} from {archive_url}",
        "info",
        logger_to_use,
        app_settings,
    )
    results: List[StepResult] = []
    with tempfile.TemporaryDirectory(prefix="nextcloud-release-") as work_dir:
        archive_path = Path(work_dir) / Path(archive_url).name
        try:
            download_file(archive_url, archive_path, nextcloud.download_timeout, logger_to_use)
            if nextcloud.verify_signature:
                signature_path = download_file(
                    f"{archive_url}.asc",
                    Path(work_dir) / f"{archive_path.name}.asc",
                    nextcloud.download_timeout,
                    logger_to_use,
                )
                key_path = download_file(
                    nextcloud.signing_key_url,
                    Path(work_dir) / "nextcloud.asc",
                    nextcloud.download_timeout,
                    logger_to_use,
                )
        except DownloadError as e:
            return StepResult.warning(f"Error during release download: {e}")

        if nextcloud.verify_signature:
            apt_manager = AptManager(app_settings, logger_to_use)
            with apt_manager.temporary_packages(nextcloud.signature_packages, results):
                verification = verify_release_signature(
                    archive_path, signature_path, key_path, app_settings, logger_to_use
                )
            results.append(verification)
            if not verification.ok:
                return StepResult.success().combine(*results)
            log_installer(
                f"{symbols.get('lock', '🔒')} Release signature verified",
                "info",
                logger_to_use,
                app_settings,
            )

        try:
            count = extract_release(archive_path, public_dir)
        except (UnsafeArchiveError, tarfile.TarError, OSError) as e:
            results.append(StepResult.warning(f"Error during release extraction: {e}"))
            return StepResult.success().combine(*results)

    log_installer(
        f"{symbols.get('success', '✅')} Extracted {count} entries into {public_dir}",
        "success",
        logger_to_use,
        app_settings,
    )
    results.append(
        run_step_command(
            ["chown", "-R", app_settings.web_owner, str(public_dir)],
            app_settings,
            "ownership change",
            current_logger=logger_to_use,
        )
    )
    return StepResult.success().combine(*results)


