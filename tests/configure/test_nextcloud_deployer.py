import io
import shutil
import tarfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from common.step_result import StepResult
from configure.nextcloud_deployer import (
    DownloadError,
    UnsafeArchiveError,
    deploy_nextcloud_release,
    download_file,
    extract_release,
    release_archive_url,
    verify_release_signature,
)
from installer.config_models import AppSettings


def _make_archive(path: Path, members: dict) -> Path:
    with tarfile.open(path, "w:bz2") as tar:
        for name, content in members.items():
            if content is None:
                info = tarfile.TarInfo(name)
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tar.addfile(info)
                continue
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return path


@pytest.fixture
def release_archive(tmp_path):
    return _make_archive(
        tmp_path / "nextcloud-18.0.4.tar.bz2",
        {
            "nextcloud": None,
            "nextcloud/index.php": "<?php // index",
            "nextcloud/lib": None,
            "nextcloud/lib/base.php": "<?php // base",
        },
    )


def test_release_archive_url():
    settings = AppSettings(
        version="19.0.1",
        nextcloud={"download_base_url": "https://mirror.example.org/releases/"},
    )
    assert release_archive_url(settings) == (
        "https://mirror.example.org/releases/nextcloud-19.0.1.tar.bz2"
    )


class TestDownloadFile:
    def test_streams_to_destination(self, mocker, tmp_path):
        response = MagicMock()
        response.iter_content.return_value = [b"abc", b"", b"def"]
        get = mocker.patch("configure.nextcloud_deployer.requests.get", return_value=response)

        path = download_file("https://example.org/a.tar.bz2", tmp_path / "a.tar.bz2", 120)

        assert path.read_bytes() == b"abcdef"
        get.assert_called_once_with("https://example.org/a.tar.bz2", stream=True, timeout=120)
        response.close.assert_called_once()

    def test_http_error(self, mocker, tmp_path):
        response = MagicMock(status_code=404)
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("404")
        mocker.patch("configure.nextcloud_deployer.requests.get", return_value=response)

        with pytest.raises(DownloadError, match="status 404"):
            download_file("https://example.org/missing", tmp_path / "x", 120)

    def test_connection_error(self, mocker, tmp_path):
        mocker.patch(
            "configure.nextcloud_deployer.requests.get",
            side_effect=requests.exceptions.ConnectionError("refused"),
        )
        with pytest.raises(DownloadError, match="could not download"):
            download_file("https://example.org/a", tmp_path / "x", 120)


class TestExtractRelease:
    def test_strips_leading_directory(self, tmp_path, release_archive):
        target = tmp_path / "public"

        count = extract_release(release_archive, target)

        assert count == 3
        assert (target / "index.php").read_text() == "<?php // index"
        assert (target / "lib" / "base.php").is_file()
        assert not (target / "nextcloud").exists()

    @pytest.mark.parametrize("bad_name", ["nextcloud/../../etc/evil", "/etc/evil"])
    def test_refuses_escaping_members(self, tmp_path, bad_name):
        archive = _make_archive(tmp_path / "bad.tar.bz2", {bad_name: "x"})
        with pytest.raises(UnsafeArchiveError):
            extract_release(archive, tmp_path / "public")
        assert not (tmp_path / "etc").exists()

    def test_corrupt_archive(self, tmp_path):
        archive = tmp_path / "broken.tar.bz2"
        archive.write_bytes(b"not a tarball")
        with pytest.raises(tarfile.TarError):
            extract_release(archive, tmp_path / "public")


class TestVerifyReleaseSignature:
    def test_good_signature(self, mocker, app_settings, completed_process, tmp_path):
        run_cmd = mocker.patch(
            "configure.nextcloud_deployer.run_command",
            return_value=completed_process(stderr="gpg: Good signature"),
        )

        result = verify_release_signature(
            tmp_path / "a.tar.bz2", tmp_path / "a.tar.bz2.asc", tmp_path / "key.asc", app_settings
        )

        assert result.ok
        import_cmd, verify_cmd = [c.args[0] for c in run_cmd.call_args_list]
        assert import_cmd[:2] == ["gpg", "--batch"]
        assert import_cmd[-2:] == ["--import", str(tmp_path / "key.asc")]
        assert verify_cmd[-3:] == [
            "--verify", str(tmp_path / "a.tar.bz2.asc"), str(tmp_path / "a.tar.bz2")
        ]

    def test_bad_signature(self, mocker, app_settings, completed_process, tmp_path):
        mocker.patch(
            "configure.nextcloud_deployer.run_command",
            side_effect=[
                completed_process(),
                completed_process(returncode=1, stderr="gpg: BAD signature"),
            ],
        )
        result = verify_release_signature(
            tmp_path / "a.tar.bz2", tmp_path / "a.tar.bz2.asc", tmp_path / "key.asc", app_settings
        )
        assert "BAD signature" in result.warnings[0].message

    def test_gpg_missing(self, mocker, app_settings, tmp_path):
        mocker.patch("configure.nextcloud_deployer.run_command", side_effect=FileNotFoundError())
        result = verify_release_signature(
            tmp_path / "a", tmp_path / "a.asc", tmp_path / "k", app_settings
        )
        assert "command not found: gpg" in result.warnings[0].message


class TestDeployNextcloudRelease:
    @pytest.fixture
    def settings(self, tmp_path):
        return AppSettings(install_dir=tmp_path / "nextcloud")

    @pytest.fixture
    def fake_download(self, mocker, release_archive):
        def _download(url, destination, timeout, current_logger=None):
            if url.endswith(".tar.bz2"):
                shutil.copy(release_archive, destination)
            else:
                Path(destination).write_text("signature or key")
            return Path(destination)

        return mocker.patch(
            "configure.nextcloud_deployer.download_file", side_effect=_download
        )

    @pytest.fixture
    def apt_manager(self, mocker):
        manager_cls = mocker.patch("configure.nextcloud_deployer.AptManager")
        manager = manager_cls.return_value
        manager.temporary_packages.return_value.__enter__.return_value = None
        manager.temporary_packages.return_value.__exit__.return_value = False
        return manager

    def test_verified_release_is_extracted(
        self, mocker, settings, fake_download, apt_manager, mock_logger
    ):
        verify = mocker.patch(
            "configure.nextcloud_deployer.verify_release_signature",
            return_value=StepResult.success(),
        )
        run_step = mocker.patch(
            "configure.nextcloud_deployer.run_step_command",
            return_value=StepResult.success(),
        )

        result = deploy_nextcloud_release(settings, mock_logger)

        assert result.ok
        assert [c.args[0] for c in fake_download.call_args_list] == [
            "https://download.nextcloud.com/server/releases/nextcloud-18.0.4.tar.bz2",
            "https://download.nextcloud.com/server/releases/nextcloud-18.0.4.tar.bz2.asc",
            "https://nextcloud.com/nextcloud.asc",
        ]
        verify.assert_called_once()
        assert apt_manager.temporary_packages.call_args.args[0] == ["gnupg"]
        assert (settings.public_dir / "index.php").is_file()
        assert run_step.call_args.args[0] == [
            "chown", "-R", "www-data:www-data", str(settings.public_dir)
        ]

    def test_bad_signature_extracts_nothing(
        self, mocker, settings, fake_download, apt_manager
    ):
        mocker.patch(
            "configure.nextcloud_deployer.verify_release_signature",
            return_value=StepResult.warning("Signature verification failed"),
        )
        run_step = mocker.patch("configure.nextcloud_deployer.run_step_command")

        result = deploy_nextcloud_release(settings)

        assert not result.ok
        assert not settings.public_dir.exists()
        run_step.assert_not_called()

    def test_download_failure_is_warning(self, mocker, settings):
        mocker.patch(
            "configure.nextcloud_deployer.download_file",
            side_effect=DownloadError("HTTP error: status 404"),
        )
        manager_cls = mocker.patch("configure.nextcloud_deployer.AptManager")

        result = deploy_nextcloud_release(settings)

        assert result.warnings[0].message == (
            "Error during release download: HTTP error: status 404"
        )
        manager_cls.assert_not_called()
        assert not settings.public_dir.exists()

    def test_signature_check_can_be_disabled(self, mocker, tmp_path, fake_download):
        settings = AppSettings(
            install_dir=tmp_path / "nextcloud", nextcloud={"verify_signature": False}
        )
        manager_cls = mocker.patch("configure.nextcloud_deployer.AptManager")
        mocker.patch(
            "configure.nextcloud_deployer.run_step_command",
            return_value=StepResult.success(),
        )

        result = deploy_nextcloud_release(settings)

        assert result.ok
        assert fake_download.call_count == 1
        manager_cls.assert_not_called()
        assert (settings.public_dir / "lib" / "base.php").is_file()
