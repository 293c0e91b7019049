from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from common.step_result import StepResult
from configure.apache_configurator import (
    VirtualHostSpec,
    configure_virtual_host,
    enable_site,
    is_valid_hostname,
    prompt_for_hostname,
    render_virtual_host,
)
from installer.config_models import AppSettings


@pytest.mark.parametrize(
    "hostname, valid",
    [
        ("cloud.example.org", True),
        ("localhost", True),
        ("cloud.example.org.", True),
        ("a-b.c1", True),
        ("", False),
        ("-cloud.example.org", False),
        ("cloud..example.org", False),
        ("cloud example.org", False),
        ("cloud.example.org\n<VirtualHost *:80>", False),
        ("a" * 64 + ".org", False),
    ],
)
def test_is_valid_hostname(hostname, valid):
    assert is_valid_hostname(hostname) is valid


class TestVirtualHostSpec:
    def test_from_settings(self, app_settings):
        spec = VirtualHostSpec.from_settings(app_settings, "cloud.example.org")
        assert spec.document_root == Path("/var/www/nextcloud/public")
        assert spec.error_log_path == Path("/var/www/nextcloud/error.log")
        assert spec.access_log_path == Path("/var/www/nextcloud/access.log")

    def test_rejects_invalid_hostname(self, app_settings):
        with pytest.raises(ValidationError):
            VirtualHostSpec.from_settings(app_settings, "bad host")

    def test_rejects_control_characters_in_paths(self):
        with pytest.raises(ValidationError):
            VirtualHostSpec(
                hostname="cloud.example.org",
                document_root=Path("/srv/cloud\n/public"),
                error_log_path=Path("/srv/error.log"),
                access_log_path=Path("/srv/access.log"),
            )


def test_render_default_template(app_settings):
    spec = VirtualHostSpec.from_settings(app_settings, "cloud.example.org")

    rendered = render_virtual_host(spec, app_settings.apache.vhost_template)

    assert "ServerName cloud.example.org" in rendered
    assert 'DocumentRoot "/var/www/nextcloud/public"' in rendered
    assert '<Directory "/var/www/nextcloud/public">' in rendered
    assert 'ErrorLog "/var/www/nextcloud/error.log"' in rendered
    assert 'CustomLog "/var/www/nextcloud/access.log" combined' in rendered
    assert "AllowOverride All" in rendered


def test_render_escapes_quotes_in_paths():
    spec = VirtualHostSpec(
        hostname="cloud.example.org",
        document_root=Path('/srv/my "cloud"/public'),
        error_log_path=Path("/srv/error.log"),
        access_log_path=Path("/srv/access.log"),
    )
    rendered = render_virtual_host(spec, "DocumentRoot ${document_root}")
    assert rendered == 'DocumentRoot "/srv/my \\"cloud\\"/public"'


def test_render_keeps_apache_variables():
    spec = VirtualHostSpec(
        hostname="cloud.example.org",
        document_root=Path("/srv/cloud/public"),
        error_log_path=Path("/srv/error.log"),
        access_log_path=Path("/srv/access.log"),
    )
    template = (
        "ServerName ${hostname}\n"
        "ErrorLog ${APACHE_LOG_DIR}/nextcloud-error.log\n"
        "CustomLog ${APACHE_LOG_DIR}/nextcloud-access.log combined\n"
    )

    rendered = render_virtual_host(spec, template)

    assert rendered == (
        "ServerName cloud.example.org\n"
        "ErrorLog ${APACHE_LOG_DIR}/nextcloud-error.log\n"
        "CustomLog ${APACHE_LOG_DIR}/nextcloud-access.log combined\n"
    )


def test_prompt_for_hostname_strips_input(app_settings):
    assert prompt_for_hostname(app_settings, lambda _: "  cloud.example.org \n") == (
        "cloud.example.org"
    )


class TestConfigureVirtualHost:
    def test_writes_site_file_through_tee(self, mocker, app_settings, mock_logger):
        run_step = mocker.patch(
            "configure.apache_configurator.run_step_command",
            return_value=StepResult.success(),
        )

        result = configure_virtual_host(
            app_settings, mock_logger, read_line=lambda _: "cloud.example.org"
        )

        assert result.ok
        assert run_step.call_args.args[0] == [
            "tee", "/etc/apache2/sites-available/cloud.conf"
        ]
        assert "ServerName cloud.example.org" in run_step.call_args.kwargs["cmd_input"]

    def test_site_name_from_settings(self, mocker):
        settings = AppSettings(apache={"site_name": "nextcloud"}, install_dir="/srv/nc")
        run_step = mocker.patch(
            "configure.apache_configurator.run_step_command",
            return_value=StepResult.success(),
        )

        configure_virtual_host(settings, read_line=lambda _: "nc.example.org")

        assert run_step.call_args.args[0][1] == "/etc/apache2/sites-available/nextcloud.conf"
        assert 'DocumentRoot "/srv/nc/public"' in run_step.call_args.kwargs["cmd_input"]

    @pytest.mark.parametrize(
        "read_line",
        [
            lambda _: "bad host\nInclude /etc/passwd",
            lambda _: "",
            MagicMock(side_effect=EOFError),
        ],
    )
    def test_invalid_or_missing_hostname_writes_nothing(self, mocker, app_settings, read_line):
        run_step = mocker.patch("configure.apache_configurator.run_step_command")

        result = configure_virtual_host(app_settings, read_line=read_line)

        run_step.assert_not_called()
        assert not result.ok
        assert result.warnings[0].message.startswith("Virtual host not written")

    def test_write_failure_is_warning(self, mocker, app_settings):
        mocker.patch(
            "configure.apache_configurator.run_step_command",
            return_value=StepResult.warning("Error during writing: Permission denied"),
        )
        result = configure_virtual_host(app_settings, read_line=lambda _: "cloud.example.org")
        assert not result.ok


def test_enable_site(mocker, app_settings):
    run_step = mocker.patch(
        "configure.apache_configurator.run_step_command",
        return_value=StepResult.success(),
    )

    result = enable_site(app_settings)

    assert result.ok
    assert [c.args[0] for c in run_step.call_args_list] == [
        ["a2enmod", "-q", "rewrite", "headers", "env", "dir", "mime"],
        ["a2ensite", "-q", "cloud"],
        ["systemctl", "reload", "apache2"],
    ]


def test_enable_site_collects_warnings(mocker, app_settings):
    mocker.patch(
        "configure.apache_configurator.run_step_command",
        side_effect=[
            StepResult.success(),
            StepResult.warning("Error during site activation: ERROR: Site cloud does not exist!"),
            StepResult.warning("Error during apache2 reload: failed"),
        ],
    )
    result = enable_site(app_settings)
    assert len(result.warnings) == 2
