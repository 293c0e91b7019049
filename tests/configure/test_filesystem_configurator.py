from common.step_result import StepResult
from configure.filesystem_configurator import configure_install_directories
from installer.config_models import AppSettings


def test_creates_tree_and_changes_owner(mocker, tmp_path, mock_logger):
    settings = AppSettings(install_dir=tmp_path / "nextcloud")
    run_step = mocker.patch(
        "configure.filesystem_configurator.run_step_command",
        return_value=StepResult.success(),
    )

    result = configure_install_directories(settings, mock_logger)

    assert result.ok
    assert (tmp_path / "nextcloud" / "public").is_dir()
    assert (tmp_path / "nextcloud" / "data").is_dir()
    run_step.assert_called_once()
    assert run_step.call_args.args[0] == [
        "chown", "-R", "www-data:www-data", str(tmp_path / "nextcloud")
    ]


def test_second_run_changes_nothing(mocker, tmp_path):
    settings = AppSettings(install_dir=tmp_path / "nextcloud")
    run_step = mocker.patch(
        "configure.filesystem_configurator.run_step_command",
        return_value=StepResult.success(),
    )
    marker = tmp_path / "nextcloud" / "data" / "keep.txt"

    configure_install_directories(settings)
    marker.write_text("kept")
    result = configure_install_directories(settings)

    assert result.ok
    assert marker.read_text() == "kept"
    assert sorted(p.name for p in (tmp_path / "nextcloud").iterdir()) == ["data", "public"]
    assert run_step.call_args_list[0] == run_step.call_args_list[1]


def test_custom_owner(mocker, tmp_path):
    settings = AppSettings(install_dir=tmp_path / "cloud", web_user="apache", web_group="web")
    run_step = mocker.patch(
        "configure.filesystem_configurator.run_step_command",
        return_value=StepResult.success(),
    )

    configure_install_directories(settings)

    assert run_step.call_args.args[0][2] == "apache:web"


def test_uncreatable_directory_is_warning(mocker, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    settings = AppSettings(install_dir=blocker / "nextcloud")
    run_step = mocker.patch("configure.filesystem_configurator.run_step_command")

    result = configure_install_directories(settings)

    assert not result.ok
    assert result.warnings[0].message.startswith("Error during directory creation")
    run_step.assert_not_called()
