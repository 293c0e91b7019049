# common/command_utils.py
# -*- coding: utf-8 -*-
"""
Utilities for executing shell commands and logging their output.

Two flavours of runner live here. `run_command` and `run_elevated_command`
raise on a non-zero exit code when `check` is set. `run_step_command` never
raises: it classifies the outcome of a command into a StepResult, treating
anything left on stderr after filtering known-benign noise as a warning.
"""

import logging
import os
import subprocess
from typing import Dict, Iterable, List, Optional, Union

from common.step_result import StepResult
from installer.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)


def _symbols(app_settings: Optional[AppSettings]) -> Dict[str, str]:
    return (
        app_settings.symbols
        if app_settings and app_settings.symbols
        else SYMBOLS_DEFAULT
    )


def log_installer(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs messages to an installer logger at a defined logging level.

    Args:
        message (str): The log message to be recorded.
        level (str): The severity level of the log message. Defaults to "info". Common options
            include "debug", "info", "success", "warning", "error", and "critical".
            "success" is logged at INFO level.
        current_logger (Optional[logging.Logger]): A logger instance to use for logging. If not provided,
            a module-level logger will be used.
        app_settings (Optional[AppSettings]): Optional application settings that can influence logging behavior.
        exc_info (bool): Indicator to include exception details in the log. By default, this is set to False.
    """
    effective_logger = current_logger if current_logger else module_logger

    if level == "warning":
        effective_logger.warning(message, exc_info=exc_info)
    elif level == "error":
        effective_logger.error(message, exc_info=exc_info)
    elif level == "critical":
        effective_logger.critical(message, exc_info=exc_info)
    elif level == "debug":
        effective_logger.debug(message, exc_info=exc_info)
    else:
        effective_logger.info(message, exc_info=exc_info)


def get_elevated_command_prefix() -> List[str]:
    """
    Determines the command prefix that ensures elevated privileges when required.

    Returns:
        List[str]: ["sudo"] if the process is not running as root, otherwise an
        empty list.
    """
    return [] if os.geteuid() == 0 else ["sudo"]


def run_command(
    command: Union[List[str], str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    shell: bool = False,
    capture_output: bool = False,
    text: bool = True,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a system command and logs the process details and results.

    Args:
        command (Union[List[str], str]): The system command to execute. If shell mode is
            enabled and the input is a list, elements will be joined into a single string.
        app_settings (Optional[AppSettings]): Application settings, used for logging symbols.
        check (bool): Whether to raise a CalledProcessError when a non-zero exit code is returned.
        shell (bool): If True, the system command will be executed in a shell.
        capture_output (bool): Whether to capture standard output and standard error.
        text (bool): Indicates if the output streams should be interpreted as text.
        cmd_input (Optional[str]): Input passed to the command's standard input. Never logged.
        current_logger (Optional[logging.Logger]): A logger to use for logging details.
        cwd (Optional[str]): Working directory for the command.
        env (Optional[Dict[str, str]]): Environment for the command.

    Returns:
        subprocess.CompletedProcess: The completed process instance.

    Raises:
        subprocess.CalledProcessError: If the process returns a non-zero exit code and
            `check` is True.
        FileNotFoundError: If the executable does not exist.
    """
    effective_logger = current_logger if current_logger else module_logger
    symbols = _symbols(app_settings)
    command_to_run: Union[List[str], str]

    if shell:
        command_to_run = (
            " ".join(command) if isinstance(command, list) else command
        )
        command_to_log_str = str(command_to_run)
    elif isinstance(command, str):
        log_installer(
            f"{symbols.get('warning', '!')} Running string command '{command}' without shell=True. Consider list format.",
            "warning",
            effective_logger,
            app_settings,
        )
        command_to_run = command.split()
        command_to_log_str = command
    else:
        command_to_run = command
        command_to_log_str = subprocess.list2cmdline(command)

    log_installer(
        f"{symbols.get('gear', '⚙️')} Executing: {command_to_log_str} {f'(in {cwd})' if cwd else ''}",
        "debug",
        effective_logger,
        app_settings,
    )
    try:
        return subprocess.run(
            command_to_run,
            check=check,
            shell=shell,
            capture_output=capture_output,
            text=text,
            input=cmd_input,
            cwd=cwd,
            env=env,
        )
    except subprocess.CalledProcessError as e:
        log_installer(
            f"{symbols.get('error', '❌')} Command `{command_to_log_str}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
            app_settings,
        )
        if e.stderr and hasattr(e.stderr, "strip") and e.stderr.strip():
            log_installer(
                f"   stderr: {e.stderr.strip()}",
                "error",
                effective_logger,
                app_settings,
            )
        raise
    except FileNotFoundError as e:
        log_installer(
            f"{symbols.get('error', '❌')} Command not found: {e.filename}. Ensure it's installed and in PATH.",
            "error",
            effective_logger,
            app_settings,
        )
        raise


def run_elevated_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Executes a command with elevated permissions, prefixing it with sudo when the
    process is not already running as root. See run_command for the arguments.
    """
    prefix = get_elevated_command_prefix()
    return run_command(
        prefix + list(command),
        app_settings,
        check=check,
        shell=False,
        capture_output=capture_output,
        text=True,
        cmd_input=cmd_input,
        current_logger=current_logger,
        cwd=cwd,
        env=env,
    )


def filter_benign_stderr(stderr: Optional[str], patterns: Iterable[str]) -> str:
    """
    Drop blank lines and lines containing any of `patterns` from stderr output.

    Returns:
        The remaining lines joined with newlines; empty when nothing is left.
    """
    if not stderr:
        return ""
    pattern_list = list(patterns)
    kept = [
        line.rstrip()
        for line in stderr.splitlines()
        if line.strip() and not any(p in line for p in pattern_list)
    ]
    return "\n".join(kept)


def run_step_command(
    command: List[str],
    app_settings: AppSettings,
    description: str,
    current_logger: Optional[logging.Logger] = None,
    elevated: bool = True,
    cmd_input: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> StepResult:
    """
    Run one external command on behalf of an installation step and classify it.

    Stdout is only logged when the settings are verbose. Stderr is filtered
    through `filter_benign_stderr`; whatever remains turns the result into a
    warning. The exit code is not interpreted here and never raises.

    Args:
        command: The command as an argument list.
        app_settings: The application settings.
        description: Short text naming what the command does, used in warnings.
        current_logger: Logger to use.
        elevated: Prefix the command with sudo when not running as root.
        cmd_input: Text passed on stdin. Never logged.
        env: Environment for the command.

    Returns:
        StepResult.success() or a warning carrying the filtered stderr text.
    """
    logger_to_use = current_logger if current_logger else module_logger
    runner = run_elevated_command if elevated else run_command
    try:
        result = runner(
            command,
            app_settings,
            check=False,
            capture_output=True,
            cmd_input=cmd_input,
            current_logger=logger_to_use,
            env=env,
        )
    except FileNotFoundError as e:
        return StepResult.warning(
            f"Error during {description}: command not found: {e.filename or command[0]}"
        )
    except OSError as e:
        return StepResult.warning(f"Error during {description}: {e}")

    if app_settings.verbose and result.stdout and result.stdout.strip():
        log_installer(
            f"   stdout: {result.stdout.strip()}",
            "info",
            logger_to_use,
            app_settings,
        )

    filtered = filter_benign_stderr(
        result.stderr, app_settings.benign_stderr_patterns
    )
    if filtered:
        return StepResult.warning(f"Error during {description}: {filtered}")
    return StepResult.success()
