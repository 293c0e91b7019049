# common/prompt_automation.py
# -*- coding: utf-8 -*-
"""
Drives interactive command line tools without an operator.

The tool is spawned under a pseudo-terminal and fed a fixed transcript of
(expected prompt, response) pairs. Prompts are matched as plain substrings
of the tool's output, so a tool that rewords or reorders its prompts falls
out of step with the transcript; every prompt that is not seen within the
timeout is reported as an automation-desync warning.
"""

import logging
from typing import Any, Callable, List, Optional, Sequence

import pexpect
from pydantic import BaseModel, ConfigDict, field_serializer

from common.command_utils import log_installer
from common.step_result import AUTOMATION_DESYNC_WARNING, StepResult
from installer.config_models import AppSettings

module_logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\r"
HIDDEN_RESPONSE = "<hidden>"


class PromptStep(BaseModel):
    """One expected prompt and the answer sent when it shows up."""
    model_config = ConfigDict(frozen=True)

    prompt: str
    response: str
    description: str
    secret: bool = False

    def __repr_args__(self):
        for name, value in super().__repr_args__():
            if name == "response" and self.secret:
                value = HIDDEN_RESPONSE
            yield name, value

    @field_serializer("response")
    def _hide_secret_response(self, response: str) -> str:
        return HIDDEN_RESPONSE if self.secret else response


def _desync(step_number: int, step: PromptStep, reason: str) -> StepResult:
    return StepResult.warning(
        f"Automation could not confirm step {step_number} ({step.description}): {reason}",
        category=AUTOMATION_DESYNC_WARNING,
    )


def run_prompt_transcript(
    command: List[str],
    transcript: Sequence[PromptStep],
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    timeout: Optional[int] = None,
    spawn: Optional[Callable[..., Any]] = None,
) -> StepResult:
    """
    Run `command` under a pseudo-terminal and answer its prompts from `transcript`.

    For each step the tool's output is searched for the prompt for at most
    `timeout` seconds. On a match the response is sent followed by a carriage
    return. On a timeout a warning is recorded and the response is sent all the
    same, so a tool that merely reworded a prompt still gets its answer. If the
    tool exits early, every step not yet confirmed gets a warning.

    Args:
        command: Program and arguments to spawn.
        transcript: Ordered prompt/response pairs.
        app_settings: The application settings.
        current_logger: Logger to use.
        timeout: Seconds to wait for each prompt; defaults to app_settings.prompt_timeout.
        spawn: Factory creating the pexpect child; pexpect.spawn by default.

    Returns:
        StepResult with one warning per unconfirmed step, plus one if the tool
        exits with a non-zero status.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    wait_seconds = timeout if timeout is not None else app_settings.prompt_timeout
    result = StepResult.success()

    log_installer(
        f"{symbols.get('gear', '⚙️')} Automating '{' '.join(command)}' ({len(transcript)} prompts)",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        child = (spawn or pexpect.spawn)(
            command[0], list(command[1:]), encoding="utf-8", timeout=wait_seconds
        )
    except (pexpect.ExceptionPexpect, OSError) as e:
        return StepResult.warning(
            f"Could not start '{command[0]}': {e}",
            category=AUTOMATION_DESYNC_WARNING,
        )

    try:
        for step_number, step in enumerate(transcript, start=1):
            try:
                child.expect_exact(step.prompt, timeout=wait_seconds)
                log_installer(
                    f"   Prompt {step_number} matched: {step.description}",
                    "debug",
                    logger_to_use,
                    app_settings,
                )
            except pexpect.TIMEOUT:
                result = result.combine(
                    _desync(step_number, step, f"prompt not seen within {wait_seconds}s")
                )
            except pexpect.EOF:
                for remaining_number, remaining in enumerate(
                    transcript[step_number - 1:], start=step_number
                ):
                    result = result.combine(
                        _desync(remaining_number, remaining, "tool exited before the prompt")
                    )
                break
            child.send(step.response + LINE_TERMINATOR)
        else:
            try:
                child.expect(pexpect.EOF, timeout=wait_seconds)
            except pexpect.TIMEOUT:
                result = result.combine(
                    StepResult.warning(
                        f"'{command[0]}' did not exit within {wait_seconds}s after the last prompt",
                        category=AUTOMATION_DESYNC_WARNING,
                    )
                )
    finally:
        child.close()

    if child.exitstatus not in (0, None):
        result = result.combine(
            StepResult.warning(f"'{command[0]}' exited with status {child.exitstatus}")
        )
    return result
