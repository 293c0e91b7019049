# common/orchestrator.py
# -*- coding: utf-8 -*-
"""
Centralized orchestrator for running the ordered installation steps.

Steps never stop the run: a warning is reported and the next step starts.
An unexpected exception inside a step is logged and turned into a warning
so that nothing crosses a step boundary.
"""

import logging
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from common.step_result import StepResult
from installer.config_models import AppSettings

StepAction = Callable[[AppSettings, Optional[logging.Logger]], StepResult]
StepGuard = Callable[[AppSettings], bool]


class Step(BaseModel):
    """One guarded, ordered unit of installation work."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    action: StepAction
    guard: Optional[StepGuard] = None

    def should_run(self, app_settings: AppSettings) -> bool:
        return self.guard is None or bool(self.guard(app_settings))


class StepReport(BaseModel):
    """What happened to a step during a run."""
    model_config = ConfigDict(frozen=True)

    name: str
    skipped: bool = False
    result: Optional[StepResult] = None


class Orchestrator:
    """A centralized orchestrator to run a series of defined steps."""

    def __init__(
        self,
        app_settings: AppSettings,
        orchestrator_logger: Optional[logging.Logger] = None,
    ):
        """
        Initializes the Orchestrator.

        Args:
            app_settings: The frozen application settings handed to every step.
            orchestrator_logger: An optional logger instance.
        """
        self.app_settings = app_settings
        self.logger = orchestrator_logger or logging.getLogger(__name__)
        self._steps: List[Step] = []

    @property
    def steps(self) -> tuple:
        return tuple(self._steps)

    def add_step(
        self,
        name: str,
        action: StepAction,
        guard: Optional[StepGuard] = None,
    ) -> None:
        """
        Appends a step to the sequence.

        Args:
            name: A human-readable name for the step.
            action: Called with (app_settings, logger); returns a StepResult.
            guard: Optional predicate on the settings; the step is skipped when
                it returns False.
        """
        self._steps.append(Step(name=name, action=action, guard=guard))
        self.logger.debug(f"Step '{name}' added to the sequence.")

    def _run_step(self, step: Step) -> StepResult:
        try:
            result = step.action(self.app_settings, self.logger)
        except Exception as e:
            self.logger.error(
                f"🔥 Step '{step.name}' raised an unexpected error: {e}",
                exc_info=True,
            )
            return StepResult.warning(f"Unexpected error during {step.name}: {e}")
        if not isinstance(result, StepResult):
            return StepResult.warning(
                f"Step '{step.name}' did not report a result "
                f"(returned {type(result).__name__})"
            )
        return result

    def run(self) -> List[StepReport]:
        """
        Executes all steps in sequence, evaluating each guard first.

        Returns:
            One StepReport per step, in order.
        """
        symbols = self.app_settings.symbols
        reports: List[StepReport] = []
        self.logger.info("Installation started.")

        for index, step in enumerate(self._steps, start=1):
            if not step.should_run(self.app_settings):
                self.logger.info(
                    f"--- Stage {index}: Skipping '{step.name}' ---"
                )
                reports.append(StepReport(name=step.name, skipped=True))
                continue

            self.logger.info(
                f"--- {symbols.get('step', '➡️')} Stage {index}: {step.name} ---"
            )
            result = self._run_step(step)
            for warning in result.warnings:
                self.logger.warning(f"{symbols.get('warning', '⚠️')} {warning.message}")
            if result.ok:
                self.logger.info(
                    f"{symbols.get('success', '✅')} '{step.name}' completed successfully."
                )
            reports.append(StepReport(name=step.name, result=result))

        self._log_summary(reports)
        return reports

    def _log_summary(self, reports: List[StepReport]) -> None:
        symbols = self.app_settings.symbols
        skipped = [r.name for r in reports if r.skipped]
        with_warnings = [
            r.name for r in reports if r.result is not None and not r.result.ok
        ]
        ran = len(reports) - len(skipped)
        if with_warnings:
            self.logger.warning(
                f"{symbols.get('warning', '⚠️')} Installation finished: {ran} steps run, "
                f"{len(skipped)} skipped, completed with warnings: {', '.join(with_warnings)}"
            )
        else:
            self.logger.info(
                f"{symbols.get('sparkles', '✨')} Installation finished: {ran} steps run, "
                f"{len(skipped)} skipped, no warnings."
            )
