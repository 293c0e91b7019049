# common/step_result.py
# -*- coding: utf-8 -*-
"""
Result values returned by installation steps.

A step never fails hard: it either succeeds or completes with one or more
warnings that are reported while the installation carries on.
"""

from typing import Tuple

from pydantic import BaseModel, ConfigDict

STEP_WARNING = "step"
AUTOMATION_DESYNC_WARNING = "automation-desync"
SECRET_ACQUISITION_WARNING = "secret-acquisition"


class StepWarning(BaseModel):
    """A single non-fatal problem reported by a step."""
    model_config = ConfigDict(frozen=True)

    category: str = STEP_WARNING
    message: str

    def __str__(self) -> str:
        return self.message


class StepResult(BaseModel):
    """Outcome of a step: ok when it carries no warnings."""
    model_config = ConfigDict(frozen=True)

    warnings: Tuple[StepWarning, ...] = ()

    @classmethod
    def success(cls) -> "StepResult":
        return cls()

    @classmethod
    def warning(cls, message: str, category: str = STEP_WARNING) -> "StepResult":
        return cls(warnings=(StepWarning(category=category, message=message),))

    @property
    def ok(self) -> bool:
        return not self.warnings

    def combine(self, *others: "StepResult") -> "StepResult":
        """Return a result holding this result's warnings followed by those of `others`."""
        combined = list(self.warnings)
        for other in others:
            combined.extend(other.warnings)
        return StepResult(warnings=tuple(combined))

    def has_category(self, category: str) -> bool:
        return any(w.category == category for w in self.warnings)
