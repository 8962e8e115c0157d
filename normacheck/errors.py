"""Exception hierarchy for the compliance engine."""

from __future__ import annotations


class NormacheckError(Exception):
    """Base class for all engine errors."""


class InvalidProjectShape(NormacheckError):
    """A structurally required project field is absent or has the wrong type.

    Raised by :meth:`ComplianceEngine.analyze_specialty` before the cascade
    runs.  The project-level analysis catches it per specialty.
    """

    def __init__(self, specialty: str, message: str) -> None:
        super().__init__(f"{specialty}: {message}")
        self.specialty = specialty
        self.message = message


class UnknownSpecialtyError(NormacheckError):
    """Raised when a specialty name is not registered."""


class RuleEvaluationError(NormacheckError):
    """A single rule could not be evaluated."""


class ExpressionSyntaxError(RuleEvaluationError):
    """Raised when a formula or condition cannot be parsed."""


class UndefinedFieldError(RuleEvaluationError):
    """Raised when a rule references a field the project does not define."""

    def __init__(self, path: str) -> None:
        super().__init__(f"field '{path}' is not defined")
        self.path = path


class ExpressionTypeError(RuleEvaluationError):
    """Raised when an expression operates on values of the wrong type."""
