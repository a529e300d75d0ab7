"""
Error taxonomy for the lab workflow engine.

Every failure is scoped to the single operation that raised it; the API layer
maps these onto HTTP responses in ``error_handlers.py``.
"""
from enum import Enum
from typing import List, Optional


class LabDeskError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LabDeskError):
    """Malformed or missing input to a schema or aggregation call."""


class NotFoundError(LabDeskError):
    """Reference to a lab test, field, patient or test instance that does not exist."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class PreconditionError(LabDeskError):
    """A workflow trigger was invoked while its guard does not hold."""


class FieldErrorKind(str, Enum):
    REQUIRED = "required"
    NOT_NUMERIC = "not_numeric"
    INVALID_OPTION = "invalid_option"


class FieldError(LabDeskError):
    """A single submitted value failed validation against its field definition."""

    def __init__(self, field_name: str, kind: FieldErrorKind, message: Optional[str] = None):
        super().__init__(message or f"{field_name}: {kind.value}")
        self.field_name = field_name
        self.kind = kind

    def to_dict(self) -> dict:
        return {"field": self.field_name, "kind": self.kind.value, "message": self.message}


class PipelineErrorKind(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    NO_DATA = "no_data"


class PipelineError(LabDeskError):
    """A results submission was rejected as a whole; nothing was persisted."""

    def __init__(self, kind: PipelineErrorKind, details: Optional[List[FieldError]] = None):
        self.kind = kind
        self.details = list(details or [])
        if kind == PipelineErrorKind.NO_DATA:
            message = "No data to save."
        else:
            message = "Validation failed: " + "; ".join(e.message for e in self.details)
        super().__init__(message)
