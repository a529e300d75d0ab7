"""
Field-level validation of submitted lab results.

Pure functions: nothing here touches the database, so every rule can be
exercised against a hand-built FieldSchema.
"""
import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from ..core.exceptions import FieldError, FieldErrorKind
from ..models.lab_test import FieldType


@dataclass(frozen=True)
class FieldSchema:
    """Immutable view of a field definition as the validator needs it."""
    name: str
    field_type: FieldType
    required: bool = False
    options: Tuple[str, ...] = field(default_factory=tuple)
    unit: Optional[str] = None
    id: Optional[str] = None

    @classmethod
    def from_model(cls, model) -> "FieldSchema":
        return cls(
            name=model.field_name,
            field_type=FieldType.parse(model.field_type),
            required=bool(model.is_required),
            options=tuple(model.field_options or ()),
            unit=model.unit,
            id=model.id,
        )


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _validate_numeric(schema: FieldSchema, value: str) -> str:
    try:
        number = float(value)
    except ValueError:
        raise FieldError(schema.name, FieldErrorKind.NOT_NUMERIC, f"{schema.name} must be a number")
    # float() also accepts digit separators such as "1_000"
    if not math.isfinite(number) or "_" in value:
        raise FieldError(schema.name, FieldErrorKind.NOT_NUMERIC, f"{schema.name} must be a number")
    return value


def _validate_option(schema: FieldSchema, value: str) -> str:
    # Exact, case-sensitive match
    if value not in schema.options:
        raise FieldError(
            schema.name,
            FieldErrorKind.INVALID_OPTION,
            f"{schema.name} must be one of: {', '.join(schema.options)}",
        )
    return value


def validate(schema: FieldSchema, raw_value: Optional[str]) -> Optional[str]:
    """
    Validate one submitted value.

    Returns the trimmed value to store, or None when the value is blank on an
    optional field (the field is then left out of the result batch).
    Raises FieldError otherwise.
    """
    if _is_blank(raw_value):
        if schema.required:
            raise FieldError(schema.name, FieldErrorKind.REQUIRED, f"{schema.name} is required")
        return None

    value = str(raw_value).strip()

    if schema.field_type == FieldType.NUMERIC:
        return _validate_numeric(schema, value)
    if schema.field_type == FieldType.ENUMERATED:
        return _validate_option(schema, value)
    if schema.field_type in (FieldType.TEXT, FieldType.MULTILINE):
        return value
    raise ValueError(f"Unhandled field type: {schema.field_type}")


def validate_all(
    schemas: List[FieldSchema],
    values: Mapping[str, Optional[str]],
) -> Tuple[Dict[str, str], List[FieldError]]:
    """
    Validate a submission against its schemas. A required field missing from
    the submission fails the same way as a blank one.
    Returns (normalized values by field name, collected errors).
    """
    normalized: Dict[str, str] = {}
    errors: List[FieldError] = []
    for schema in schemas:
        try:
            value = validate(schema, values.get(schema.name))
        except FieldError as exc:
            errors.append(exc)
            continue
        if value is not None:
            normalized[schema.name] = value
    return normalized, errors
