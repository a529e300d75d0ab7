"""
Schema Registry - lab test types and their ordered, typed field lists.
"""
import logging
from typing import Iterable, List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError, ValidationError
from ..models.base import generate_uuid
from ..models.lab_test import FieldDefinition, FieldType, TestCategory, TestDefinition
from ..models.test_instance import ResultRecord

logger = logging.getLogger(__name__)


def parse_options(raw: Union[str, Iterable[str], None]) -> List[str]:
    """
    Split operator input into dropdown options.
    Comma-separated strings are split; tokens are trimmed and empties dropped.
    Order is preserved and duplicates are kept.
    """
    if raw is None:
        return []
    tokens = raw.split(",") if isinstance(raw, str) else list(raw)
    return [str(t).strip() for t in tokens if t is not None and str(t).strip()]


def _resolve_category(category: Optional[str]) -> str:
    if category is None or not category.strip():
        return TestCategory.UNCATEGORIZED
    category = category.strip()
    if category not in TestCategory.ALL:
        raise ValidationError(
            f"Unknown category '{category}'. Expected one of: {', '.join(TestCategory.ALL)}"
        )
    return category


def create_test(
    db: Session,
    name: str,
    description: str = "",
    category: Optional[str] = None,
) -> TestDefinition:
    if not name or not name.strip():
        raise ValidationError("Test name is required.")

    lab_test = TestDefinition(
        id=generate_uuid(),
        name=name.strip(),
        description=(description or "").strip(),
        category=_resolve_category(category),
    )
    db.add(lab_test)
    db.commit()
    db.refresh(lab_test)
    logger.info("Lab test created: %s (%s)", lab_test.name, lab_test.category)
    return lab_test


def list_tests(db: Session) -> List[TestDefinition]:
    """All lab tests ordered by name, case-insensitive."""
    return (
        db.query(TestDefinition)
        .order_by(func.lower(TestDefinition.name), TestDefinition.name)
        .all()
    )


def get_test(db: Session, test_id: str) -> TestDefinition:
    lab_test = db.query(TestDefinition).filter(TestDefinition.id == test_id).first()
    if not lab_test:
        raise NotFoundError("Lab test", test_id)
    return lab_test


def update_test(
    db: Session,
    test_id: str,
    description: Optional[str] = None,
    category: Optional[str] = None,
) -> TestDefinition:
    """Edit description and/or category. Name and identity are fixed."""
    lab_test = get_test(db, test_id)
    if description is not None:
        lab_test.description = description.strip()
    if category is not None:
        lab_test.category = _resolve_category(category)
    db.commit()
    db.refresh(lab_test)
    return lab_test


def add_field(
    db: Session,
    test_id: str,
    name: str,
    field_type: Union[str, FieldType] = FieldType.TEXT,
    options: Union[str, Iterable[str], None] = None,
    required: bool = False,
    unit: Optional[str] = None,
) -> FieldDefinition:
    lab_test = get_test(db, test_id)

    if not name or not name.strip():
        raise ValidationError("Field name is required.")
    name = name.strip()

    try:
        kind = FieldType.parse(field_type)
    except ValueError:
        raise ValidationError(f"Unknown field type '{field_type}'")

    # Options are only kept for dropdowns
    parsed_options = parse_options(options) if kind == FieldType.ENUMERATED else []
    if kind == FieldType.ENUMERATED and not parsed_options:
        raise ValidationError("Dropdown fields need at least one option.")

    existing = list_fields(db, test_id)
    if any(f.field_name == name for f in existing):
        raise ValidationError(f"Field '{name}' already exists on {lab_test.name}")

    field = FieldDefinition(
        id=generate_uuid(),
        lab_test_id=lab_test.id,
        field_name=name,
        field_type=kind.value,
        field_options=parsed_options or None,
        is_required=bool(required),
        field_order=_next_position(existing),
        unit=unit.strip() if unit and unit.strip() else None,
    )
    db.add(field)
    db.commit()
    db.refresh(field)
    logger.info("Field %s added to %s at position %d", field.field_name, lab_test.name, field.field_order)
    return field


def _next_position(existing: List[FieldDefinition]) -> int:
    # count + 1, bumped past the highest survivor so positions never collide after a deletion
    highest = max((f.field_order for f in existing), default=0)
    return max(len(existing), highest) + 1


def list_fields(db: Session, test_id: str) -> List[FieldDefinition]:
    return (
        db.query(FieldDefinition)
        .filter(FieldDefinition.lab_test_id == test_id)
        .order_by(FieldDefinition.field_order)
        .all()
    )


def remove_field(db: Session, field_id: str) -> None:
    """Delete a field; surviving fields keep their positions."""
    field = db.query(FieldDefinition).filter(FieldDefinition.id == field_id).first()
    if not field:
        raise NotFoundError("Field", field_id)

    # Captured results keep their denormalized name but lose the dangling link
    db.query(ResultRecord).filter(ResultRecord.field_id == field_id).update(
        {ResultRecord.field_id: None}, synchronize_session=False
    )
    field_name, lab_test_id = field.field_name, field.lab_test_id
    db.delete(field)
    db.commit()
    logger.info("Field %s removed from lab test %s", field_name, lab_test_id)
