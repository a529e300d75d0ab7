"""
Results capture pipeline.

Validates a data-entry submission against the lab test's current field schema
and persists it as one ResultRecord per non-blank value. Completing the test
instance and inserting its records happen in a single transaction.
"""
import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError, PipelineError, PipelineErrorKind, PreconditionError
from ..models.base import generate_uuid
from ..models.test_instance import ResultRecord, TestInstance, TestStatus
from .schema_registry import list_fields
from .validation import FieldSchema, validate_all

logger = logging.getLogger(__name__)


def get_test_instance(db: Session, test_instance_id: str) -> TestInstance:
    instance = db.query(TestInstance).filter(TestInstance.id == test_instance_id).first()
    if not instance:
        raise NotFoundError("Test", test_instance_id)
    return instance


def _build_records(
    test_instance_id: str,
    normalized: Dict[str, str],
    schemas: Dict[str, FieldSchema],
) -> List[ResultRecord]:
    return [
        ResultRecord(
            id=generate_uuid(),
            test_id=test_instance_id,
            field_id=schemas[name].id,
            field_name=name,
            field_value=value,
        )
        for name, value in normalized.items()
    ]


def _persist(
    db: Session,
    instance: TestInstance,
    normalized: Dict[str, str],
    schemas: Dict[str, FieldSchema],
) -> None:
    try:
        # Conditional flip: a concurrent submission for the same test sees 0 rows
        updated = (
            db.query(TestInstance)
            .filter(TestInstance.id == instance.id, TestInstance.status == TestStatus.PENDING)
            .update(
                {TestInstance.status: TestStatus.COMPLETED, TestInstance.completed_at: datetime.utcnow()},
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise PreconditionError(f"Test {instance.id} has already been completed")
        db.add_all(_build_records(instance.id, normalized, schemas))
        db.commit()
    except Exception:
        db.rollback()
        raise


def submit_results(
    db: Session,
    test_instance_id: str,
    values: Mapping[str, Optional[str]],
) -> TestInstance:
    """
    Validate and persist a results submission for a pending test.

    Submitted names that match no field of the test are dropped, as are
    optional values that are blank or fail validation. An error on a required
    field rejects the whole submission; so does a submission with nothing
    left to store.
    """
    instance = get_test_instance(db, test_instance_id)
    if instance.lab_test is None:
        raise NotFoundError("Lab test", instance.lab_test_id)
    if instance.status != TestStatus.PENDING:
        raise PreconditionError(f"Test {instance.id} has already been completed")

    schemas = {f.field_name: FieldSchema.from_model(f) for f in list_fields(db, instance.lab_test_id)}

    unmatched = [name for name in values if name not in schemas]
    if unmatched:
        logger.debug("Dropping unknown fields for test %s: %s", instance.id, ", ".join(unmatched))
    submitted = {name: value for name, value in values.items() if name in schemas}

    normalized, errors = validate_all(list(schemas.values()), submitted)
    required_errors = [e for e in errors if schemas[e.field_name].required]
    if required_errors:
        logger.info("Results for test %s rejected: %d field error(s)", instance.id, len(required_errors))
        raise PipelineError(PipelineErrorKind.VALIDATION_FAILED, required_errors)
    for error in errors:
        logger.debug("Dropping invalid optional value for test %s: %s", instance.id, error.message)
    if not normalized:
        raise PipelineError(PipelineErrorKind.NO_DATA)

    _persist(db, instance, normalized, schemas)
    db.refresh(instance)
    logger.info("Saved %d result(s) for test %s", len(normalized), instance.id)
    return instance


def get_results(db: Session, test_instance_id: str) -> List[ResultRecord]:
    instance = get_test_instance(db, test_instance_id)
    return (
        db.query(ResultRecord)
        .filter(ResultRecord.test_id == instance.id)
        .order_by(ResultRecord.created_at, ResultRecord.id)
        .all()
    )
