"""
Patient registration and lookup.

The unique identifier is a family identifier: several patients may share it,
and lookups return every match for the operator to pick from.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError, ValidationError
from ..models.base import generate_uuid
from ..models.patient import Patient, PatientRank
from ..models.test_instance import TestInstance

logger = logging.getLogger(__name__)


def register_patient(
    db: Session,
    name: str,
    unique_id: str,
    rank: str,
    age: Optional[int] = None,
    sex: Optional[str] = None,
    ward: Optional[str] = None,
) -> Patient:
    """Always inserts a new record, even when the unique identifier is already in use."""
    if not name or not name.strip():
        raise ValidationError("Patient name is required.")
    if not unique_id or not unique_id.strip():
        raise ValidationError("Unique ID is required.")
    if rank not in PatientRank.ALL:
        raise ValidationError(f"Unknown rank '{rank}'. Expected one of: {', '.join(PatientRank.ALL)}")
    if age is not None and age < 0:
        raise ValidationError("Age cannot be negative.")

    patient = Patient(
        id=generate_uuid(),
        name=name.strip(),
        unique_id=unique_id.strip(),
        age=age,
        sex=sex,
        rank=rank,
        ward=ward,
    )
    db.add(patient)
    db.commit()
    db.refresh(patient)
    logger.info("Patient registered with unique id %s", patient.unique_id)
    return patient


def get_patient(db: Session, patient_id: str) -> Patient:
    patient = db.query(Patient).filter(Patient.id == patient_id).first()
    if not patient:
        raise NotFoundError("Patient", patient_id)
    return patient


def find_by_unique_id(db: Session, unique_id: str) -> List[Patient]:
    return (
        db.query(Patient)
        .filter(Patient.unique_id == unique_id.strip())
        .order_by(Patient.created_at, Patient.id)
        .all()
    )


def search_patients(
    db: Session,
    name: Optional[str] = None,
    unique_id: Optional[str] = None,
    age: Optional[int] = None,
    ward: Optional[str] = None,
    rank: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
) -> List[Patient]:
    """Partial, case-insensitive match on name and unique id; exact match on the rest."""
    q = db.query(Patient)
    if name:
        q = q.filter(Patient.name.ilike(f"%{name}%"))
    if unique_id:
        q = q.filter(Patient.unique_id.ilike(f"%{unique_id}%"))
    if age is not None:
        q = q.filter(Patient.age == age)
    if ward:
        q = q.filter(Patient.ward == ward)
    if rank:
        q = q.filter(Patient.rank == rank)
    return q.order_by(Patient.name).offset(skip).limit(limit).all()


def list_patient_tests(db: Session, patient_id: str) -> List[TestInstance]:
    patient = get_patient(db, patient_id)
    return (
        db.query(TestInstance)
        .filter(TestInstance.patient_id == patient.id)
        .order_by(TestInstance.created_at)
        .all()
    )
