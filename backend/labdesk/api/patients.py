from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from ..models.base import get_db
from ..services import patients as patient_service

router = APIRouter(prefix="/patients", tags=["patients"])


class PatientCreate(BaseModel):
    name: str
    unique_id: str
    age: Optional[int] = None
    sex: Optional[str] = None
    rank: str
    ward: Optional[str] = None


class PatientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    unique_id: str
    age: Optional[int]
    sex: Optional[str]
    rank: str
    ward: Optional[str]


class PatientTestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    lab_test_id: str
    status: str
    created_at: datetime
    completed_at: Optional[datetime]


@router.post("/", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
def register_patient(patient_in: PatientCreate, db: Session = Depends(get_db)):
    """Register a patient. A shared unique id never merges with existing records."""
    return patient_service.register_patient(db, **patient_in.model_dump())


@router.get("/by-unique-id/{unique_id}", response_model=List[PatientResponse])
def patients_with_unique_id(unique_id: str, db: Session = Depends(get_db)):
    """All patients sharing a unique id, for the operator to choose from."""
    return patient_service.find_by_unique_id(db, unique_id)


@router.get("/search", response_model=List[PatientResponse])
def search_patients(
    name: Optional[str] = None,
    unique_id: Optional[str] = None,
    age: Optional[int] = None,
    ward: Optional[str] = None,
    rank: Optional[str] = None,
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
):
    return patient_service.search_patients(db, name, unique_id, age, ward, rank, skip=skip, limit=limit)


@router.get("/{patient_id}", response_model=PatientResponse)
def get_patient(patient_id: str, db: Session = Depends(get_db)):
    return patient_service.get_patient(db, patient_id)


@router.get("/{patient_id}/tests", response_model=List[PatientTestResponse])
def list_patient_tests(patient_id: str, db: Session = Depends(get_db)):
    return patient_service.list_patient_tests(db, patient_id)
