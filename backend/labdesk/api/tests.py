"""Test instances: direct results submission and captured results."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict
from datetime import datetime

from ..models.base import get_db
from ..services import results_pipeline

router = APIRouter(prefix="/tests", tags=["tests"])


class ResultsSubmission(BaseModel):
    values: Dict[str, Optional[str]]


class TestInstanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    patient_id: str
    lab_test_id: str
    status: str
    created_at: datetime
    completed_at: Optional[datetime]


class ResultRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    field_id: Optional[str]
    field_name: str
    field_value: str


@router.get("/{test_id}", response_model=TestInstanceResponse)
def get_test(test_id: str, db: Session = Depends(get_db)):
    return results_pipeline.get_test_instance(db, test_id)


@router.post("/{test_id}/results", response_model=TestInstanceResponse)
def submit_results(test_id: str, payload: ResultsSubmission, db: Session = Depends(get_db)):
    return results_pipeline.submit_results(db, test_id, payload.values)


@router.get("/{test_id}/results", response_model=List[ResultRecordResponse])
def get_results(test_id: str, db: Session = Depends(get_db)):
    return results_pipeline.get_results(db, test_id)
