"""Workflow API: drives a session through registration, assignment, data entry and confirmation."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from pydantic import BaseModel
from datetime import datetime

from ..models.base import get_db
from ..core.notifications import notification_sink
from ..services.workflow import WorkflowSession, session_store, workflow_engine
from .patients import PatientCreate

router = APIRouter(prefix="/workflow", tags=["workflow"])


class SessionResponse(BaseModel):
    id: str
    stage: str
    current_patient_id: Optional[str]
    current_test_instance_id: Optional[str]
    last_completed_message: Optional[str]
    available_transitions: List[str]


class SelectPatientRequest(BaseModel):
    patient_id: str


class AssignTestRequest(BaseModel):
    lab_test_id: str


class ResultsRequest(BaseModel):
    values: Dict[str, Optional[str]]


class NotificationResponse(BaseModel):
    title: str
    description: str
    level: str
    created_at: datetime


def _to_response(session: WorkflowSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        stage=session.stage.value,
        current_patient_id=session.current_patient_id,
        current_test_instance_id=session.current_test_instance_id,
        last_completed_message=session.last_completed_message,
        available_transitions=[t.value for t in workflow_engine.available_transitions(session)],
    )


@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def start_session():
    return _to_response(session_store.create())


@router.get("/sessions/{session_id}", response_model=SessionResponse)
def get_session(session_id: str):
    return _to_response(session_store.get(session_id))


@router.post("/sessions/{session_id}/patient", response_model=SessionResponse)
def register_patient(session_id: str, patient_in: PatientCreate, db: Session = Depends(get_db)):
    session = session_store.get(session_id)
    workflow_engine.register_patient(session, db, **patient_in.model_dump())
    return _to_response(session)


@router.post("/sessions/{session_id}/select-patient", response_model=SessionResponse)
def select_patient(session_id: str, payload: SelectPatientRequest, db: Session = Depends(get_db)):
    session = session_store.get(session_id)
    workflow_engine.select_patient(session, db, payload.patient_id)
    return _to_response(session)


@router.post("/sessions/{session_id}/assign", response_model=SessionResponse)
def assign_test(session_id: str, payload: AssignTestRequest, db: Session = Depends(get_db)):
    session = session_store.get(session_id)
    workflow_engine.assign_test(session, db, payload.lab_test_id)
    return _to_response(session)


@router.post("/sessions/{session_id}/results", response_model=SessionResponse)
def save_results(session_id: str, payload: ResultsRequest, db: Session = Depends(get_db)):
    session = session_store.get(session_id)
    workflow_engine.save_results(session, db, payload.values)
    return _to_response(session)


@router.post("/sessions/{session_id}/new-patient", response_model=SessionResponse)
def start_new_patient(session_id: str):
    session = session_store.get(session_id)
    workflow_engine.start_new_patient(session)
    return _to_response(session)


@router.post("/sessions/{session_id}/another-test", response_model=SessionResponse)
def add_another_test(session_id: str):
    session = session_store.get(session_id)
    workflow_engine.add_another_test(session)
    return _to_response(session)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def end_session(session_id: str):
    session_store.discard(session_id)


@router.get("/notifications", response_model=List[NotificationResponse])
def recent_notifications(limit: int = 50):
    return [
        NotificationResponse(
            title=n.title,
            description=n.description,
            level=n.level.value,
            created_at=n.created_at,
        )
        for n in notification_sink.recent(limit)
    ]
