"""
Intake-to-result workflow state machine.

A WorkflowSession threads one patient and one test instance through
Registration -> Assignment -> DataEntry -> Confirmation. The session is an
explicit object handed to every trigger; the engine itself holds no
per-session state.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import LabDeskError, NotFoundError, PipelineError, PreconditionError
from ..core.notifications import NotificationSink, notification_sink
from ..models.base import generate_uuid
from ..models.patient import Patient
from ..models.test_instance import TestInstance, TestStatus
from . import patients as patient_service
from .results_pipeline import submit_results
from .schema_registry import get_test

logger = logging.getLogger(__name__)

RESULTS_SAVED_MESSAGE = "Test results saved successfully"


class WorkflowStage(str, Enum):
    REGISTRATION = "registration"
    ASSIGNMENT = "assignment"
    DATA_ENTRY = "data_entry"
    CONFIRMATION = "confirmation"


class Trigger(str, Enum):
    REGISTER_PATIENT = "register_patient"
    SELECT_PATIENT = "select_patient"
    ASSIGN_TEST = "assign_test"
    SAVE_RESULTS = "save_results"
    START_NEW_PATIENT = "start_new_patient"
    ADD_ANOTHER_TEST = "add_another_test"


@dataclass
class WorkflowSession:
    id: str = field(default_factory=generate_uuid)
    stage: WorkflowStage = WorkflowStage.REGISTRATION
    current_patient_id: Optional[str] = None
    current_test_instance_id: Optional[str] = None
    last_completed_message: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)


class WorkflowEngine:
    """
    Applies triggers to a session. A trigger invoked from the wrong stage, or
    whose guard does not hold, raises PreconditionError and leaves the session
    untouched.
    """

    def __init__(self, notifications: NotificationSink = notification_sink):
        self.notifications = notifications

    # ── gating ───────────────────────────────────────────────────────────────

    def available_transitions(self, session: WorkflowSession) -> List[Trigger]:
        triggers = [Trigger.START_NEW_PATIENT] if session.stage != WorkflowStage.REGISTRATION else []
        if session.stage == WorkflowStage.REGISTRATION:
            triggers += [Trigger.REGISTER_PATIENT, Trigger.SELECT_PATIENT]
        elif session.stage == WorkflowStage.ASSIGNMENT and session.current_patient_id:
            triggers.append(Trigger.ASSIGN_TEST)
        elif session.stage == WorkflowStage.DATA_ENTRY and session.current_test_instance_id:
            triggers.append(Trigger.SAVE_RESULTS)
        elif session.stage == WorkflowStage.CONFIRMATION and session.current_patient_id:
            triggers.append(Trigger.ADD_ANOTHER_TEST)
        return triggers

    def _require_stage(self, session: WorkflowSession, stage: WorkflowStage, trigger: Trigger) -> None:
        if session.stage != stage:
            raise PreconditionError(
                f"Cannot {trigger.value.replace('_', ' ')} from the {session.stage.value} stage"
            )

    # ── Registration -> Assignment ───────────────────────────────────────────

    def register_patient(self, session: WorkflowSession, db: Session, **details) -> Patient:
        self._require_stage(session, WorkflowStage.REGISTRATION, Trigger.REGISTER_PATIENT)
        try:
            patient = patient_service.register_patient(db, **details)
        except LabDeskError as exc:
            self.notifications.error("Registration Failed", exc.message)
            raise
        self.notifications.success("Patient Registered", f"Successfully registered {patient.name}")
        self._enter_assignment(session, patient)
        return patient

    def select_patient(self, session: WorkflowSession, db: Session, patient_id: str) -> Patient:
        """Continue with an existing patient, e.g. one picked from a shared unique id."""
        self._require_stage(session, WorkflowStage.REGISTRATION, Trigger.SELECT_PATIENT)
        patient = patient_service.get_patient(db, patient_id)
        self.notifications.success("Patient Selected", f"Selected {patient.name}")
        self._enter_assignment(session, patient)
        return patient

    def _enter_assignment(self, session: WorkflowSession, patient: Patient) -> None:
        session.current_patient_id = patient.id
        session.stage = WorkflowStage.ASSIGNMENT
        logger.debug("Session %s moved to assignment", session.id)

    # ── Assignment -> DataEntry ──────────────────────────────────────────────

    def assign_test(self, session: WorkflowSession, db: Session, lab_test_id: str) -> TestInstance:
        self._require_stage(session, WorkflowStage.ASSIGNMENT, Trigger.ASSIGN_TEST)
        if not session.current_patient_id:
            raise PreconditionError("A patient must be registered before a test can be assigned")

        patient = patient_service.get_patient(db, session.current_patient_id)
        try:
            lab_test = get_test(db, lab_test_id)
        except NotFoundError:
            self.notifications.error("Error", "Selected test type not found.")
            raise

        instance = TestInstance(
            id=generate_uuid(),
            patient_id=patient.id,
            lab_test_id=lab_test.id,
            status=TestStatus.PENDING,
        )
        db.add(instance)
        db.commit()
        db.refresh(instance)

        session.current_test_instance_id = instance.id
        session.stage = WorkflowStage.DATA_ENTRY
        self.notifications.success("Test Assigned Successfully", f"{lab_test.name} assigned to {patient.name}")
        return instance

    # ── DataEntry -> Confirmation ────────────────────────────────────────────

    def save_results(
        self,
        session: WorkflowSession,
        db: Session,
        values: Mapping[str, Optional[str]],
    ) -> TestInstance:
        self._require_stage(session, WorkflowStage.DATA_ENTRY, Trigger.SAVE_RESULTS)
        if not session.current_test_instance_id:
            raise PreconditionError("No test has been assigned in this session")

        try:
            instance = submit_results(db, session.current_test_instance_id, values)
        except PipelineError as exc:
            self.notifications.error("Error", exc.message)
            raise

        session.last_completed_message = RESULTS_SAVED_MESSAGE
        session.stage = WorkflowStage.CONFIRMATION
        self.notifications.success("Test Results Saved", "Results have been saved successfully")
        return instance

    # ── escapes ──────────────────────────────────────────────────────────────

    def start_new_patient(self, session: WorkflowSession) -> None:
        """Back to Registration with an empty context. The abandoned test, if any, stays pending."""
        session.current_patient_id = None
        session.current_test_instance_id = None
        session.last_completed_message = None
        session.stage = WorkflowStage.REGISTRATION

    def add_another_test(self, session: WorkflowSession) -> None:
        self._require_stage(session, WorkflowStage.CONFIRMATION, Trigger.ADD_ANOTHER_TEST)
        if not session.current_patient_id:
            raise PreconditionError("No current patient to assign another test to")
        session.current_test_instance_id = None
        session.last_completed_message = None
        session.stage = WorkflowStage.ASSIGNMENT


class SessionStore:
    """In-process registry of workflow sessions keyed by id."""

    def __init__(self):
        self._sessions: Dict[str, WorkflowSession] = {}

    def create(self) -> WorkflowSession:
        session = WorkflowSession()
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> WorkflowSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("Workflow session", session_id)
        return session

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)


workflow_engine = WorkflowEngine()
session_store = SessionStore()
