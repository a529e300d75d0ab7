"""Tests for the registration -> assignment -> data entry -> confirmation workflow."""
import pytest
from labdesk.core.exceptions import NotFoundError, PipelineError, PreconditionError, ValidationError
from labdesk.core.notifications import NotificationLevel, NotificationSink
from labdesk.models.patient import PatientRank
from labdesk.models.test_instance import TestInstance, TestStatus
from labdesk.services.patients import register_patient
from labdesk.services.workflow import (
    RESULTS_SAVED_MESSAGE,
    SessionStore,
    Trigger,
    WorkflowEngine,
    WorkflowSession,
    WorkflowStage,
)


PATIENT = {"name": "J. Doe", "unique_id": "A-100", "rank": PatientRank.ARMY, "age": 35, "sex": "Male", "ward": "W1"}


class TestWorkflowEngine:
    def setup_method(self):
        self.sink = NotificationSink()
        self.engine = WorkflowEngine(notifications=self.sink)
        self.session = WorkflowSession()

    def test_initial_stage_is_registration(self):
        assert self.session.stage == WorkflowStage.REGISTRATION
        assert self.engine.available_transitions(self.session) == [
            Trigger.REGISTER_PATIENT,
            Trigger.SELECT_PATIENT,
        ]

    def test_full_happy_path(self, db, blood_count):
        patient = self.engine.register_patient(self.session, db, **PATIENT)
        assert self.session.stage == WorkflowStage.ASSIGNMENT
        assert self.session.current_patient_id == patient.id

        instance = self.engine.assign_test(self.session, db, blood_count.id)
        assert self.session.stage == WorkflowStage.DATA_ENTRY
        assert instance.status == TestStatus.PENDING
        assert self.session.current_test_instance_id == instance.id

        completed = self.engine.save_results(self.session, db, {"Hemoglobin": "13.5"})
        assert completed.status == TestStatus.COMPLETED
        assert self.session.stage == WorkflowStage.CONFIRMATION
        assert self.session.last_completed_message == RESULTS_SAVED_MESSAGE

        titles = [n.title for n in reversed(self.sink.recent())]
        assert titles == ["Patient Registered", "Test Assigned Successfully", "Test Results Saved"]

    def test_select_existing_patient(self, db, army_patient):
        self.engine.select_patient(self.session, db, army_patient.id)
        assert self.session.stage == WorkflowStage.ASSIGNMENT
        assert self.session.current_patient_id == army_patient.id

    def test_select_unknown_patient(self, db):
        with pytest.raises(NotFoundError):
            self.engine.select_patient(self.session, db, "missing")
        assert self.session.stage == WorkflowStage.REGISTRATION

    def test_assignment_requires_patient(self, db, blood_count):
        self.session.stage = WorkflowStage.ASSIGNMENT
        with pytest.raises(PreconditionError):
            self.engine.assign_test(self.session, db, blood_count.id)
        assert self.engine.available_transitions(self.session) == [Trigger.START_NEW_PATIENT]

    def test_cannot_skip_stages(self, db, blood_count):
        with pytest.raises(PreconditionError):
            self.engine.assign_test(self.session, db, blood_count.id)
        with pytest.raises(PreconditionError):
            self.engine.save_results(self.session, db, {"Hemoglobin": "13"})
        with pytest.raises(PreconditionError):
            self.engine.add_another_test(self.session)
        assert self.session.stage == WorkflowStage.REGISTRATION

    def test_unknown_lab_test_keeps_assignment_stage(self, db, army_patient):
        self.engine.select_patient(self.session, db, army_patient.id)
        with pytest.raises(NotFoundError):
            self.engine.assign_test(self.session, db, "missing")
        assert self.session.stage == WorkflowStage.ASSIGNMENT
        assert self.sink.recent()[0].level == NotificationLevel.ERROR

    def test_failed_results_stay_in_data_entry(self, db, blood_count, army_patient):
        self.engine.select_patient(self.session, db, army_patient.id)
        instance = self.engine.assign_test(self.session, db, blood_count.id)

        with pytest.raises(PipelineError):
            self.engine.save_results(self.session, db, {"Hemoglobin": "abc"})

        assert self.session.stage == WorkflowStage.DATA_ENTRY
        assert self.session.last_completed_message is None
        db.refresh(instance)
        assert instance.status == TestStatus.PENDING

    def test_add_another_test_keeps_patient(self, db, blood_count, army_patient):
        self.engine.select_patient(self.session, db, army_patient.id)
        self.engine.assign_test(self.session, db, blood_count.id)
        self.engine.save_results(self.session, db, {"Hemoglobin": "13"})

        self.engine.add_another_test(self.session)

        assert self.session.stage == WorkflowStage.ASSIGNMENT
        assert self.session.current_patient_id == army_patient.id
        assert self.session.current_test_instance_id is None
        assert self.session.last_completed_message is None

        second = self.engine.assign_test(self.session, db, blood_count.id)
        assert second.patient_id == army_patient.id

    def test_start_new_patient_clears_context(self, db, blood_count, army_patient):
        self.engine.select_patient(self.session, db, army_patient.id)
        self.engine.assign_test(self.session, db, blood_count.id)
        self.engine.save_results(self.session, db, {"Hemoglobin": "13"})

        self.engine.start_new_patient(self.session)

        assert self.session.stage == WorkflowStage.REGISTRATION
        assert self.session.current_patient_id is None
        assert self.session.current_test_instance_id is None
        assert self.session.last_completed_message is None

    def test_abandoned_test_stays_pending(self, db, blood_count, army_patient):
        self.engine.select_patient(self.session, db, army_patient.id)
        instance = self.engine.assign_test(self.session, db, blood_count.id)
        self.engine.start_new_patient(self.session)

        reloaded = db.query(TestInstance).filter(TestInstance.id == instance.id).one()
        assert reloaded.status == TestStatus.PENDING

    def test_registration_failure_notifies(self, db):
        with pytest.raises(ValidationError):
            self.engine.register_patient(self.session, db, name="", unique_id="X", rank=PatientRank.CIVIL)
        assert self.sink.recent()[0].title == "Registration Failed"
        assert self.session.stage == WorkflowStage.REGISTRATION


class TestSessionStore:
    def test_sessions_are_independent(self, db):
        store = SessionStore()
        engine = WorkflowEngine(notifications=NotificationSink())
        first, second = store.create(), store.create()
        patient = register_patient(db, name="A", unique_id="U1", rank=PatientRank.CIVIL)

        engine.select_patient(first, db, patient.id)

        assert store.get(first.id).stage == WorkflowStage.ASSIGNMENT
        assert store.get(second.id).stage == WorkflowStage.REGISTRATION

    def test_unknown_session(self):
        with pytest.raises(NotFoundError):
            SessionStore().get("missing")
