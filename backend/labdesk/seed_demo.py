"""
Demo data seeder for LabDesk.

Creates a "Blood Count" lab test (Chemistry) with a required numeric
"Hemoglobin" field, plus a sample patient, so the registration -> assignment
-> data entry walkthrough works immediately after a fresh start.

This seeder is idempotent; it is safe to call on every startup.
"""
from .models.base import SessionLocal, Base, engine, generate_uuid
from .models.lab_test import TestDefinition, FieldDefinition, FieldType, TestCategory
from .models.patient import Patient, PatientRank

DEMO_TEST_NAME = "Blood Count"
DEMO_FIELD_NAME = "Hemoglobin"
DEMO_FIELD_UNIT = "g/dL"

DEMO_PATIENT_UNIQUE_ID = "DEMO-001"
DEMO_PATIENT_NAME = "J. Doe"


def seed_demo_data() -> None:
    """Create the demo lab test, its field and a patient if they do not already exist."""
    # Ensure tables exist (no-op when already created by main.py)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        lab_test = _seed_lab_test(db)
        _seed_fields(db, lab_test.id)
        _seed_patient(db)
    finally:
        db.close()


# ── helpers ──────────────────────────────────────────────────────────────────

def _seed_lab_test(db) -> TestDefinition:
    lab_test = db.query(TestDefinition).filter(TestDefinition.name == DEMO_TEST_NAME).first()
    if not lab_test:
        lab_test = TestDefinition(
            id=generate_uuid(),
            name=DEMO_TEST_NAME,
            description="Complete blood count.",
            category=TestCategory.CHEMISTRY,
        )
        db.add(lab_test)
        db.commit()
        db.refresh(lab_test)
        print(f"[seed] Created demo lab test: {lab_test.name} ({lab_test.category})")
    return lab_test


def _seed_fields(db, lab_test_id: str) -> None:
    existing = (
        db.query(FieldDefinition)
        .filter(FieldDefinition.lab_test_id == lab_test_id, FieldDefinition.field_name == DEMO_FIELD_NAME)
        .first()
    )
    if not existing:
        field = FieldDefinition(
            id=generate_uuid(),
            lab_test_id=lab_test_id,
            field_name=DEMO_FIELD_NAME,
            field_type=FieldType.NUMERIC.value,
            is_required=True,
            field_order=1,
            unit=DEMO_FIELD_UNIT,
        )
        db.add(field)
        db.commit()
        print(f"[seed] Created demo field   : {field.field_name} ({DEMO_FIELD_UNIT})")


def _seed_patient(db) -> Patient:
    patient = db.query(Patient).filter(Patient.unique_id == DEMO_PATIENT_UNIQUE_ID).first()
    if not patient:
        patient = Patient(
            id=generate_uuid(),
            name=DEMO_PATIENT_NAME,
            unique_id=DEMO_PATIENT_UNIQUE_ID,
            age=42,
            sex="Male",
            rank=PatientRank.ARMY,
            ward="General",
        )
        db.add(patient)
        db.commit()
        db.refresh(patient)
        print(f"[seed] Created demo patient : {patient.name} (ID: {patient.unique_id})")
    return patient
