from .base import Base  # noqa: F401
from .lab_test import TestDefinition, FieldDefinition, FieldType, TestCategory  # noqa: F401
from .patient import Patient, PatientRank  # noqa: F401
from .test_instance import TestInstance, ResultRecord, TestStatus  # noqa: F401
