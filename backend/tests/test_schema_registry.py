"""Tests for lab test definitions and their field schemas."""
import pytest
from labdesk.core.exceptions import NotFoundError, ValidationError
from labdesk.models.lab_test import FieldType, TestCategory
from labdesk.services import schema_registry


class TestCreateTest:
    def test_defaults_to_uncategorized(self, db):
        lab_test = schema_registry.create_test(db, "  Urinalysis  ", "Routine urine")
        assert lab_test.name == "Urinalysis"
        assert lab_test.category == TestCategory.UNCATEGORIZED

    def test_blank_name_rejected(self, db):
        with pytest.raises(ValidationError):
            schema_registry.create_test(db, "   ")

    def test_unknown_category_rejected(self, db):
        with pytest.raises(ValidationError):
            schema_registry.create_test(db, "X-Ray", category="Imaging")

    def test_list_sorted_case_insensitively(self, db):
        for name in ["lipid Profile", "Blood Count", "culture", "Albumin"]:
            schema_registry.create_test(db, name)
        names = [t.name for t in schema_registry.list_tests(db)]
        assert names == ["Albumin", "Blood Count", "culture", "lipid Profile"]

    def test_update_description_and_category(self, db):
        lab_test = schema_registry.create_test(db, "Widal")
        updated = schema_registry.update_test(db, lab_test.id, description="Typhoid screen", category="Serology")
        assert updated.id == lab_test.id
        assert updated.name == "Widal"
        assert updated.description == "Typhoid screen"
        assert updated.category == TestCategory.SEROLOGY

    def test_get_missing_test(self, db):
        with pytest.raises(NotFoundError):
            schema_registry.get_test(db, "nope")


class TestFields:
    def test_fields_appended_in_order(self, db, blood_count):
        schema_registry.add_field(db, blood_count.id, "WBC", "number", unit="10^9/L")
        schema_registry.add_field(db, blood_count.id, "Comment", "textarea")
        fields = schema_registry.list_fields(db, blood_count.id)
        assert [f.field_name for f in fields] == ["Hemoglobin", "WBC", "Comment"]
        assert [f.field_order for f in fields] == [1, 2, 3]
        assert fields[1].unit == "10^9/L"

    def test_dropdown_options_split_and_trimmed(self, db, blood_count):
        field = schema_registry.add_field(
            db, blood_count.id, "Blood Group", "dropdown", options=" A+, B+ ,,O-, A+ "
        )
        assert field.field_options == ["A+", "B+", "O-", "A+"]
        assert FieldType.parse(field.field_type) == FieldType.ENUMERATED

    def test_dropdown_needs_options(self, db, blood_count):
        with pytest.raises(ValidationError):
            schema_registry.add_field(db, blood_count.id, "Group", "dropdown", options=" , ")

    def test_options_ignored_on_non_dropdowns(self, db, blood_count):
        field = schema_registry.add_field(db, blood_count.id, "Platelets", "number", options="1,2")
        assert field.field_options is None

    def test_blank_field_name_rejected(self, db, blood_count):
        with pytest.raises(ValidationError):
            schema_registry.add_field(db, blood_count.id, "  ", "text")

    def test_duplicate_field_name_rejected(self, db, blood_count):
        with pytest.raises(ValidationError):
            schema_registry.add_field(db, blood_count.id, "Hemoglobin", "text")

    def test_unknown_type_rejected(self, db, blood_count):
        with pytest.raises(ValidationError):
            schema_registry.add_field(db, blood_count.id, "Image", "file")

    def test_field_on_missing_test(self, db):
        with pytest.raises(NotFoundError):
            schema_registry.add_field(db, "missing", "Hemoglobin", "number")

    def test_remove_keeps_gaps(self, db, blood_count):
        wbc = schema_registry.add_field(db, blood_count.id, "WBC", "number")
        schema_registry.add_field(db, blood_count.id, "RBC", "number")
        schema_registry.remove_field(db, wbc.id)

        fields = schema_registry.list_fields(db, blood_count.id)
        assert [(f.field_name, f.field_order) for f in fields] == [("Hemoglobin", 1), ("RBC", 3)]

    def test_position_after_gap_does_not_collide(self, db, blood_count):
        wbc = schema_registry.add_field(db, blood_count.id, "WBC", "number")
        schema_registry.add_field(db, blood_count.id, "RBC", "number")
        schema_registry.remove_field(db, wbc.id)
        added = schema_registry.add_field(db, blood_count.id, "Platelets", "number")

        orders = [f.field_order for f in schema_registry.list_fields(db, blood_count.id)]
        assert added.field_order == 4
        assert orders == sorted(set(orders))

    def test_remove_missing_field(self, db):
        with pytest.raises(NotFoundError):
            schema_registry.remove_field(db, "missing")


def test_parse_options_accepts_lists():
    assert schema_registry.parse_options(["Positive ", "", " Negative"]) == ["Positive", "Negative"]
    assert schema_registry.parse_options(None) == []
