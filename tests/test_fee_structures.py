import pytest

from errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from services import fee_structures, templates


def test_structure_lines_snapshot_templates(structure, fee_templates):
    assert structure.name == "Class 5 - 2025-26"
    assert structure.academic_year["year"] == "2025-26"
    assert structure.class_info["class_name"] == "Class 5"

    school, van = structure.fee_items
    assert school["template_name"] == "School Fee"
    assert school["template_category"] == "REGULAR"
    assert school["is_compulsory"] is True
    assert van["is_compulsory"] is False
    assert van["is_editable_during_enrollment"] is True
    assert school["id"] != van["id"]

    assert structure.total_fees == {"compulsory": 1000.0, "optional": 500.0, "total": 1500.0}
    assert structure.total_scholarships == {"auto_applied": 200.0, "manual": 100.0, "total": 300.0}


def test_one_structure_per_year_and_class(db, structure, year, class5, fee_templates):
    with pytest.raises(ConflictError):
        fee_structures.create_fee_structure(
            db, year.id, class5.id, "Again",
            [{"template_id": fee_templates["School"].id, "amount": 900}],
        )


def test_unknown_template_is_not_found(db, year, class5):
    with pytest.raises(NotFoundError):
        fee_structures.create_fee_structure(db, year.id, class5.id, None, [{"template_id": 999, "amount": 10}])


def test_inactive_template_rejected(db, year, class5, fee_templates):
    templates.update_fee_template(db, fee_templates["Exam"].id, {"is_active": False})
    with pytest.raises(InvalidStateError):
        fee_structures.create_fee_structure(
            db, year.id, class5.id, None, [{"template_id": fee_templates["Exam"].id, "amount": 10}]
        )


def test_negative_amount_rejected(db, year, class5, fee_templates):
    with pytest.raises(ValidationError):
        fee_structures.create_fee_structure(
            db, year.id, class5.id, None, [{"template_id": fee_templates["School"].id, "amount": -1}]
        )


@pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_amount_rejected(db, year, class5, fee_templates, amount):
    with pytest.raises(ValidationError, match="finite"):
        fee_structures.create_fee_structure(
            db, year.id, class5.id, None, [{"template_id": fee_templates["School"].id, "amount": amount}]
        )


def test_template_listed_twice_rejected(db, year, class5, fee_templates):
    school_id = fee_templates["School"].id
    with pytest.raises(ValidationError):
        fee_structures.create_fee_structure(
            db, year.id, class5.id, None,
            [{"template_id": school_id, "amount": 10}, {"template_id": school_id, "amount": 20}],
        )


def test_update_keeps_line_ids_and_recomputes_totals(db, structure, fee_templates):
    school, van = structure.fee_items
    updated = fee_structures.update_fee_structure(db, structure.id, {
        "fee_items": [
            {"id": school["id"], "template_id": school["template_id"], "amount": 1200},
            {"template_id": fee_templates["Exam"].id, "amount": 300, "is_compulsory": False},
        ]
    })

    ids = [line["id"] for line in updated.fee_items]
    assert school["id"] in ids
    assert van["id"] not in ids
    assert updated.total_fees == {"compulsory": 1200.0, "optional": 300.0, "total": 1500.0}
    # scholarships untouched
    assert updated.total_scholarships["total"] == 300.0


def test_template_rename_does_not_touch_structure(db, structure, fee_templates):
    templates.update_fee_template(db, fee_templates["School"].id, {"name": "Tuition Fee"})
    db.refresh(structure)
    assert structure.fee_items[0]["template_name"] == "School Fee"


def test_copy_structure_to_another_class(db, structure, year, make_class):
    class6 = make_class("Class 6", 6)
    copy = fee_structures.copy_fee_structure(db, structure.id, year.id, class6.id)

    assert copy.class_info["class_name"] == "Class 6"
    assert copy.name == "Class 6 - 2025-26"
    assert copy.total_fees == structure.total_fees
    assert {l["id"] for l in copy.fee_items}.isdisjoint({l["id"] for l in structure.fee_items})


def test_deactivated_structure_hidden_from_default_listing(db, structure):
    fee_structures.deactivate_fee_structure(db, structure.id)
    assert fee_structures.list_fee_structures(db) == []
    assert len(fee_structures.list_fee_structures(db, include_inactive=True)) == 1
    assert fee_structures.find_active_structure(db, structure.academic_year_id, structure.class_id) is None


# ---------------------
# Template catalog
# ---------------------

def test_duplicate_template_name_conflicts(db, fee_templates):
    with pytest.raises(ConflictError):
        templates.create_fee_template(db, "School Fee")
    with pytest.raises(ConflictError):
        templates.update_fee_template(db, fee_templates["Van"].id, {"name": "School Fee"})


def test_invalid_category_rejected(db):
    with pytest.raises(ValidationError):
        templates.create_fee_template(db, "Library Fee", "LIBRARY")
    with pytest.raises(ValidationError):
        templates.create_scholarship_template(db, "Odd", "UNKNOWN")


def test_referenced_template_cannot_be_deleted_or_recategorized(db, structure, fee_templates, scholarship_templates):
    with pytest.raises(ConflictError):
        templates.delete_fee_template(db, fee_templates["School"].id)
    with pytest.raises(InvalidStateError):
        templates.update_fee_template(db, fee_templates["School"].id, {"category": "ACTIVITY"})
    with pytest.raises(ConflictError):
        templates.delete_scholarship_template(db, scholarship_templates["Merit"].id)

    # unused templates can go
    exam_id = fee_templates["Exam"].id
    templates.delete_fee_template(db, exam_id)
    with pytest.raises(NotFoundError):
        templates.get_fee_template(db, exam_id)
