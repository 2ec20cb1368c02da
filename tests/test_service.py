import pytest

from openform import service
from openform.errors import ConflictError, NotFoundError, ValidationError
from openform.export import BOM
from openform.field_types import FIELD_TYPES, register_field_type


def _form_with_fields(storage):
    form = service.create_form(storage, "  Event sign-up ", "Tell us about you")
    name = service.create_field(
        storage, {"form_id": form["id"], "label": "Name", "type": "text", "required": True}
    )
    meals = service.create_field(
        storage,
        {"form_id": form["id"], "label": "Meals", "type": "checkbox", "options": "Lunch, Dinner"},
    )
    return form, name, meals


def test_create_form_starts_as_draft(storage):
    form = service.create_form(storage, "  Survey ")
    assert form["title"] == "Survey"
    assert form["status"] == "draft"
    assert service.get_form(storage, form["id"])["id"] == form["id"]


@pytest.mark.parametrize("title", ["", "   ", None])
def test_create_form_requires_title(storage, title):
    with pytest.raises(ValidationError):
        service.create_form(storage, title)


def test_get_missing_form(storage):
    with pytest.raises(NotFoundError):
        service.get_form(storage, "nope")


def test_lifecycle_through_storage(storage):
    form = service.create_form(storage, "Survey")
    with pytest.raises(ConflictError):
        service.close_form(storage, form["id"])
    assert service.publish_form(storage, form["id"])["status"] == "active"
    assert service.close_form(storage, form["id"])["status"] == "closed"
    assert service.publish_form(storage, form["id"])["status"] == "active"
    assert service.get_form(storage, form["id"])["status"] == "active"


def test_closed_forms_reject_edits_and_new_fields(storage):
    form = service.create_form(storage, "Survey")
    service.publish_form(storage, form["id"])
    service.close_form(storage, form["id"])
    with pytest.raises(ConflictError):
        service.update_form(storage, form["id"], {"title": "New"})
    with pytest.raises(ConflictError):
        service.create_field(storage, {"form_id": form["id"], "label": "Q", "type": "text"})


def test_update_form(storage):
    form = service.create_form(storage, "Survey")
    updated = service.update_form(storage, form["id"], {"description": " Yearly "})
    assert updated["description"] == "Yearly"
    assert updated["title"] == "Survey"
    with pytest.raises(ValidationError):
        service.update_form(storage, form["id"], {"title": " "})


def test_fields_are_numbered_and_listed_in_order(storage):
    form, name, meals = _form_with_fields(storage)
    assert (name["order"], meals["order"]) == (1, 2)
    assert meals["options"] == {"Lunch": "Lunch", "Dinner": "Dinner"}
    listed = service.list_fields(storage, form["id"])
    assert [field["id"] for field in listed] == [name["id"], meals["id"]]
    assert service.list_fields(storage, form["id"]) == listed


def test_create_field_validation(storage):
    form = service.create_form(storage, "Survey")
    with pytest.raises(ValidationError):
        service.create_field(storage, {"form_id": form["id"], "label": "", "type": "text"})
    with pytest.raises(ValidationError):
        service.create_field(storage, {"form_id": form["id"], "label": "Q", "required": "yes"})
    with pytest.raises(NotFoundError):
        service.create_field(storage, {"form_id": "missing", "label": "Q", "type": "text"})


def test_delete_field_leaves_gaps(storage):
    form, name, meals = _form_with_fields(storage)
    service.delete_field(storage, name["id"])
    remaining = service.list_fields(storage, form["id"])
    assert [field["order"] for field in remaining] == [2]
    with pytest.raises(NotFoundError):
        service.delete_field(storage, name["id"])


def test_submission_requires_an_active_form(storage):
    form, name, _ = _form_with_fields(storage)
    payload = {"form_id": form["id"], "answers": [{"field_id": name["id"], "value": "Ada"}]}
    with pytest.raises(ConflictError, match="not accepting responses"):
        service.create_response(storage, payload)
    service.publish_form(storage, form["id"])
    service.create_response(storage, payload)
    service.close_form(storage, form["id"])
    with pytest.raises(ConflictError):
        service.create_response(storage, payload)


def test_submission_to_form_without_fields(storage):
    form = service.create_form(storage, "Empty")
    service.publish_form(storage, form["id"])
    with pytest.raises(ValidationError, match="no fields"):
        service.create_response(storage, {"form_id": form["id"], "answers": []})


def test_create_response_encodes_answers(storage):
    form, name, meals = _form_with_fields(storage)
    service.publish_form(storage, form["id"])
    response = service.create_response(
        storage,
        {
            "form_id": form["id"],
            "respondent": {"name": " Ada ", "email": ""},
            "answers": [
                {"field_id": meals["id"], "value": ["Dinner"]},
                {"field_id": name["id"], "value": {"text": "Ada"}},
            ],
        },
    )
    assert response["respondent"] == {"name": "Ada", "email": ""}
    assert response["answers"] == [
        {"field_id": name["id"], "field_type": "text", "value": {"text": "Ada"}},
        {"field_id": meals["id"], "field_type": "checkbox", "value": {"selected": ["Dinner"]}},
    ]
    assert service.get_response(storage, response["id"])["answers"] == response["answers"]
    assert [item["id"] for item in service.list_responses(storage, form["id"])] == [response["id"]]


def test_anonymous_respondent_and_mapping_answers(storage):
    form, name, _ = _form_with_fields(storage)
    service.publish_form(storage, form["id"])
    response = service.create_response(
        storage,
        {"form_id": form["id"], "respondent": {"name": "", "email": ""}, "answers": {name["id"]: "Bo"}},
    )
    assert response["respondent"] is None


def test_duplicate_answers_are_a_conflict(storage):
    form, name, _ = _form_with_fields(storage)
    service.publish_form(storage, form["id"])
    answers = [{"field_id": name["id"], "value": "a"}, {"field_id": name["id"], "value": "b"}]
    with pytest.raises(ConflictError):
        service.create_response(storage, {"form_id": form["id"], "answers": answers})


def test_invalid_submissions(storage):
    form, name, meals = _form_with_fields(storage)
    service.publish_form(storage, form["id"])
    with pytest.raises(ValidationError):
        service.create_response(storage, {"form_id": form["id"]})
    with pytest.raises(ValidationError):
        service.create_response(
            storage,
            {"form_id": form["id"], "answers": [{"field_id": meals["id"], "value": ["Breakfast"]}]},
        )
    assert service.list_responses(storage, form["id"]) == []


def test_deleted_field_keeps_answers_and_export(storage):
    form, name, meals = _form_with_fields(storage)
    service.publish_form(storage, form["id"])
    response = service.create_response(
        storage,
        {
            "form_id": form["id"],
            "answers": [
                {"field_id": name["id"], "value": "Ada"},
                {"field_id": meals["id"], "value": ["Lunch", "Dinner"]},
            ],
        },
    )
    service.delete_field(storage, meals["id"])

    described = service.describe_response(storage, response["id"])
    assert [row["label"] for row in described["display"]] == ["Name", "Unknown field"]
    assert described["display"][1]["text"] == "Lunch; Dinner"

    lines = service.export_csv(storage, form["id"]).decode("utf-8").split("\n")
    assert lines[0] == BOM + "Respondent Name,Respondent Email,Submitted At,Name"
    assert len(lines) == 2
    assert lines[1].startswith("Anonymous,,")
    assert lines[1].endswith(",Ada")


def test_delete_form_removes_fields_and_responses(storage):
    form, name, _ = _form_with_fields(storage)
    service.publish_form(storage, form["id"])
    response = service.create_response(
        storage, {"form_id": form["id"], "answers": [{"field_id": name["id"], "value": "Ada"}]}
    )
    service.delete_form(storage, form["id"])
    with pytest.raises(NotFoundError):
        service.get_form(storage, form["id"])
    with pytest.raises(NotFoundError):
        service.get_response(storage, response["id"])
    assert storage.fields.list_fields(form["id"]) == []
    with pytest.raises(NotFoundError):
        service.delete_form(storage, form["id"])


def test_delete_response(storage):
    form, name, _ = _form_with_fields(storage)
    service.publish_form(storage, form["id"])
    response = service.create_response(
        storage, {"form_id": form["id"], "answers": {name["id"]: "Ada"}}
    )
    service.delete_response(storage, response["id"])
    with pytest.raises(NotFoundError):
        service.delete_response(storage, response["id"])


def test_public_view(storage):
    form, _, _ = _form_with_fields(storage)
    view = service.public_view(storage, form["id"])
    assert view["state"] == "not_available"
    assert view["fields"] == []
    assert not view["accepting_responses"]

    service.publish_form(storage, form["id"])
    view = service.public_view(storage, form["id"])
    assert view["state"] == "open"
    assert [field["label"]["en"] for field in view["fields"]] == ["Name", "Meals"]

    service.close_form(storage, form["id"])
    view = service.public_view(storage, form["id"])
    assert view["message"] == "This form is not accepting responses."


def test_update_field(storage):
    form, name, meals = _form_with_fields(storage)
    updated = service.update_field(
        storage, meals["id"], {"label": "Meal", "type": "radio", "options": ["Lunch"], "form_id": "x"}
    )
    assert updated["form_id"] == form["id"]
    assert updated["order"] == meals["order"]
    assert updated["type"] == "radio"
    listed = service.list_fields(storage, form["id"])
    assert [field["label"]["en"] for field in listed] == ["Name", "Meal"]

    with pytest.raises(ValidationError):
        service.update_field(storage, meals["id"], {"label": "Meal", "type": "radio", "options": []})
    with pytest.raises(ValidationError):
        service.update_field(storage, meals["id"], {"label": "Meal", "type": "text", "order": 0})
    with pytest.raises(NotFoundError):
        service.update_field(storage, "missing", {"label": "Q", "type": "text"})


def test_fields_of_closed_forms_cannot_be_updated(storage):
    form, name, _ = _form_with_fields(storage)
    service.publish_form(storage, form["id"])
    service.close_form(storage, form["id"])
    with pytest.raises(ConflictError, match="closed form"):
        service.update_field(storage, name["id"], {"label": "Full name", "type": "text"})


def test_registered_field_type_accepts_answers(storage, monkeypatch):
    monkeypatch.setattr("openform.field_types.FIELD_TYPES", dict(FIELD_TYPES))
    register_field_type("Rating")
    form = service.create_form(storage, "Survey")
    field = service.create_field(storage, {"form_id": form["id"], "label": "Stars", "type": "RATING"})
    assert field["type"] == "rating"
    service.publish_form(storage, form["id"])
    response = service.create_response(storage, {"form_id": form["id"], "answers": {field["id"]: "4"}})
    assert response["answers"] == [
        {"field_id": field["id"], "field_type": "rating", "value": {"text": "4"}}
    ]
