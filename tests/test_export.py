from datetime import timezone

from openform.export import (
    BOM,
    build_table,
    escape_cell,
    export_csv,
    export_filename,
    serialize_csv,
)

from conftest import make_field, make_form, make_response

FRUIT = {"a": "Apple", "b": "Banana"}


def _text(field_id, text):
    return {"field_id": field_id, "field_type": "text", "value": {"text": text}}


def test_no_responses_yields_only_the_header():
    fields = [make_field("q1", label="Name"), make_field("q2", order=2, label="Age")]
    content = export_csv(fields, [], tz=timezone.utc).decode("utf-8")
    assert content == BOM + "Respondent Name,Respondent Email,Submitted At,Name,Age"


def test_header_escaping_of_special_label():
    fields = [make_field("q1", label='Q1, "special"')]
    header = serialize_csv(build_table(fields, [])).lstrip(BOM)
    assert header == 'Respondent Name,Respondent Email,Submitted At,"Q1, ""special"""'


def test_table_is_rectangular():
    fields = [make_field(f"q{i}", order=i) for i in range(1, 5)]
    responses = [
        make_response([_text("q1", "x")], response_id=f"r{i}") for i in range(3)
    ]
    table = build_table(fields, responses, tz=timezone.utc)
    assert len(table) == 4
    assert all(len(row) == 7 for row in table)
    assert table[1][3:] == ["x", "-", "-", "-"]


def test_row_contents():
    fields = [
        make_field("q2", "checkbox", order=2, label="Fruit", options=FRUIT),
        make_field("q1", order=1, label="Comment"),
    ]
    responses = [
        make_response(
            [
                _text("q1", "Line one\nline two"),
                {"field_id": "q2", "field_type": "checkbox", "value": {"selected": ["a", "b"]}},
            ],
            respondent={"name": "Ada", "email": "ada@example.com"},
        ),
        make_response([], response_id="r2"),
    ]
    table = build_table(fields, responses, tz=timezone.utc)
    assert table[0] == ["Respondent Name", "Respondent Email", "Submitted At", "Comment", "Fruit"]
    assert table[1] == [
        "Ada", "ada@example.com", "2024-05-02 14:05:09", "Line one\nline two", "Apple; Banana",
    ]
    assert table[2] == ["Anonymous", "", "2024-05-02 14:05:09", "-", "-"]

    lines = serialize_csv(table).split("\n")
    assert lines[1] == 'Ada,ada@example.com,2024-05-02 14:05:09,"Line one'
    assert lines[2] == 'line two",Apple; Banana'


def test_orphaned_answers_do_not_break_tabulation():
    fields = [make_field("q1", label="Name")]
    response = make_response(
        [
            {"field_id": "removed", "field_type": "radio", "value": {"selected": "x"}},
            _text("q1", "Ada"),
        ]
    )
    table = build_table(fields, [response], tz=timezone.utc)
    assert table[1] == ["Anonymous", "", "2024-05-02 14:05:09", "Ada"]


def test_empty_label_uses_question_placeholder():
    assert build_table([make_field("q1", label="")], [])[0][3] == "Question"


def test_escape_cell_only_quotes_comma_quote_and_newline():
    assert escape_cell("plain") == "plain"
    assert escape_cell("semi;colon\ttab\rreturn") == "semi;colon\ttab\rreturn"
    assert escape_cell("a,b") == '"a,b"'
    assert escape_cell('say "hi"') == '"say ""hi"""'
    assert escape_cell("two\nlines") == '"two\nlines"'
    assert escape_cell(None) == ""


def test_export_is_utf8_with_bom():
    fields = [make_field("q1", label="الاسم")]
    content = export_csv(fields, [make_response([_text("q1", "سارة")])], tz=timezone.utc)
    assert content.startswith(b"\xef\xbb\xbf")
    assert "سارة" in content.decode("utf-8")


def test_export_filename():
    assert export_filename({**make_form(), "title": "Survey 2024!"}) == "Survey_2024__responses.csv"
    assert export_filename({**make_form(), "title": ""}) == "responses_responses.csv"


def test_malformed_stored_answers_do_not_break_tabulation():
    response = make_response([])
    response["answers"] = 5
    table = build_table([make_field("q1", label="Name")], [response], tz=timezone.utc)
    assert table[1] == ["Anonymous", "", "2024-05-02 14:05:09", "-"]
