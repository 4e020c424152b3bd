import json

import pytest

from utils.json_sanitizer import JSONSanitizerError, extract_json_object, parse_summary_response


def test_plain_json_object():
    result = parse_summary_response('{"title": "feat(api): add health check", "description": "### Summary\\n- adds /health"}')
    assert result.title == "feat(api): add health check"
    assert result.body.startswith("### Summary")
    assert result.source == "llm"


def test_fenced_json_and_surrounding_prose():
    fenced = '```json\n{"title": "fix: guard nil", "description": "Body"}\n```'
    assert parse_summary_response(fenced).title == "fix: guard nil"

    chatty = 'Here you go: {"title": "docs: tidy", "description": "Body"} Hope it helps!'
    assert parse_summary_response(chatty).title == "docs: tidy"


def test_body_is_accepted_as_description():
    assert parse_summary_response('{"title": "t", "body": "b"}').body == "b"


def test_title_is_cleaned_and_capped():
    long_title = "feat:   " + "word " * 30 + "."
    result = parse_summary_response('{"title": "%s", "description": "b"}' % long_title)
    assert len(result.title) <= 72
    assert "  " not in result.title
    assert not result.title.endswith(".")

    assert parse_summary_response('{"title": "chore: bump deps.", "description": "b"}').title == "chore: bump deps"


@pytest.mark.parametrize(
    "raw",
    [
        '{"title": "only a title"}',
        '{"description": "only a body"}',
        '{"title": "   ", "description": "b"}',
        '{"title": "t", "description": 3}',
    ],
)
def test_missing_fields_are_incomplete(raw):
    with pytest.raises(JSONSanitizerError) as exc:
        parse_summary_response(raw)
    assert exc.value.code == "INCOMPLETE"


@pytest.mark.parametrize("raw", ["", "not json at all", "[1, 2]", "{broken"])
def test_unparseable_output(raw):
    with pytest.raises(JSONSanitizerError) as exc:
        parse_summary_response(raw)
    assert exc.value.code == "PARSE_ERROR"


def test_extract_json_object_returns_mapping():
    assert extract_json_object(' {"a": 1} ') == {"a": 1}


def test_code_blocks_inside_the_description_survive():
    description = "### Summary\n- adds helper\n\n```python\nprint('hi')\n```"
    raw = json.dumps({"title": "feat: add helper", "description": description})
    assert parse_summary_response(raw).body == description


def test_outer_fence_is_removed_but_inner_fences_are_kept():
    description = "Run:\n```sh\nmake test\n```"
    wrapped = "```json\n" + json.dumps({"title": "chore: docs", "description": description}) + "\n```"
    assert parse_summary_response(wrapped).body == description

    chatty = "Sure:\n```json\n" + json.dumps({"title": "chore: docs", "description": description}) + "\n```\n"
    assert parse_summary_response(chatty).body == description
