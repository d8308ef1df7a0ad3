from __future__ import annotations

import json

import pytest

from sdqc_web.domain.errors import UnparsableResponseError
from sdqc_web.services.response_parser import (
    RAW_PREFIX_CHARS,
    extract_json_object,
    iter_balanced_objects,
    parse_analysis,
)

EXAMPLE = {
    "overallStatus": "pass",
    "summary": "Drawing is complete.",
    "criticalIssues": [],
    "warnings": [],
    "passed": [{"id": "1", "label": "Title block", "status": "pass", "notes": "ok"}],
}


def test_direct_parse_when_reply_starts_with_brace():
    text = "  " + json.dumps(EXAMPLE) + "\n"
    assert extract_json_object(text) == EXAMPLE


def test_direct_parse_wins_over_inner_spans():
    # The inner object would parse too; the whole reply must be used.
    data = {"overallStatus": "warning", "summary": "x", "extractedInfo": {"projectName": "Lobby"}}
    assert extract_json_object(json.dumps(data)) == data


def test_prose_around_single_object_recovers_exact_span():
    body = json.dumps(EXAMPLE)
    text = f"Here is the review you asked for:\n{body}\nLet me know if you need more."
    spans = list(iter_balanced_objects(text))
    assert spans[0] == body
    assert extract_json_object(text) == EXAMPLE


def test_nested_braces_in_leading_prose_do_not_overshoot():
    body = json.dumps(EXAMPLE)
    text = (
        "Checked the set {pages {1} and {2}} as requested. "
        f"{body} "
        "Trailing note {see sheet A-3}."
    )
    assert extract_json_object(text) == EXAMPLE


def test_unbalanced_brace_in_prose_is_skipped():
    body = json.dumps(EXAMPLE)
    text = "Opening { without a close, then the data: " + body
    assert extract_json_object(text) == EXAMPLE


def test_braces_inside_strings_are_ignored():
    data = {"overallStatus": "fail", "summary": "Callout reads '}' and '{'", "criticalIssues": []}
    text = "Result: " + json.dumps(data) + " done"
    assert extract_json_object(text) == data


def test_markdown_fenced_json_is_recovered():
    text = "```json\n" + json.dumps(EXAMPLE, indent=2) + "\n```"
    assert extract_json_object(text) == EXAMPLE


def test_starts_with_brace_but_invalid_falls_back_to_scanner():
    body = json.dumps(EXAMPLE)
    text = "{not json} " + body
    assert extract_json_object(text) == EXAMPLE


@pytest.mark.parametrize("text", ["", "   ", "The drawing looks fine to me.", "{broken: json", "[1, 2, 3]"])
def test_malformed_or_empty_reply_raises(text):
    with pytest.raises(UnparsableResponseError):
        parse_analysis(text)


def test_unparsable_error_carries_truncated_prefix():
    text = "No JSON here. " * 50
    with pytest.raises(UnparsableResponseError) as info:
        parse_analysis(text)
    assert info.value.raw_prefix == text.strip()[:RAW_PREFIX_CHARS]
    assert "No JSON here." in info.value.message


def test_parse_analysis_builds_result():
    result = parse_analysis("Sure! " + json.dumps(EXAMPLE))
    assert result.overall_status == "pass"
    assert len(result.passed) == 1
    assert result.critical_issues == ()
    assert result.manual_review == ()
