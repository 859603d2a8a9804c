"""Parsing and validation of the evaluation engine's free-form answers."""

from __future__ import annotations

import json

import pytest

from app.services.response_contract import (
    EvaluationPayload,
    ResponseContractError,
    SpeechScores,
    locate_json_candidate,
)


def _scores(**overrides):
    scores = {
        "overall": 72,
        "fluency": 70,
        "pronunciation": 68,
        "grammar": 75,
        "vocabulary": 71,
        "confidence": 66,
        "structure": 74,
        "fillerWords": 80,
    }
    scores.update(overrides)
    return scores


def _payload(**score_overrides) -> dict:
    return {
        "scores": _scores(**score_overrides),
        "feedback": {
            "detailed": "Clear introduction with steady pacing.",
            "improvementTips": ["Pause between ideas"],
            "strengths": ["Good structure"],
            "areasToImprove": ["Vary intonation"],
        },
    }


def test_parses_fenced_json_block():
    text = "Here is my evaluation:\n```json\n" + json.dumps(_payload()) + "\n```\nThanks!"

    payload = EvaluationPayload.from_response(text)

    assert payload.scores.overall == 72
    assert payload.scores.filler_words == 80
    assert payload.feedback.areas_to_improve == ["Vary intonation"]
    assert payload.feedback.improvement_tips == ["Pause between ideas"]


def test_parses_first_balanced_object_in_prose():
    body = json.dumps(_payload())
    text = f"Sure. {body} Let me know if you need more {{detail}}."

    payload = EvaluationPayload.from_response(text)

    assert payload.scores.grammar == 75


def test_braces_inside_strings_do_not_end_the_object():
    data = _payload()
    data["feedback"]["detailed"] = "Uses phrases like {this} and \"quoted }\" text."
    candidate = locate_json_candidate("prefix " + json.dumps(data) + " suffix")

    assert json.loads(candidate) == data


def test_fenced_block_wins_over_earlier_braces():
    text = "{not json}\n```json\n" + json.dumps(_payload()) + "\n```"
    assert EvaluationPayload.from_response(text).scores.overall == 72


def test_missing_feedback_uses_empty_defaults():
    payload = EvaluationPayload.from_response(json.dumps({"scores": _scores()}))

    assert payload.feedback.detailed == ""
    assert payload.feedback.strengths == []


def test_null_feedback_lists_become_empty():
    data = _payload()
    data["feedback"]["strengths"] = None
    payload = EvaluationPayload.from_response(json.dumps(data))
    assert payload.feedback.strengths == []


@pytest.mark.parametrize(
    "text",
    [
        "",
        None,
        "No JSON here at all.",
        "{\"scores\": {\"overall\": 70",
        "```json\n{broken\n```",
        "[1, 2, 3]",
    ],
)
def test_unusable_text_is_rejected(text):
    with pytest.raises(ResponseContractError):
        EvaluationPayload.from_response(text)


def test_missing_score_field_is_rejected():
    data = _payload()
    del data["scores"]["fluency"]
    with pytest.raises(ResponseContractError):
        EvaluationPayload.from_response(json.dumps(data))


def test_numeric_strings_are_not_coerced():
    with pytest.raises(ResponseContractError):
        EvaluationPayload.from_response(json.dumps(_payload(overall="72")))


def test_booleans_are_not_scores():
    with pytest.raises(ResponseContractError):
        EvaluationPayload.from_response(json.dumps(_payload(grammar=True)))


@pytest.mark.parametrize("value", [-1, 100.5, 250])
def test_out_of_range_scores_are_rejected(value):
    with pytest.raises(ResponseContractError):
        EvaluationPayload.from_response(json.dumps(_payload(confidence=value)))


def test_nan_scores_are_rejected():
    text = json.dumps(_payload()).replace('"overall": 72', '"overall": NaN')
    with pytest.raises(ResponseContractError):
        EvaluationPayload.from_response(text)


def test_boundary_scores_are_accepted():
    payload = EvaluationPayload.from_response(json.dumps(_payload(overall=0, fluency=100)))
    assert payload.scores.overall == 0
    assert payload.scores.fluency == 100


def test_scores_accept_field_names_and_alias():
    by_name = SpeechScores.uniform(50)
    assert by_name.as_columns()["filler_words"] == 50.0
    assert by_name.model_dump(by_alias=True)["fillerWords"] == 50
