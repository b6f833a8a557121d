import asyncio
import json

import pytest

from quizforge.exceptions import ConfigurationError, GenerationFailedError
from quizforge.services.question_generator import (
    Malformed,
    Parsed,
    QuestionGenerator,
    Rejected,
    extract_key_terms,
    find_balanced_object,
    parse_response,
    validate_question,
    validate_questions,
)

VALID = {
    "question": "What powers the cell?",
    "options": ["ATP", "DNA", "RNA", "Water"],
    "answer": 0,
    "explanation": "ATP is the energy currency.",
}


class RateLimited(Exception):
    status_code = 429


# Response parsing

def test_parse_plain_json():
    result = parse_response(json.dumps({"questions": [VALID]}))
    assert isinstance(result, Parsed)
    assert result.items == [VALID]


def test_parse_code_fenced_json():
    raw = "```json\n" + json.dumps({"questions": [VALID]}) + "\n```"
    assert isinstance(parse_response(raw), Parsed)


def test_parse_json_surrounded_by_prose():
    raw = "Here are your questions: " + json.dumps({"questions": [VALID]}) + " Hope this helps!"
    result = parse_response(raw)
    assert isinstance(result, Parsed)
    assert result.items[0]["question"] == VALID["question"]


def test_braces_inside_strings_do_not_break_extraction():
    item = dict(VALID, question="What does the } symbol close?")
    raw = "Sure! " + json.dumps({"questions": [item]}) + " }"
    result = parse_response(raw)
    assert isinstance(result, Parsed)
    assert result.items[0]["question"] == "What does the } symbol close?"


def test_find_balanced_object():
    assert find_balanced_object('x {"a": {"b": 1}} y') == '{"a": {"b": 1}}'
    assert find_balanced_object("no braces here") is None


@pytest.mark.parametrize("raw", ["", "   ", "I cannot help with that.", '{"foo": 1}', '{"questions": '])
def test_unusable_responses_are_malformed(raw):
    assert isinstance(parse_response(raw), Malformed)


# Question validation

def test_valid_question_is_normalized():
    item = dict(VALID, question="  What powers the cell?  ", metadata={"source": "llm"})
    checked = validate_question(item)
    assert checked["question"] == "What powers the cell?"
    assert checked["answer"] == 0
    assert checked["metadata"] == {"source": "llm"}


@pytest.mark.parametrize("answer, expected", [(2, 2), ("2", 2), ("C", 2), ("c", 2), ("RNA", 2), (2.0, 2)])
def test_answer_forms(answer, expected):
    assert validate_question(dict(VALID, answer=answer))["answer"] == expected


def test_correct_answer_alias():
    item = {k: v for k, v in VALID.items() if k != "answer"}
    item["correctAnswer"] = 1
    assert validate_question(item)["answer"] == 1


@pytest.mark.parametrize(
    "item",
    [
        "not a dict",
        dict(VALID, question=""),
        dict(VALID, options=["Only one"]),
        dict(VALID, options="ATP, DNA"),
        dict(VALID, options=["ATP", 2]),
        dict(VALID, answer=4),
        dict(VALID, answer=-1),
        dict(VALID, answer=True),
        dict(VALID, answer="Z"),
        {k: v for k, v in VALID.items() if k != "answer"},
        {k: v for k, v in VALID.items() if k != "explanation"},
    ],
)
def test_invalid_questions_are_rejected(item):
    assert isinstance(validate_question(item), Rejected)


def test_empty_explanation_is_allowed():
    assert validate_question(dict(VALID, explanation=""))["explanation"] == ""


def test_validate_questions_splits_valid_and_rejected():
    report = validate_questions(Parsed([VALID, dict(VALID, answer=9)]))
    assert len(report.valid) == 1
    assert len(report.rejected) == 1
    assert "out of range" in report.rejected[0].reason


def test_validate_questions_ignores_malformed():
    report = validate_questions(Malformed("nope"))
    assert report.valid == [] and report.rejected == []


def test_extract_key_terms():
    text = "Cells use the Krebs Cycle. NASA and DNA matter. Again the Krebs Cycle."
    assert extract_key_terms(text) == ["Krebs Cycle", "NASA", "DNA"]
    assert extract_key_terms(text, limit=1) == ["Krebs Cycle"]


# Generation

@pytest.mark.asyncio
async def test_one_failed_chunk_does_not_sink_the_others(fake_llm, question_payload):
    def responder(chunk):
        if chunk == "chunk two":
            return RuntimeError("provider exploded")
        return question_payload(5, prefix=chunk)

    generator = QuestionGenerator(llm=fake_llm(responder), batch_delay=0)
    result = await generator.generate(["chunk one", "chunk two", "chunk three"], 5)

    assert len(result.questions) == 10
    assert result.chunk_count == 3
    assert [(f.chunk_index, f.reason) for f in result.failures] == [(1, "error")]
    assert result.questions[0]["question"].startswith("chunk one")
    assert result.questions[-1]["question"].startswith("chunk three")


@pytest.mark.asyncio
async def test_questions_carry_chunk_metadata(fake_llm, question_payload):
    generator = QuestionGenerator(llm=fake_llm(lambda chunk: question_payload(2, chunk)), batch_delay=0)
    result = await generator.generate(["a", "b"], 2)

    assert result.questions[2]["metadata"] == {"chunk_index": 1, "position": "2 of 2"}


@pytest.mark.asyncio
async def test_every_chunk_failing_is_fatal(fake_llm):
    generator = QuestionGenerator(llm=fake_llm(lambda chunk: ""), batch_delay=0)

    with pytest.raises(GenerationFailedError):
        await generator.generate(["a", "b", "c"], 5)


@pytest.mark.asyncio
async def test_empty_question_list_is_not_a_failure(fake_llm):
    generator = QuestionGenerator(llm=fake_llm(), batch_delay=0)
    result = await generator.generate(["a", "b"], 5)

    assert result.questions == []
    assert result.failures == []


@pytest.mark.asyncio
async def test_failure_reasons(fake_llm, question_payload):
    responses = {
        "limited": RateLimited("429"),
        "slow": asyncio.TimeoutError(),
        "garbled": "I am not JSON",
        "fine": question_payload(1),
    }
    generator = QuestionGenerator(llm=fake_llm(responses.get), batch_size=4, batch_delay=0)
    result = await generator.generate(list(responses), 1)

    reasons = {f.chunk_index: f.reason for f in result.failures}
    assert reasons == {0: "rate_limited", 1: "timeout", 2: "malformed"}
    assert len(result.questions) == 1


@pytest.mark.asyncio
async def test_missing_api_key_propagates(fake_llm):
    generator = QuestionGenerator(llm=fake_llm(lambda chunk: ConfigurationError("no key")), batch_delay=0)

    with pytest.raises(ConfigurationError):
        await generator.generate(["a"], 5)


@pytest.mark.asyncio
async def test_concurrency_is_bounded_by_batch_size(fake_llm, question_payload):
    llm = fake_llm(lambda chunk: question_payload(1, chunk), delay=0.01)
    generator = QuestionGenerator(llm=llm, batch_size=2, batch_delay=0)

    result = await generator.generate([f"chunk {i}" for i in range(5)], 1)

    assert len(llm.prompts) == 5
    assert llm.max_in_flight == 2
    assert len(result.questions) == 5
