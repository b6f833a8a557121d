"""
Question generation from document chunks

Each chunk gets one LLM call. Responses are untrusted text: they are parsed
into a tagged result (Parsed / Malformed / ProviderError) and every candidate
question is validated before it is kept.
"""
import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from quizforge.config import settings
from quizforge.exceptions import ConfigurationError, GenerationFailedError
from quizforge.services.gemini_service import gemini_service, strip_code_fences
from quizforge.utils.retry import is_rate_limit_error

logger = logging.getLogger(__name__)

OPTION_LETTERS = "ABCDEFGH"


@dataclass
class Parsed:
    items: List[Any]


@dataclass
class Malformed:
    raw_text: str


@dataclass
class ProviderError:
    kind: str  # rate_limited | timeout | error
    message: str = ""


LLMResult = Union[Parsed, Malformed, ProviderError]


@dataclass
class Rejected:
    item: Any
    reason: str


@dataclass
class ValidationReport:
    valid: List[Dict[str, Any]] = field(default_factory=list)
    rejected: List[Rejected] = field(default_factory=list)


@dataclass
class ChunkFailure:
    chunk_index: int
    reason: str


@dataclass
class GenerationResult:
    questions: List[Dict[str, Any]]
    failures: List[ChunkFailure]
    chunk_count: int


def find_balanced_object(text: str) -> Optional[str]:
    """
    Return the first balanced ``{...}`` substring of ``text``

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            char = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:pos + 1]
        start = text.find("{", start + 1)
    return None


def _questions_from(data: Any) -> Optional[List[Any]]:
    if isinstance(data, dict) and isinstance(data.get("questions"), list):
        return data["questions"]
    return None


def parse_response(raw_text: str) -> LLMResult:
    """Turn a raw completion into Parsed or Malformed"""
    if not raw_text or not raw_text.strip():
        return Malformed(raw_text or "")

    cleaned = strip_code_fences(raw_text)
    try:
        items = _questions_from(json.loads(cleaned))
        if items is not None:
            return Parsed(items)
    except json.JSONDecodeError:
        pass

    candidate = find_balanced_object(cleaned)
    if candidate:
        try:
            items = _questions_from(json.loads(candidate))
            if items is not None:
                logger.info("Recovered JSON object from non-JSON response")
                return Parsed(items)
        except json.JSONDecodeError:
            pass

    return Malformed(raw_text)


def _resolve_answer(answer: Any, options: List[str]) -> Optional[int]:
    """Map an answer given as index, digit string, letter or option text to an index"""
    if isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        index = answer
    elif isinstance(answer, float) and answer.is_integer():
        index = int(answer)
    elif isinstance(answer, str):
        value = answer.strip()
        if re.fullmatch(r"\d+", value):
            index = int(value)
        elif len(value) == 1 and value.upper() in OPTION_LETTERS[:len(options)]:
            index = OPTION_LETTERS.index(value.upper())
        elif value in options:
            index = options.index(value)
        else:
            return None
    else:
        return None

    if 0 <= index < len(options):
        return index
    return None


def validate_question(item: Any) -> Union[Dict[str, Any], Rejected]:
    """Validate one candidate, returning the normalized question or a rejection"""
    if not isinstance(item, dict):
        return Rejected(item, "not an object")

    question = item.get("question")
    if not isinstance(question, str) or not question.strip():
        return Rejected(item, "missing question text")

    options = item.get("options")
    if not isinstance(options, list) or len(options) < 2:
        return Rejected(item, "options must be a list of at least 2 entries")
    if not all(isinstance(option, str) for option in options):
        return Rejected(item, "options must be strings")

    answer = item.get("answer")
    if answer is None:
        answer = item.get("correctAnswer")
    if answer is None:
        return Rejected(item, "missing answer")
    answer_index = _resolve_answer(answer, options)
    if answer_index is None:
        return Rejected(item, f"answer {answer!r} out of range")

    explanation = item.get("explanation")
    if not isinstance(explanation, str):
        return Rejected(item, "missing explanation")

    normalized = {
        "question": question.strip(),
        "options": options,
        "answer": answer_index,
        "explanation": explanation,
    }
    if isinstance(item.get("metadata"), dict):
        normalized["metadata"] = dict(item["metadata"])
    return normalized


def validate_questions(result: LLMResult) -> ValidationReport:
    """Validate every candidate of a parsed response; other variants yield nothing"""
    report = ValidationReport()
    if not isinstance(result, Parsed):
        return report

    for item in result.items:
        checked = validate_question(item)
        if isinstance(checked, Rejected):
            logger.warning(f"Filtered out invalid question: {checked.reason}")
            report.rejected.append(checked)
        else:
            report.valid.append(checked)
    return report


def extract_key_terms(text: str, limit: int = 10) -> List[str]:
    """Capitalized multi-word phrases and acronyms, first occurrence order"""
    terms = re.findall(r"[A-Z][a-z]+ [A-Z][a-z]+(?: [A-Z][a-z]+)*", text)
    terms += re.findall(r"\b[A-Z]{2,}\b", text)
    unique = list(dict.fromkeys(terms))
    return unique[:limit]


class QuestionGenerator:
    """
    Issues one LLM request per chunk with bounded concurrency

    Chunks run in batches of ``batch_size`` concurrent calls with
    ``batch_delay`` seconds between batches.
    """

    def __init__(self, llm=None, batch_size: int = None, batch_delay: float = None):
        self.llm = llm or gemini_service
        self.batch_size = batch_size or settings.GENERATION_BATCH_SIZE
        self.batch_delay = settings.GENERATION_BATCH_DELAY if batch_delay is None else batch_delay

    async def _call(self, chunk: str, index: int, total: int, num_questions: int) -> LLMResult:
        prompt = self.llm.build_question_prompt(
            chunk, num_questions, extract_key_terms(chunk), f"{index + 1} of {total}"
        )
        try:
            raw = await self.llm.complete_with_retry(prompt)
        except ConfigurationError:
            raise
        except asyncio.TimeoutError:
            return ProviderError("timeout", "LLM call timed out")
        except Exception as e:
            kind = "rate_limited" if is_rate_limit_error(e) else "error"
            return ProviderError(kind, str(e))
        return parse_response(raw)

    async def _process_chunk(self, chunk: str, index: int, total: int, num_questions: int):
        logger.info(f"Generating questions for chunk {index + 1}/{total}")
        result = await self._call(chunk, index, total, num_questions)

        if isinstance(result, ProviderError):
            logger.error(f"Chunk {index + 1} failed: {result.kind} {result.message}")
            return [], ChunkFailure(index, result.kind)
        if isinstance(result, Malformed):
            logger.warning(f"Chunk {index + 1} returned malformed content: {result.raw_text[:200]}")
            return [], ChunkFailure(index, "malformed")

        report = validate_questions(result)
        for question in report.valid:
            question.setdefault("metadata", {})
            question["metadata"].update({"chunk_index": index, "position": f"{index + 1} of {total}"})
        logger.info(
            f"Chunk {index + 1}: {len(report.valid)} valid, {len(report.rejected)} rejected"
        )
        return report.valid, None

    async def generate(self, chunks: Sequence[str], questions_per_chunk: int) -> GenerationResult:
        """
        Generate questions for every chunk

        Returns:
            GenerationResult with questions in chunk order and per-chunk failures

        Raises:
            GenerationFailedError: every chunk failed
            ConfigurationError: no API key configured
        """
        chunks = list(chunks)
        total = len(chunks)
        questions: List[Dict[str, Any]] = []
        failures: List[ChunkFailure] = []

        for start in range(0, total, self.batch_size):
            batch = range(start, min(start + self.batch_size, total))
            results = await asyncio.gather(*[
                self._process_chunk(chunks[i], i, total, questions_per_chunk) for i in batch
            ])
            for valid, failure in results:
                questions.extend(valid)
                if failure:
                    failures.append(failure)

            if start + self.batch_size < total and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        if total and len(failures) == total:
            raise GenerationFailedError(f"All {total} chunks failed during question generation")

        logger.info(f"Generated {len(questions)} questions from {total} chunks ({len(failures)} failed)")
        return GenerationResult(questions=questions, failures=failures, chunk_count=total)
