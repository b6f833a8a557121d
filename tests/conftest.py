import asyncio
import json
import os
import tempfile

# Settings are read at import time, so the environment is prepared first
_TMP_DIR = tempfile.mkdtemp(prefix="quizforge-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'quizforge.db')}"
os.environ["STORAGE_DIR"] = os.path.join(_TMP_DIR, "storage")
os.environ["ROTATION_BACKEND"] = "memory"
os.environ["GEMINI_API_KEY"] = "test-key"
os.environ["GENERATION_BATCH_DELAY"] = "0"

import fitz  # noqa: E402
import pytest  # noqa: E402

import quizforge.models  # noqa: E402,F401
from quizforge.database import Base, SessionLocal, engine  # noqa: E402
from quizforge.models import Document  # noqa: E402

SENTENCE = "Sentence {i} explains how the Krebs Cycle and ATP Synthase power every living cell."


class FakeLLM:
    """
    Stand-in for GeminiService

    The prompt is the chunk itself; ``responder(chunk)`` returns the raw
    completion text or an exception instance to raise.
    """

    def __init__(self, responder=None, delay: float = 0.0):
        self.responder = responder or (lambda chunk: json.dumps({"questions": []}))
        self.delay = delay
        self.prompts = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.summaries = 0

    def build_question_prompt(self, chunk, num_questions, key_terms, position):
        return chunk

    async def complete_with_retry(self, prompt, json_output=True):
        self.prompts.append(prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            result = self.responder(prompt)
        finally:
            self.in_flight -= 1
        if isinstance(result, BaseException):
            raise result
        return result

    async def summarize(self, text):
        self.summaries += 1
        return f"Summary of {len(text)} characters"


def build_questions(count, prefix="Question"):
    return [
        {
            "question": f"{prefix} {i}?",
            "options": ["Right", "Wrong A", "Wrong B", "Wrong C"],
            "answer": 0,
            "explanation": f"Because {i}",
        }
        for i in range(count)
    ]


@pytest.fixture
def make_questions():
    return build_questions


@pytest.fixture
def question_payload():
    """Raw completion text containing ``count`` questions"""
    def payload(count, prefix="Question"):
        return json.dumps({"questions": build_questions(count, prefix)})
    return payload


@pytest.fixture
def fake_llm():
    return FakeLLM


@pytest.fixture
def make_pdf():
    """PDF bytes with one page per entry of ``pages`` (each a list of lines)"""
    def build(pages):
        doc = fitz.open()
        for lines in pages:
            page = doc.new_page()
            if lines:
                page.insert_text((50, 60), "\n".join(lines), fontsize=10)
        data = doc.tobytes()
        doc.close()
        return data
    return build


@pytest.fixture
def study_pdf(make_pdf):
    """A single page with enough text for a quiz"""
    return make_pdf([[SENTENCE.format(i=i) for i in range(30)]])


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def document(db):
    doc = Document(name="Cell Biology", file_ref="pdfs/cell_biology.pdf")
    db.add(doc)
    db.commit()
    db.refresh(doc)
    return doc
