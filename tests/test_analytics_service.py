import uuid

import pytest

from quizforge.exceptions import DocumentNotFoundError
from quizforge.services.analytics_service import analytics_service
from quizforge.services.attempt_service import AttemptService
from quizforge.services.template_service import TemplateService


def test_document_without_attempts(db, document):
    stats = analytics_service.get_document_analytics(db, document.id)

    assert stats["total_attempts"] == 0
    assert stats["avg_percentage"] == 0.0
    assert stats["coverage"] == 0.0
    assert stats["last_attempt_at"] is None


def test_attempt_statistics(db, document, make_questions):
    TemplateService().save(db, document.id, make_questions(10))
    attempts = AttemptService()
    attempts.record_attempt(db, document.id, score=2, total_questions=4, selected_indices=[0, 1, 2, 3])
    attempts.record_attempt(db, document.id, score=4, total_questions=4, selected_indices=[2, 3, 4, 99])

    stats = analytics_service.get_document_analytics(db, document.id)

    assert stats["total_attempts"] == 2
    assert stats["avg_percentage"] == 75.0
    assert stats["best_percentage"] == 100.0
    assert stats["questions_seen"] == 5
    assert stats["coverage"] == 0.5
    assert [point["score"] for point in stats["score_history"]] == [2, 4]


def test_unknown_document(db):
    with pytest.raises(DocumentNotFoundError):
        analytics_service.get_document_analytics(db, uuid.uuid4())
