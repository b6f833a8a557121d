from datetime import timedelta

from sqlalchemy.exc import OperationalError

from quizforge.database import utcnow
from quizforge.models import QuizTemplate
from quizforge.services.template_service import TemplateService


def test_save_creates_template(db, document, make_questions):
    service = TemplateService()

    result = service.save(db, document.id, make_questions(3))

    assert result.ok
    template = service.get(db, document.id)
    assert template.id == result.id
    assert len(template.questions) == 3
    assert template.expires_at - template.generated_at == timedelta(days=7)
    assert service.is_valid(db, document.id)


def test_save_replaces_existing_template(db, document, make_questions):
    service = TemplateService()
    first = service.save(db, document.id, make_questions(3))

    second = service.save(db, document.id, make_questions(5, prefix="Fresh"))

    assert second.ok and second.id == first.id
    assert db.query(QuizTemplate).count() == 1
    assert service.get(db, document.id).questions[0]["question"] == "Fresh 0?"


def test_concurrent_insert_falls_back_to_update(db, document, make_questions, monkeypatch):
    service = TemplateService()
    first = service.save(db, document.id, make_questions(2))
    real_find = service._find
    calls = {"count": 0}

    def racing_find(session, document_id):
        # The first lookup misses the row another writer just inserted
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return real_find(session, document_id)

    monkeypatch.setattr(service, "_find", racing_find)
    result = service.save(db, document.id, make_questions(4, prefix="Racing"))

    assert result.ok and result.id == first.id
    assert db.query(QuizTemplate).count() == 1
    assert len(real_find(db, document.id).questions) == 4


def test_empty_questions_are_a_soft_failure(db, document):
    result = TemplateService().save(db, document.id, [])

    assert not result.ok
    assert "non-empty" in result.error
    assert db.query(QuizTemplate).count() == 0


def test_storage_error_is_returned_not_raised(db, document, make_questions, monkeypatch):
    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(db, "commit", broken_commit)
    result = TemplateService().save(db, document.id, make_questions(2))

    assert not result.ok
    assert "disk full" in result.error


def test_expired_template_is_invalid(db, document, make_questions):
    service = TemplateService()
    service.save(db, document.id, make_questions(2))
    template = service.get(db, document.id)
    template.expires_at = utcnow() - timedelta(seconds=1)
    db.commit()

    assert not service.is_valid(db, document.id)


def test_missing_template(db, document):
    service = TemplateService()
    assert service.get(db, document.id) is None
    assert not service.is_valid(db, document.id)


def test_get_touches_last_accessed(db, document, make_questions):
    service = TemplateService()
    service.save(db, document.id, make_questions(1))
    template = service.get(db, document.id)
    template.last_accessed_at = utcnow() - timedelta(days=1)
    db.commit()

    assert service.get(db, document.id).last_accessed_at > utcnow() - timedelta(minutes=1)
