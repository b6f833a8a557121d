import pytest

from quizforge.exceptions import QuizStateError, SessionNotFoundError
from quizforge.services.quiz_runner import Completed, Presenting, QuizRunner, QuizSessionManager


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def make_runner(questions, clock, results=None, **kwargs):
    return QuizRunner(
        document_id="doc-1",
        questions=questions,
        template_indices=[i * 3 for i in range(len(questions))],
        on_complete=results.append if results is not None else None,
        time_limit=60,
        clock=clock,
        **kwargs,
    )


def test_score_is_recorded_exactly_once(make_questions, clock):
    results = []
    runner = make_runner(make_questions(10), clock, results)

    for i in range(10):
        runner.submit_answer(0 if i < 7 else 1)

    assert runner.state == Completed(7)
    assert len(results) == 1
    assert results[0].score == 7
    assert results[0].total_questions == 10
    assert results[0].selected_indices == [i * 3 for i in range(10)]

    assert runner.complete() is runner.complete()
    assert len(results) == 1


def test_answers_advance_the_state(make_questions, clock):
    runner = make_runner(make_questions(3), clock)

    assert runner.state == Presenting(0)
    assert runner.submit_answer(0) is True
    assert runner.state == Presenting(1)
    assert runner.submit_answer(2) is False
    assert runner.submit_answer(None) is False
    assert runner.answers == [0, 2, None]


def test_answering_a_completed_quiz_fails(make_questions, clock):
    runner = make_runner(make_questions(1), clock)
    runner.submit_answer(0)

    with pytest.raises(QuizStateError):
        runner.submit_answer(0)


def test_complete_before_the_end_fails(make_questions, clock):
    runner = make_runner(make_questions(2), clock)

    with pytest.raises(QuizStateError):
        runner.complete()


def test_expired_question_counts_as_wrong(make_questions, clock):
    runner = make_runner(make_questions(3), clock)

    clock.now += 61

    assert runner.current_question["question"] == "Question 1?"
    assert runner.answers == [None]
    assert runner.time_remaining() == pytest.approx(59)


def test_timeouts_can_finish_the_quiz(make_questions, clock):
    results = []
    runner = make_runner(make_questions(3), clock, results)
    runner.submit_answer(0)

    clock.now += 500

    assert runner.current_question is None
    assert runner.is_completed
    assert runner.complete().score == 1
    assert results[0].answers == [0, None, None]


def test_answer_restarts_the_countdown(make_questions, clock):
    runner = make_runner(make_questions(3), clock)
    clock.now += 50
    runner.submit_answer(0)

    clock.now += 50

    assert runner.state == Presenting(1)
    assert runner.time_remaining() == pytest.approx(10)


def test_late_answer_is_not_applied_to_the_next_question(make_questions, clock):
    runner = make_runner(make_questions(3), clock)

    clock.now += 61

    with pytest.raises(QuizStateError):
        runner.submit_answer(0, expected_index=0)
    assert runner.answers == [None]
    assert runner.state == Presenting(1)

    assert runner.submit_answer(0, expected_index=1) is True
    assert runner.answers == [None, 0]
    assert runner.state == Presenting(2)


def test_completion_callback_errors_are_contained(make_questions, clock):
    def failing(result):
        raise RuntimeError("database down")

    runner = QuizRunner("doc-1", make_questions(1), [0], on_complete=failing, clock=clock)
    runner.submit_answer(0)

    assert runner.complete().score == 1


def test_runner_needs_questions(clock):
    with pytest.raises(ValueError):
        QuizRunner("doc-1", [], [], clock=clock)


def test_session_manager(make_questions, clock):
    sessions = QuizSessionManager(max_sessions=2)
    first = sessions.create(make_runner(make_questions(1), clock))
    second = sessions.create(make_runner(make_questions(1), clock))

    assert sessions.get(second).document_id == "doc-1"

    sessions.create(make_runner(make_questions(1), clock))
    with pytest.raises(SessionNotFoundError):
        sessions.get(first)

    sessions.discard_document("doc-1")
    with pytest.raises(SessionNotFoundError):
        sessions.get(second)
