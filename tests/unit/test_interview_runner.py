from concurrent.futures import ThreadPoolExecutor

import pytest

from candidate_management import CandidateStore
from flow_manager import InterviewRunner
from interview_session import InterviewClock, SessionStore
from llm_gateway import LlmGatewayError


@pytest.fixture()
def runner(fake_completion):
    store = SessionStore()
    candidates = CandidateStore(store)
    # Ticks are driven by hand; the attached clock never fires within a test.
    clock = InterviewClock(store, interval=3600)
    runner = InterviewRunner(store, candidates, clock=clock, executor=ThreadPoolExecutor(max_workers=1))
    try:
        yield runner
    finally:
        runner.shutdown(wait=True)


def test_manual_answer_is_timed_from_the_clock(runner):
    runner.store.start("c1")
    question = runner.begin("c1")
    for _ in range(3):
        runner.store.tick("c1")

    answer = runner.submit("c1", "Use memoization.")

    assert answer.question_id == question.id
    assert answer.elapsed_seconds == 3
    assert answer.auto_submitted is False
    assert (answer.submitted_at - answer.started_at).total_seconds() == 3
    assert runner.submit("c1", "second try") is None


def test_full_interview_reaches_summary(runner, fake_completion):
    runner.store.start("c1")
    runner.begin("c1")
    fake_completion.scores = [9, 9, 8, 8, 10, 10]

    for index in range(6):
        state = runner.answer("c1", f"answer {index}")

    assert state.stage == "completed"
    assert [q.difficulty for q in state.questions] == ["easy", "easy", "hard", "medium", "hard", "hard"]
    assert state.meta.altered_path is True
    assert state.summary.altered_path is True
    assert "Hard Question Hero" in state.summary.badges
    assert [a.score for a in state.answers] == [9, 9, 8, 8, 10, 10]
    assert fake_completion.kinds().count("question") == 6
    assert fake_completion.kinds()[-1] == "summary"
    assert runner.answer("c1", "too late") is None


def test_expiry_is_advanced_on_a_worker(runner, fake_completion):
    fake_completion.question_seconds = 1
    fake_completion.scores = [0]
    runner.store.start("c1")
    first = runner.begin("c1")

    result = runner.store.tick("c1")
    assert result.expired_answer.question_id == first.id

    state = runner.handle_expiry("c1", result.expired_answer).result(timeout=5)

    assert state.answers[0].auto_submitted is True
    assert state.answers[0].score == 0
    assert len(state.questions) == 2
    assert state.timer.question_id == state.questions[1].id


def test_worker_failure_leaves_answer_recorded(runner, monkeypatch):
    runner.store.start("c1")
    runner.begin("c1")
    result = None
    for _ in range(20):
        result = runner.store.tick("c1")
        if result.expired_answer is not None:
            break

    def broken(*args, **kwargs):
        raise LlmGatewayError("provider down")

    monkeypatch.setattr("flow_manager.runner.score_answer", broken)
    future = runner.handle_expiry("c1", result.expired_answer)

    with pytest.raises(LlmGatewayError):
        future.result(timeout=5)
    assert len(runner.store.get("c1").answers) == 1


def test_restart_resets_and_asks_again(runner):
    runner.store.start("c1")
    runner.begin("c1")
    runner.answer("c1", "first")

    question = runner.restart("c1")

    state = runner.store.get("c1")
    assert state.generation == 1
    assert state.stage == "running"
    assert [q.id for q in state.questions] == [question.id]
    assert state.answers == []


def test_finish_recovers_a_failed_last_scoring(runner, fake_completion, monkeypatch):
    import flow_manager.runner as runner_module

    runner.store.start("c1")
    runner.begin("c1")
    for index in range(5):
        runner.answer("c1", f"answer {index}")

    def broken(*args, **kwargs):
        raise LlmGatewayError("provider down")

    original = runner_module.score_answer
    monkeypatch.setattr(runner_module, "score_answer", broken)
    with pytest.raises(LlmGatewayError):
        runner.answer("c1", "last answer")
    stuck = runner.store.get("c1")
    assert stuck.stage == "running"
    assert len(stuck.answers) == 6
    assert stuck.answers[-1].score is None

    monkeypatch.setattr(runner_module, "score_answer", original)
    state = runner.finish("c1")

    assert state.stage == "completed"
    assert state.answers[-1].score == 7
    assert state.summary is not None
    assert runner.finish("c1").stage == "completed"
