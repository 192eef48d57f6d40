import threading
import time
from datetime import datetime, timezone

import pytest

from interview_session import Answer, InterviewSummary, Question, SessionStore

FIXED_NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def store():
    return SessionStore(clock=lambda: FIXED_NOW)


def _question(seconds=20, difficulty="easy"):
    return Question(difficulty=difficulty, text="Explain the virtual DOM.", seconds=seconds)


def _answer(question, text="Because diffing is cheap."):
    return Answer(question_id=question.id, text=text, started_at=FIXED_NOW, submitted_at=FIXED_NOW, elapsed_seconds=4)


def _summary():
    return InterviewSummary(score=80, level="Intermediate")


def test_start_creates_running_session(store):
    state = store.start("c1")
    assert state.stage == "running"
    assert state.step_index == 0
    assert state.timer.question_id is None
    assert store.get("c1").stage == "running"


def test_restart_of_paused_session_keeps_step(store):
    store.start("c1")
    question = _question()
    store.add_question("c1", question)
    store.submit_answer("c1", _answer(question))
    store.pause("c1")

    state = store.start("c1")

    assert state.stage == "running"
    assert state.step_index == 1


def test_add_question_arms_timer(store):
    store.start("c1")
    question = _question(seconds=20)
    state = store.add_question("c1", question)
    assert state.timer.question_id == question.id
    assert state.timer.remaining == 20
    assert state.timer.paused is False


def test_tick_decrements_only_when_unpaused(store):
    store.start("c1")
    store.add_question("c1", _question(seconds=5))
    result = store.tick("c1")
    assert result.state.timer.remaining == 4
    assert result.expired_answer is None

    store.pause("c1")
    result = store.tick("c1")
    assert result.state.timer.remaining == 4


def test_tick_to_zero_auto_submits_in_same_tick(store):
    store.start("c1")
    question = _question(seconds=1)
    store.add_question("c1", question)

    result = store.tick("c1")

    expired = result.expired_answer
    assert expired is not None
    assert expired.question_id == question.id
    assert expired.text == ""
    assert expired.auto_submitted is True
    assert expired.elapsed_seconds == 0
    assert expired.started_at == expired.submitted_at == FIXED_NOW
    state = result.state
    assert state.timer.question_id is None
    assert state.timer.remaining == 0
    assert state.timer.paused is True
    assert state.step_index == 1
    assert len(state.answers) == 1

    # No second expiry for the same question.
    again = store.tick("c1")
    assert again.expired_answer is None
    assert len(again.state.answers) == 1


def test_manual_submit_after_expiry_is_rejected(store):
    store.start("c1")
    question = _question(seconds=1)
    store.add_question("c1", question)
    store.tick("c1")

    state = store.submit_answer("c1", _answer(question))
    assert len(state.answers) == 1
    assert state.answers[0].auto_submitted is True


def test_pause_is_idempotent_and_resume_clears_paused_at(store):
    store.start("c1")
    store.add_question("c1", _question(seconds=30))
    store.tick("c1")

    first = store.pause("c1")
    second = store.pause("c1")
    assert first.timer.remaining == second.timer.remaining == 29
    assert second.stage == "paused"
    assert second.timer.paused is True
    assert second.meta.paused_at == FIXED_NOW

    resumed = store.resume("c1")
    assert resumed.stage == "running"
    assert resumed.timer.paused is False
    assert resumed.meta.paused_at is None
    assert resumed.timer.remaining == 29


def test_question_added_while_paused_keeps_timer_paused(store):
    store.start("c1")
    store.pause("c1")
    state = store.add_question("c1", _question())
    assert state.timer.paused is True


def test_step_index_caps_at_five(store):
    store.start("c1")
    for _ in range(6):
        question = _question()
        store.add_question("c1", question)
        state = store.submit_answer("c1", _answer(question))
    assert len(state.answers) == 6
    assert state.step_index == 5


def test_update_answer_score_merges_fields(store):
    store.start("c1")
    question = _question()
    store.add_question("c1", question)
    answer = _answer(question)
    store.submit_answer("c1", answer)

    store.update_answer_score("c1", answer.id, score=8)
    state = store.update_answer_score("c1", answer.id, feedback="Good depth.")
    assert state.answers[0].score == 8
    assert state.answers[0].feedback == "Good depth."

    unchanged = store.update_answer_score("c1", "missing", score=1)
    assert unchanged.answers[0].score == 8


def test_complete_sets_summary_and_blocks_further_mutation(store):
    store.start("c1")
    store.add_question("c1", _question(seconds=10))
    state = store.complete("c1", _summary())
    assert state.stage == "completed"
    assert state.summary.score == 80
    assert state.timer.question_id is None

    assert len(store.add_question("c1", _question()).questions) == 1
    assert store.tick("c1").state.timer.remaining == 0
    assert store.start("c1").stage == "completed"


def test_reset_then_start_gives_fresh_running_session(store):
    store.start("c1")
    store.add_question("c1", _question())
    store.complete("c1", _summary())

    fresh = store.reset("c1")
    assert fresh.stage == "collecting_profile"
    assert fresh.generation == 1
    assert fresh.questions == [] and fresh.answers == [] and fresh.summary is None

    started = store.start("c1")
    assert started.stage == "running"
    assert started.step_index == 0


def test_stale_generation_result_is_discarded(store):
    store.start("c1")
    question = _question()
    store.add_question("c1", question)
    answer = _answer(question)
    store.submit_answer("c1", answer)
    old_generation = store.get("c1").generation

    store.reset("c1")
    assert store.update_answer_score("c1", answer.id, score=9, generation=old_generation) is None
    assert store.add_question("c1", _question(), generation=old_generation) is None
    assert store.get("c1").questions == []


def test_unknown_candidate_is_a_no_op(store):
    assert store.get("nobody") is None
    assert store.pause("nobody") is None
    assert store.add_question("nobody", _question()) is None
    assert store.tick("nobody") is None
    assert store.get("nobody") is None


def test_restore_brings_running_session_back_paused(store):
    store.start("c1")
    store.add_question("c1", _question(seconds=40))
    snapshot = store.get("c1")

    other = SessionStore(clock=lambda: FIXED_NOW)
    restored = other.restore(snapshot)
    assert restored.stage == "paused"
    assert restored.timer.paused is True
    assert restored.timer.remaining == 40


def test_listeners_receive_snapshots_until_unsubscribed(store):
    seen = []
    unsubscribe = store.subscribe(lambda cid, snapshot: seen.append((cid, snapshot.stage if snapshot else None)))
    store.start("c1")
    store.pause("c1")
    store.remove("c1")
    unsubscribe()
    store.start("c2")
    assert seen == [("c1", "running"), ("c1", "paused"), ("c1", None)]


def test_snapshots_are_copies(store):
    store.start("c1")
    snapshot = store.get("c1")
    snapshot.stage = "completed"
    assert store.get("c1").stage == "running"


def test_add_question_refuses_second_pending_question(store):
    store.start("c1")
    first = _question()
    store.add_question("c1", first)

    state = store.add_question("c1", _question())

    assert [q.id for q in state.questions] == [first.id]
    assert state.timer.question_id == first.id


def test_add_question_refuses_a_seventh_question(store):
    store.start("c1")
    for _ in range(6):
        question = _question()
        store.add_question("c1", question)
        store.submit_answer("c1", _answer(question))

    state = store.add_question("c1", _question())

    assert len(state.questions) == 6
    assert len(state.answers) == 6
    assert state.timer.question_id is None


def test_listeners_see_changes_in_transition_order(store):
    store.start("c1")
    question = _question(seconds=30)
    store.add_question("c1", question)
    seen = []
    entered = threading.Event()
    ticker_name = "ticker"

    def slow_listener(candidate_id, snapshot):
        if threading.current_thread().name == ticker_name:
            entered.set()
            time.sleep(0.2)
        seen.append(len(snapshot.answers))

    store.subscribe(slow_listener)
    ticker = threading.Thread(target=store.tick, args=("c1",), name=ticker_name)
    ticker.start()
    assert entered.wait(2.0)

    store.submit_answer("c1", _answer(question))
    ticker.join(2.0)

    assert seen == [0, 1]
