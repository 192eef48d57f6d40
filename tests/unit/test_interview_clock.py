import threading
import time

from interview_session import InterviewClock, Question, SessionStore


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_clock_expires_question_exactly_once():
    store = SessionStore()
    expired = []
    fired = threading.Event()

    def on_expire(candidate_id, answer):
        expired.append((candidate_id, answer))
        fired.set()

    clock = InterviewClock(store, on_expire, interval=0.01)
    clock.attach()
    try:
        store.start("c1")
        question = Question(difficulty="easy", text="What is a closure?", seconds=3)
        store.add_question("c1", question)

        assert fired.wait(3.0)
        time.sleep(0.1)
    finally:
        clock.detach()

    assert len(expired) == 1
    candidate_id, answer = expired[0]
    assert candidate_id == "c1"
    assert answer.question_id == question.id
    assert answer.auto_submitted is True
    state = store.get("c1")
    assert len(state.answers) == 1
    assert state.timer.question_id is None


def test_clock_follows_stage_changes():
    store = SessionStore()
    clock = InterviewClock(store, interval=0.01)
    clock.attach()
    try:
        store.start("c1")
        assert clock.is_running("c1")

        store.pause("c1")
        assert not clock.is_running("c1")

        store.resume("c1")
        assert clock.is_running("c1")

        store.remove("c1")
        assert not clock.is_running("c1")
    finally:
        clock.detach()


def test_paused_session_does_not_count_down():
    store = SessionStore()
    clock = InterviewClock(store, interval=0.01)
    clock.attach()
    try:
        store.start("c1")
        store.add_question("c1", Question(difficulty="easy", text="Explain hoisting.", seconds=50))
        assert _wait_for(lambda: store.get("c1").timer.remaining < 50)
        store.pause("c1")
        frozen = store.get("c1").timer.remaining
        time.sleep(0.1)
        assert store.get("c1").timer.remaining == frozen
    finally:
        clock.detach()
