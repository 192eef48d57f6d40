import json
import threading

import pytest

from candidate_management import CandidateStore
from flow_manager import (
    ProgressionError,
    compute_adaptive_next_difficulty,
    get_difficulty_by_step,
    next_question,
)
from interview_session import Answer, Question, SessionStore
from interview_session.models import utcnow
from llm_gateway import LlmOutputError


def _answered(store, cid, scores):
    store.start(cid)
    for index, score in enumerate(scores):
        policy = get_difficulty_by_step(index)
        question = Question(difficulty=policy.difficulty, text=f"Question {index}", seconds=policy.seconds)
        store.add_question(cid, question)
        answer = Answer(question_id=question.id, text="answer", started_at=utcnow(), submitted_at=utcnow(), elapsed_seconds=6)
        store.submit_answer(cid, answer)
        if score is not None:
            store.update_answer_score(cid, answer.id, score, "ok")


@pytest.mark.parametrize(
    "step,difficulty,seconds",
    [
        (0, "easy", 20),
        (1, "easy", 20),
        (2, "medium", 60),
        (3, "medium", 60),
        (4, "hard", 120),
        (5, "hard", 120),
    ],
)
def test_difficulty_by_step(step, difficulty, seconds):
    policy = get_difficulty_by_step(step)
    assert (policy.difficulty, policy.seconds) == (difficulty, seconds)


def test_two_strong_openers_escalate_to_hard():
    store = SessionStore()
    _answered(store, "c1", [9, 10])

    policy = compute_adaptive_next_difficulty(store, "c1")

    assert (policy.difficulty, policy.seconds) == ("hard", 120)
    assert store.get("c1").meta.altered_path is True


@pytest.mark.parametrize("scores", [[9, 8.5], [10, None], [3, 4]])
def test_opening_without_two_nines_keeps_medium(scores):
    store = SessionStore()
    _answered(store, "c1", scores)

    policy = compute_adaptive_next_difficulty(store, "c1")

    assert policy.difficulty == "medium"
    assert store.get("c1").meta.altered_path is False


def test_altered_path_stays_set_for_later_steps():
    store = SessionStore()
    _answered(store, "c1", [9, 9])
    compute_adaptive_next_difficulty(store, "c1")
    third = Question(difficulty="hard", text="Design a cache", seconds=120)
    store.add_question("c1", third)
    store.submit_answer(
        "c1",
        Answer(question_id=third.id, text="", started_at=utcnow(), submitted_at=utcnow()),
    )
    policy = compute_adaptive_next_difficulty(store, "c1")
    assert policy.difficulty == "medium"
    assert store.get("c1").meta.altered_path is True


def test_next_question_uses_policy_difficulty_and_fallback_seconds(fake_completion):
    store = SessionStore()
    candidates = CandidateStore(store)
    profile = candidates.create_candidate(name="Ada Lovelace", skills=["react"], years=4)
    store.start(profile.id)

    question = next_question(store, candidates, profile.id)

    assert question.difficulty == "easy"
    assert question.seconds == 20
    assert question.text == "Question 1"
    assert question.key_points == ["trade-offs"]
    state = store.get(profile.id)
    assert state.timer.question_id == question.id
    assert state.timer.remaining == 20
    _, system, user = fake_completion.calls[0]
    assert "easy difficulty" in system
    assert json.loads(user)["profile"]["name"] == "Ada Lovelace"


def test_model_seconds_override_policy(fake_completion):
    fake_completion.question_seconds = 45
    store = SessionStore()
    store.start("c1")

    question = next_question(store, None, "c1")

    assert question.seconds == 45
    assert store.get("c1").timer.remaining == 45


def test_prior_pairs_are_sent_in_order(fake_completion):
    store = SessionStore()
    _answered(store, "c1", [5, 6])

    next_question(store, None, "c1")

    _, _, user = fake_completion.calls[0]
    previous = json.loads(user)["previousQA"]
    assert [pair["q"] for pair in previous] == ["Question 0", "Question 1"]
    assert [pair["a"] for pair in previous] == ["answer", "answer"]


def test_pending_question_is_returned_without_model_call(fake_completion):
    store = SessionStore()
    store.start("c1")
    first = next_question(store, None, "c1")

    again = next_question(store, None, "c1")

    assert again.id == first.id
    assert fake_completion.kinds() == ["question"]
    assert len(store.get("c1").questions) == 1


def test_seventh_question_is_refused(fake_completion):
    store = SessionStore()
    _answered(store, "c1", [5, 5, 5, 5, 5, 5])

    with pytest.raises(ProgressionError):
        next_question(store, None, "c1")
    assert fake_completion.calls == []


def test_question_before_start_is_refused(fake_completion):
    store = SessionStore()
    store.ensure("c1")
    with pytest.raises(ProgressionError):
        next_question(store, None, "c1")


def test_invalid_model_output_leaves_state_untouched():
    store = SessionStore()
    store.start("c1")

    with pytest.raises(LlmOutputError):
        next_question(store, None, "c1", complete=lambda system, user: '{"difficulty": "easy", "text": ""}')
    with pytest.raises(LlmOutputError):
        next_question(store, None, "c1", complete=lambda system, user: "no json here")

    state = store.get("c1")
    assert state.questions == []
    assert state.timer.question_id is None


def test_question_generated_across_a_reset_is_discarded():
    store = SessionStore()
    store.start("c1")

    def reset_mid_call(system, user):
        store.reset("c1")
        store.start("c1")
        return json.dumps({"text": "Stale question", "difficulty": "easy"})

    assert next_question(store, None, "c1", complete=reset_mid_call) is None
    assert store.get("c1").questions == []


def test_unknown_candidate_returns_none(fake_completion):
    assert next_question(SessionStore(), None, "ghost") is None
    assert fake_completion.calls == []


def test_concurrent_callers_issue_a_single_question():
    store = SessionStore()
    store.start("c1")
    both_prompted = threading.Barrier(2)

    def slow(system, user):
        both_prompted.wait(timeout=5)
        return json.dumps({"text": "Explain closures", "difficulty": "easy"})

    results = []
    workers = [
        threading.Thread(target=lambda: results.append(next_question(store, None, "c1", complete=slow)))
        for _ in range(2)
    ]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(5)

    state = store.get("c1")
    assert len(state.questions) == 1
    assert state.answers == []
    assert sum(question is not None for question in results) == 1
    assert state.timer.question_id == state.questions[0].id


def test_failed_hard_question_leaves_altered_path_unset():
    store = SessionStore()
    _answered(store, "c1", [9, 10])

    with pytest.raises(LlmOutputError):
        next_question(store, None, "c1", complete=lambda system, user: "no json here")

    state = store.get("c1")
    assert state.meta.altered_path is False
    assert len(state.questions) == 2


def test_accepted_hard_question_marks_altered_path(fake_completion):
    store = SessionStore()
    _answered(store, "c1", [9, 10])

    question = next_question(store, None, "c1")

    assert question.difficulty == "hard"
    assert store.get("c1").meta.altered_path is True
