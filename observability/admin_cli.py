"""Lightweight CLI helpers for inspecting stored candidates and interview sessions."""
from __future__ import annotations

import argparse
from typing import List, Optional

from storage import list_candidates as candidate_rows
from storage import load_all_sessions, load_session


def list_candidates(limit: int = 20) -> None:
    sessions = {state.candidate_id: state for state in load_all_sessions()}
    for profile in candidate_rows()[:limit]:
        state = sessions.get(profile.id)
        stage = state.stage if state is not None else "-"
        answered = f"{len(state.answers)}/{len(state.questions)}" if state is not None else "-"
        score = f"{state.summary.score:.1f}" if state is not None and state.summary is not None else "-"
        print(f"{profile.id} {profile.name or '?'} <{profile.email or '?'}> stage={stage} answered={answered} score={score}")


def show_session(candidate_id: str) -> None:
    state = load_session(candidate_id)
    if state is None:
        print(f"No session stored for {candidate_id}")
        return
    print(
        f"{state.candidate_id} generation={state.generation} stage={state.stage} "
        f"step={state.step_index} altered_path={state.meta.altered_path}"
    )
    for index, question in enumerate(state.questions):
        answer = state.answers[index] if index < len(state.answers) else None
        print(f"  Q{index + 1} [{question.difficulty}/{question.seconds}s] {question.text}")
        if answer is None:
            print("     (awaiting answer)")
            continue
        flag = " auto" if answer.auto_submitted else ""
        print(f"     score={answer.score} elapsed={answer.elapsed_seconds}s{flag}: {answer.text or '-'}")
    if state.summary is not None:
        summary = state.summary
        print(f"  summary score={summary.score} level={summary.level} badges={', '.join(summary.badges) or '-'}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--candidates", type=int, help="List the most recent candidates with session status")
    parser.add_argument("--session", help="Show the stored interview session for a candidate id")
    args = parser.parse_args(argv)

    if args.candidates:
        list_candidates(args.candidates)
    if args.session:
        show_session(args.session)


if __name__ == "__main__":
    main()
