from candidate_management import CandidateStore
from interview_session import Question, SessionStore
from observability import admin_cli
from storage import persist_snapshot


def test_cli_lists_candidates_and_shows_session(capsys):
    sessions = SessionStore()
    sessions.subscribe(persist_snapshot)
    profile = CandidateStore(sessions).create_candidate(name="Ada", email="ada@example.com")
    sessions.start(profile.id)
    sessions.add_question(profile.id, Question(difficulty="easy", text="What is a closure?", seconds=20))

    admin_cli.main(["--candidates", "5", "--session", profile.id])

    out = capsys.readouterr().out
    assert f"{profile.id} Ada <ada@example.com> stage=running answered=0/1" in out
    assert "Q1 [easy/20s] What is a closure?" in out
    assert "(awaiting answer)" in out


def test_cli_reports_missing_session(capsys):
    admin_cli.show_session("ghost")
    assert "No session stored for ghost" in capsys.readouterr().out
