import json
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storage.migrate import migrate
from config.settings import settings
from config.registry import COMPLETION_KEY, bind_model, unbind_model


class ScriptedCompletion:
    """Completion stand-in that answers question, scoring and summary prompts."""

    def __init__(self) -> None:
        self.scores: List[float] = []
        self.question_seconds: Optional[int] = None
        self.summary = {
            "overall_score": 82,
            "level": "Intermediate",
            "strengths": ["Clear explanations"],
            "improvements": ["Go deeper on performance"],
            "summary": "Solid fundamentals across React and Node.",
            "plan": ["Profile a slow page", "Write integration tests"],
        }
        self.calls: List[tuple] = []

    def kinds(self) -> List[str]:
        return [kind for kind, _, _ in self.calls]

    def __call__(self, system: str, user: str) -> str:
        if system.startswith("You are an interviewer"):
            self.calls.append(("question", system, user))
            payload = json.loads(user)
            number = self.kinds().count("question")
            body = {
                "difficulty": payload["format"]["difficulty"],
                "text": f"Question {number}",
                "rubric": "Mentions the key trade-offs",
                "key_points": ["trade-offs"],
            }
            if self.question_seconds is not None:
                body["seconds"] = self.question_seconds
            return "Here is the next question:\n" + json.dumps(body)
        if system.startswith("You are evaluating"):
            self.calls.append(("score", system, user))
            score = self.scores.pop(0) if self.scores else 7
            return json.dumps({"score": score, "feedback": "Reasonable answer.", "missing": []})
        self.calls.append(("summary", system, user))
        return "```json\n" + json.dumps(self.summary) + "\n```"


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield
    finally:
        td.cleanup()


@pytest.fixture
def fake_completion():
    fake = ScriptedCompletion()
    bind_model(COMPLETION_KEY, fake)
    try:
        yield fake
    finally:
        unbind_model(COMPLETION_KEY)
