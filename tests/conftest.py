from typing import Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from ai_client import ChatContext
from config import Settings
from main import create_app
from schemas import ChatTurn, JournalAnalysis


class StubCompanion:
    """Deterministic CompanionAI that records what it was asked."""

    def __init__(self, analysis: Optional[JournalAnalysis] = None, reply: str = "I'm here for you."):
        self.analysis = analysis or JournalAnalysis(
            sentimentScore=40,
            riskLabel="Medium",
            advice=["Go for a walk.", "Call a friend.", "Sleep early."],
            isEmergency=False,
        )
        self.reply = reply
        self.analyzed: list[str] = []
        self.respond_calls: list[tuple] = []
        self.greet_calls: list[Optional[ChatContext]] = []

    def analyze(self, text: str) -> JournalAnalysis:
        self.analyzed.append(text)
        return self.analysis

    def respond(
        self,
        history: Sequence[ChatTurn],
        message: str,
        context: Optional[ChatContext] = None,
    ) -> str:
        self.respond_calls.append((list(history), message, context))
        return self.reply

    def greet(self, context: Optional[ChatContext] = None) -> str:
        self.greet_calls.append(context)
        return "Hi there, how are you feeling today?"


@pytest.fixture
def settings(tmp_path):
    return Settings(db_path=str(tmp_path / "mindguard-test.db"), user_email=None)


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def alice():
    return {"x-user-id": "alice"}


@pytest.fixture
def stub_ai():
    return StubCompanion()
