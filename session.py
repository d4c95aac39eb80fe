import logging
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Literal, Optional, Union

import httpx
from pydantic import ValidationError

from ai_client import ChatContext, CompanionAI
from identity import USER_ID_HEADER
from insights import DailySentiment, daily_sentiment, should_escalate
from schemas import (
    CHAT_ROLES,
    ChatMessageResponse,
    ChatTurn,
    JournalAnalysis,
    JournalEntryResponse,
    MoodResponse,
)

logger = logging.getLogger(__name__)

Tab = Literal["dashboard", "journal", "chat"]

JOURNAL_SAVE_ALERT = "Something went wrong while saving your journal. Please try again."
CHAT_APOLOGY = "Sorry, I'm having a little trouble right now."

# Failures the session logs instead of raising
SYNC_ERRORS = (httpx.HTTPError, ValidationError)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CompanionSession:
    """
    One user's view of the app: dashboard, journal and chat state kept in
    memory, synced with the API after every change.

    Pass `id_path` to keep the chosen user id across runs; without it a
    generated id lives only as long as the session.
    """

    def __init__(
        self,
        http: httpx.Client,
        ai: CompanionAI,
        user_id: Optional[str] = None,
        id_path: Union[str, Path, None] = None,
    ):
        self.http = http
        self.ai = ai
        self.user_id = user_id
        self.id_path = Path(id_path) if id_path else None
        self.user_email: Optional[str] = None

        self.active_tab: Tab = "dashboard"
        self.moods: list[MoodResponse] = []
        self.journals: list[JournalEntryResponse] = []
        self.messages: list[ChatTurn] = []
        self.is_typing = False
        self.safety_prompt_open = False
        self.alert: Optional[str] = None

    # --- identity & sync ---

    def _load_saved_id(self) -> Optional[str]:
        if self.id_path is None or not self.id_path.exists():
            return None
        return self.id_path.read_text(encoding="utf-8").strip() or None

    def _save_id(self) -> None:
        if self.id_path is None:
            return
        self.id_path.parent.mkdir(parents=True, exist_ok=True)
        self.id_path.write_text(self.user_id, encoding="utf-8")

    def bootstrap(self) -> str:
        """
        Pick the user id: configured account email first, then the given id,
        then the saved one, then a fresh one.
        """
        try:
            res = self.http.get("/api/user")
            res.raise_for_status()
            self.user_email = res.json().get("email")
        except httpx.HTTPError:
            logger.exception("Failed to fetch user info")

        if self.user_email:
            self.user_id = self.user_email
        elif not self.user_id:
            self.user_id = self._load_saved_id() or uuid.uuid4().hex
        self._save_id()
        self.sync()
        return self.user_id

    def _headers(self) -> dict:
        return {USER_ID_HEADER: self.user_id or ""}

    def _get(self, path: str) -> list[dict]:
        res = self.http.get(path, headers=self._headers())
        res.raise_for_status()
        return res.json()

    def _post(self, path: str, payload: dict) -> None:
        res = self.http.post(path, json=payload, headers=self._headers())
        res.raise_for_status()

    def refresh(self) -> None:
        """Refetch everything. Raises on HTTP or payload errors."""
        moods = [MoodResponse.model_validate(m) for m in self._get("/api/moods")]
        journals = [JournalEntryResponse.model_validate(j) for j in self._get("/api/journals")]
        messages = [
            ChatTurn(role=m.role, content=m.content)
            for m in (ChatMessageResponse.model_validate(r) for r in self._get("/api/chat-history"))
        ]
        self.moods, self.journals, self.messages = moods, journals, messages

    def sync(self) -> bool:
        """refresh(), logging failures and keeping the current state."""
        try:
            self.refresh()
        except SYNC_ERRORS:
            logger.exception("Failed to refresh data")
            return False
        return True

    # --- dashboard ---

    def today_mood(self, today: Optional[date] = None) -> Optional[MoodResponse]:
        key = (today or date.today()).isoformat()
        return next((m for m in self.moods if m.date == key), None)

    def record_mood(
        self,
        level: int,
        on: Optional[date] = None,
        tags: Optional[str] = None,
    ) -> None:
        day = (on or date.today()).isoformat()

        # Optimistic replace of that day's mood until the refetch lands
        self.moods = [
            MoodResponse(id=0, user_id=self.user_id or "", date=day, level=level, tags=tags)
        ] + [m for m in self.moods if m.date != day]

        try:
            self._post("/api/moods", {"level": level, "date": day, "tags": tags})
        except httpx.HTTPError:
            logger.exception("Failed to save mood")
        else:
            self.sync()

        if should_escalate([m.model_dump() for m in self.moods], level):
            logger.info("Two low moods in a row, switching to chat")
            self.active_tab = "chat"

    def weekly_sentiment(self, today: Optional[date] = None) -> list[DailySentiment]:
        return daily_sentiment(
            [m.model_dump() for m in self.moods],
            [j.model_dump() for j in self.journals],
            today=today,
        )

    # --- journal ---

    def save_journal(self, content: str) -> Optional[JournalAnalysis]:
        """
        Analyze and persist a journal entry.

        Returns the analysis, or None when nothing was saved. A failed save
        leaves a user-facing message in `alert` instead of raising; a failed
        refetch after a good save is only logged.
        """
        if not content.strip():
            return None

        analysis = self.ai.analyze(content)
        if analysis.isEmergency:
            self.safety_prompt_open = True

        try:
            self._post("/api/journals", {
                "content": content,
                "sentiment_score": analysis.sentimentScore,
                "risk_label": analysis.riskLabel,
                "advice": analysis.advice,
                "timestamp": _iso_now(),
            })
        except httpx.HTTPError:
            logger.exception("Journal save error")
            self.alert = JOURNAL_SAVE_ALERT
            return None

        self.sync()
        return analysis

    def latest_advice(self) -> list[str]:
        """Advice attached to the newest journal entry."""
        if not self.journals:
            return []
        return self.journals[0].advice_items()

    def close_safety_prompt(self) -> None:
        self.safety_prompt_open = False

    # --- chat ---

    def _chat_context(self) -> ChatContext:
        mood = self.today_mood()
        level = mood.level if mood and isinstance(mood.level, int) else None
        return ChatContext(mood_level=level, tag=mood.tags if mood else None)

    def greeting(self) -> Optional[str]:
        """An opener from the companion, only for an empty conversation."""
        if self.messages:
            return None
        return self.ai.greet(self._chat_context())

    def _persist_turn(self, turn: ChatTurn) -> None:
        try:
            self._post("/api/chat-history", turn.model_dump())
        except httpx.HTTPError:
            logger.exception(f"Failed to save {turn.role} message")

    def send_message(self, text: str) -> str:
        # The local transcript keeps both turns even when a save fails
        history = [t for t in self.messages if t.role in CHAT_ROLES]
        user_turn = ChatTurn(role="user", content=text)
        self.messages.append(user_turn)
        self._persist_turn(user_turn)

        self.is_typing = True
        try:
            reply = self.ai.respond(history, text, self._chat_context())
        finally:
            self.is_typing = False

        model_turn = ChatTurn(role="model", content=reply or CHAT_APOLOGY)
        self.messages.append(model_turn)
        self._persist_turn(model_turn)
        return model_turn.content
