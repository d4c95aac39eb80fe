import json
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- REQUEST MODELS ---
# Bodies are passed through to the store as-is. Range and format checks are
# the caller's job; a missing required column fails at the store.

class MoodRequest(BaseModel):
    # Not coerced: whatever the client sends goes to the INTEGER column as-is
    level: Union[int, float, str, None] = Field(None, description="Self-reported mood, 1 (worst) to 5 (best).")
    date: Optional[str] = Field(None, description="Calendar day, YYYY-MM-DD.")
    tags: Optional[str] = None


class JournalEntryRequest(BaseModel):
    content: Optional[str] = Field(None, description="The text content of the journal entry.")
    sentiment_score: Optional[float] = None
    risk_label: Optional[str] = None
    # Either the advice list itself or its JSON serialization
    advice: Union[list[str], str, None] = None
    timestamp: Optional[str] = Field(
        None,
        description="ISO 8601 creation time; stored verbatim. Omit to let the server assign one.",
    )


class ChatMessageRequest(BaseModel):
    role: Optional[str] = Field(None, description="'user' or 'model'.")
    content: Optional[str] = None


# --- RESPONSE MODELS ---

class SuccessResponse(BaseModel):
    success: bool = True


class UserInfoResponse(BaseModel):
    email: Optional[str] = None


class MoodResponse(BaseModel):
    id: int
    user_id: str
    date: str
    level: Union[int, float, str]
    tags: Optional[str] = None
    timestamp: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class JournalEntryResponse(BaseModel):
    id: int
    user_id: str
    content: str
    sentiment_score: Optional[float] = None
    risk_label: Optional[str] = None
    advice: Optional[str] = None
    timestamp: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def advice_items(self) -> list[str]:
        """Decode the stored advice text; anything unreadable counts as no advice."""
        if not self.advice:
            return []
        try:
            items = json.loads(self.advice)
        except ValueError:
            return []
        return [str(i) for i in items] if isinstance(items, list) else []


class ChatMessageResponse(BaseModel):
    id: int
    user_id: str
    role: str
    content: str
    timestamp: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# --- AI MODELS ---

class JournalAnalysis(BaseModel):
    """Structured result of a journal analysis, in the AI service's field names."""

    sentimentScore: float = 0
    riskLabel: Literal["Low", "Medium", "High"] = "Low"
    advice: list[str] = Field(default_factory=list)
    isEmergency: bool = False


CHAT_ROLES = ("user", "model")


class ChatTurn(BaseModel):
    # Stored rows may carry any role; only CHAT_ROLES are replayed to the model
    role: str
    content: str
