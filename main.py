import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import Settings, get_settings
from identity import HeaderIdentityResolver, IdentityResolver, MissingIdentityError
from schemas import (
    ChatMessageRequest,
    ChatMessageResponse,
    JournalEntryRequest,
    JournalEntryResponse,
    MoodRequest,
    MoodResponse,
    SuccessResponse,
    UserInfoResponse,
)
from store import Store

logger = logging.getLogger("MindGuard")


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_user_id(request: Request) -> str:
    """Resolve the caller's identity or fail the request before any store access."""
    user_id = request.app.state.identity.resolve(request)
    if not user_id:
        raise MissingIdentityError()
    return user_id


def create_app(
    settings: Optional[Settings] = None,
    identity: Optional[IdentityResolver] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Server is starting up...")
        store = Store(settings.db_path)
        await store.open()
        app.state.store = store
        try:
            yield
        finally:
            logger.info("Server is shutting down...")
            await store.close()

    app = FastAPI(title="MindGuard Journal API", lifespan=lifespan)
    app.state.settings = settings
    app.state.identity = identity or HeaderIdentityResolver()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MissingIdentityError)
    async def missing_identity_handler(request: Request, exc: MissingIdentityError):
        logger.warning(f"Rejected {request.method} {request.url.path}: no user id")
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.get("/")
    def read_root():
        return {"status": "MindGuard Journal API is Online"}

    @app.get("/api/user", response_model=UserInfoResponse)
    def get_user():
        """The configured account email, or null. No identity header needed."""
        return UserInfoResponse(email=settings.user_email)

    # Moods

    @app.get("/api/moods", response_model=list[MoodResponse])
    async def list_moods(
        user_id: str = Depends(get_user_id),
        store: Store = Depends(get_store),
    ):
        return await store.list_moods(user_id)

    @app.post("/api/moods", response_model=SuccessResponse)
    async def upsert_mood(
        body: MoodRequest,
        user_id: str = Depends(get_user_id),
        store: Store = Depends(get_store),
    ):
        """Write or replace the mood for (user, date)."""
        await store.upsert_mood(user_id, body.level, body.date, body.tags)
        return SuccessResponse()

    # Journals

    @app.get("/api/journals", response_model=list[JournalEntryResponse])
    async def list_journals(
        user_id: str = Depends(get_user_id),
        store: Store = Depends(get_store),
    ):
        return await store.list_journals(user_id)

    @app.post("/api/journals", response_model=SuccessResponse)
    async def create_journal(
        body: JournalEntryRequest,
        user_id: str = Depends(get_user_id),
        store: Store = Depends(get_store),
    ):
        """
        Append a journal entry with its already-computed analysis.
        An explicit timestamp is stored verbatim; otherwise the store assigns one.
        """
        await store.add_journal(
            user_id,
            content=body.content,
            sentiment_score=body.sentiment_score,
            risk_label=body.risk_label,
            advice=body.advice,
            timestamp=body.timestamp,
        )
        return SuccessResponse()

    # Chat

    @app.get("/api/chat-history", response_model=list[ChatMessageResponse])
    async def list_chat_history(
        user_id: str = Depends(get_user_id),
        store: Store = Depends(get_store),
    ):
        return await store.list_chat_history(user_id)

    @app.post("/api/chat-history", response_model=SuccessResponse)
    async def append_chat_message(
        body: ChatMessageRequest,
        user_id: str = Depends(get_user_id),
        store: Store = Depends(get_store),
    ):
        await store.add_chat_message(user_id, body.role, body.content)
        return SuccessResponse()

    return app


_settings = get_settings()
logging.basicConfig(level=_settings.log_level)
app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=3000)
