"""Chat and memory API routes."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from loguru import logger
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse

from .engine import MemoryEngine
from .exceptions import GenerationError, StorageError, ValidationError
from .generation import generate_with_deadline
from .models import utcnow
from .prompt import build_reply_prompt


class ChatRequest(BaseModel):
    """Inbound chat message."""

    user_id: str = Field(..., min_length=1, description="Opaque user identifier")
    message: str = Field(..., min_length=1, description="User utterance")


class NameUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


def get_engine(request: Request) -> MemoryEngine:
    """The engine the application lifespan placed on ``app.state``."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Memory engine is not running")
    return engine


def init_memory_routes() -> APIRouter:
    """
    Create routes for chat, history and memory inspection.

    Handlers resolve the engine per request through ``get_engine``, so the
    router is built once per application.

    Returns:
        APIRouter: Router with chat and memory endpoints.
    """
    router = APIRouter()

    @router.post("/api/chat")
    async def chat(request: ChatRequest, engine: MemoryEngine = Depends(get_engine)):
        """
        Handle one user message and reply.

        Returns:
            JSON response with:
                - response: assistant reply
                - tone: detected user tone
                - timestamp: server time of the reply
        """
        try:
            turn = await engine.handle_turn(request.user_id, request.message)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except StorageError as e:
            logger.error(f"Storage failure while handling chat for {request.user_id}: {e}")
            raise HTTPException(status_code=500, detail="Memory storage unavailable")

        prompt = build_reply_prompt(request.message, turn)
        try:
            reply = await generate_with_deadline(
                engine.client, prompt, engine.config.generation.timeout_seconds
            )
        except GenerationError as e:
            logger.error(f"Reply generation failed for {request.user_id}: {e}")
            raise HTTPException(status_code=502, detail="Failed to generate a response")

        try:
            await engine.record_turn(request.user_id, request.message, reply, turn.tone.value)
        except StorageError as e:
            logger.error(f"Failed to record turn for {request.user_id}: {e}")
            raise HTTPException(status_code=500, detail="Memory storage unavailable")

        engine.schedule_post_processing(request.user_id, request.message, reply, turn.tone.value)

        return JSONResponse(
            {
                "response": reply,
                "tone": turn.tone.value,
                "timestamp": utcnow().isoformat(),
            },
            status_code=200,
        )

    @router.get("/api/chat/{user_id}")
    async def get_chat_history(
        user_id: str,
        limit: int = Query(50, ge=1, le=500),
        engine: MemoryEngine = Depends(get_engine),
    ):
        """The last ``limit`` messages of the user's active session, oldest first."""
        try:
            messages = await engine.sessions.history(user_id, limit=limit)
        except StorageError as e:
            logger.error(f"Failed to load history for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Memory storage unavailable")
        return JSONResponse(
            {"messages": [m.model_dump(mode="json") for m in messages]},
            status_code=200,
        )

    @router.get("/api/memory/{user_id}")
    async def get_memory(user_id: str, engine: MemoryEngine = Depends(get_engine)):
        """
        Full long-term memory plus profile.

        Unlike the prompt snapshot, every stored summary is returned.
        """
        try:
            profile, memory = await engine.get_user_memory(user_id)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except StorageError as e:
            logger.error(f"Failed to load memory for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Memory storage unavailable")

        body = memory.model_dump(mode="json")
        body.update(
            name=profile.name,
            preferences=profile.preferences.model_dump(mode="json"),
            personality_notes=profile.personality_notes,
        )
        return JSONResponse(body, status_code=200)

    @router.put("/api/memory/{user_id}/name")
    async def set_name(
        user_id: str,
        update: NameUpdate,
        engine: MemoryEngine = Depends(get_engine),
    ):
        try:
            profile = await engine.set_user_name(user_id, update.name)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except StorageError as e:
            logger.error(f"Failed to set name for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Memory storage unavailable")
        return JSONResponse({"user_id": user_id, "name": profile.name}, status_code=200)

    @router.get("/api/health")
    async def health(engine: MemoryEngine = Depends(get_engine)):
        return JSONResponse(
            {
                "status": "ok",
                "generation": engine.client is not None,
                "workers": engine.workers.get_status(),
            },
            status_code=200,
        )

    return router
