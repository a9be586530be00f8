# chatrelay/main.py

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatrelay import __version__
from chatrelay.core import state
from chatrelay.core.config import settings
from chatrelay.core.logging import setup_logging, get_logger
from chatrelay.api.routes import root, health, metrics, rooms
from chatrelay.api import websocket as websocket_module

# Configure logging first
setup_logging()
logger = get_logger(__name__)

# FastAPI app
app = FastAPI(title="Chat Relay", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST routes
app.include_router(root.router)
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(rooms.router)

# WebSocket routes
app.include_router(websocket_module.router)


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Application starting - message store: %s", settings.MESSAGE_STORE)
    await state.message_store.init()

    if not state.chat_service.ai_reply_enabled:
        logger.info("AI replies disabled")
    elif not settings.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set - AI replies will fail")


@app.on_event("shutdown")
async def on_shutdown():
    # Let in-flight AI replies finish before their collaborators go away
    await state.chat_service.wait_for_replies()
    await state.gemini_client.close()
    await state.message_store.close()


def run() -> None:
    import uvicorn
    uvicorn.run("chatrelay.main:app", host=settings.APP_HOST, port=settings.APP_PORT)


if __name__ == "__main__":
    run()
