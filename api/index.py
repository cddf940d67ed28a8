"""
Serverless entry point for the Rancho Cordova assistant
The FastAPI app, and with it Settings, is imported on the first request and cached.
Service clients are still built lazily by the first /api/chat call, so a cold
start that only answers /api/health or /api/agents never touches the secrets.
"""
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

_assistant_app = None


def get_app() -> Any:
    global _assistant_app
    if _assistant_app is None:
        from rancho_assistant import __version__
        from rancho_assistant.app import app as assistant_app
        logger.info(f"✅ Rancho Cordova assistant v{__version__} loaded")
        _assistant_app = assistant_app
    return _assistant_app


async def app(scope: dict, receive: Callable[[], Awaitable[dict]], send: Callable[[dict], Awaitable[None]]) -> None:
    await get_app()(scope, receive, send)
