"""
HTTP client for /api/chat with the bounded retry-on-503 policy
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAY_SEC = 2.0


class AssistantBusyError(RuntimeError):
    """The service kept answering 503 for every attempt"""


class AssistantRequestError(RuntimeError):
    def __init__(self, status_code: int, error: str):
        super().__init__(f"{status_code}: {error}")
        self.status_code = status_code
        self.error = error


class AssistantClient:
    def __init__(
        self,
        base_url: str,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SEC,
        timeout: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.transport = transport

    async def ask(self, message: str, agent_type: str = "customer") -> Dict[str, Any]:
        """Post one message, waiting a fixed delay between 503 responses"""
        payload = {"message": message, "agentType": agent_type}
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(1, self.max_attempts + 1):
                resp = await client.post("/api/chat", json=payload)
                if resp.status_code == 503:
                    logger.info(f"Model loading (attempt {attempt}/{self.max_attempts})")
                    if attempt < self.max_attempts:
                        await asyncio.sleep(self.retry_delay)
                    continue
                if resp.status_code != 200:
                    try:
                        error = (resp.json() or {}).get("error") or f"Server error: {resp.status_code}"
                    except ValueError:
                        error = f"Server error: {resp.status_code}"
                    raise AssistantRequestError(resp.status_code, error)
                return resp.json()
        raise AssistantBusyError("Server is busy. Please try again later.")
