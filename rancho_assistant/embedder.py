"""
Embedding adapter for the Hugging Face feature-extraction endpoint
Normalizes the several response shapes the endpoint returns into one flat vector
"""

import re
import json
import logging
from typing import Any, List, Optional

import httpx

from rancho_assistant.config import host_only
from rancho_assistant.errors import EmbeddingError, ModelLoadingError

logger = logging.getLogger(__name__)

NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _flat_numbers(values: Any) -> Optional[List[float]]:
    if isinstance(values, list) and values and all(_is_number(v) for v in values):
        return [float(v) for v in values]
    return None


def extract_embedding(payload: Any) -> Optional[List[float]]:
    """Coerce a feature-extraction response into a flat list of floats.

    Accepts a flat array, a nested array (first row wins), an object with an
    `embedding` or `embeddings` key, and as a last resort scrapes every number
    out of the serialized payload.
    """
    if isinstance(payload, list) and payload:
        if isinstance(payload[0], list):
            row = _flat_numbers(payload[0])
            if row:
                return row
        else:
            flat = _flat_numbers(payload)
            if flat:
                return flat
    if isinstance(payload, dict):
        if isinstance(payload.get("embedding"), list):
            flat = _flat_numbers(payload["embedding"])
            if flat:
                return flat
        embeddings = payload.get("embeddings")
        if isinstance(embeddings, list) and embeddings:
            first = embeddings[0] if isinstance(embeddings[0], list) else embeddings
            flat = _flat_numbers(first)
            if flat:
                return flat
    if payload is None:
        return None
    nums = NUMBER_PATTERN.findall(json.dumps(payload))
    if nums:
        return [float(n) for n in nums]
    return None


class HuggingFaceEmbedder:
    """Calls the remote feature-extraction pipeline for one message at a time"""

    def __init__(
        self,
        api_key: str,
        url: str,
        timeout: int = 20,
        loading_estimate: int = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self.loading_estimate = loading_estimate
        self.transport = transport

    async def embed(self, text: str) -> List[float]:
        payload = {"inputs": [text], "options": {"wait_for_model": False}}
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        logger.debug(f"Embedding request host={host_only(self.url)} chars={len(text)}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"❌ Embedding transport error: {e}")
            raise EmbeddingError("Embedding generation failed") from e

        if resp.status_code == 503:
            estimated = self.loading_estimate
            try:
                body = resp.json()
                if isinstance(body, dict) and _is_number(body.get("estimated_time")):
                    estimated = body["estimated_time"]
            except ValueError:
                pass
            logger.warning(f"⚠️ Embedding model loading; estimated_time={estimated}")
            raise ModelLoadingError(estimated_time=estimated)
        if resp.status_code >= 400:
            logger.error(f"❌ Embedding endpoint status={resp.status_code}")
            raise EmbeddingError("Embedding generation failed", status_code=resp.status_code)

        try:
            body = resp.json()
        except ValueError as e:
            raise EmbeddingError("Embedding response was not JSON") from e
        vector = extract_embedding(body)
        if not vector:
            raise EmbeddingError("Invalid embedding format")
        logger.debug(f"Embedding dim={len(vector)}")
        return vector
