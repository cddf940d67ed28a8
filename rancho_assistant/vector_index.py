"""
Pinecone vector index over its HTTPS data-plane API
Similarity query with an equality filter on the agent metadata field
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from rancho_assistant.config import host_only
from rancho_assistant.data_models import RetrievalMatch
from rancho_assistant.errors import VectorSearchError

logger = logging.getLogger(__name__)

CONTROL_PLANE_URL = "https://api.pinecone.io"
API_VERSION = "2024-07"


class PineconeIndex:
    def __init__(
        self,
        api_key: str,
        index_name: str,
        index_host: str = "",
        timeout: int = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.index_name = index_name
        self.index_host = index_host
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Api-Key": self.api_key,
            "Content-Type": "application/json",
            "X-Pinecone-API-Version": API_VERSION,
        }

    async def _resolve_host(self, client: httpx.AsyncClient) -> str:
        """Describe the index once to learn its data-plane host"""
        if self.index_host:
            return self.index_host
        resp = await client.get(f"{CONTROL_PLANE_URL}/indexes/{self.index_name}", headers=self._headers())
        if resp.status_code >= 400:
            raise VectorSearchError(f"Index lookup failed for {self.index_name}", status_code=resp.status_code)
        try:
            body = resp.json()
        except ValueError as e:
            raise VectorSearchError(f"Index lookup for {self.index_name} returned invalid JSON") from e
        host = body.get("host") if isinstance(body, dict) else None
        if not host or not isinstance(host, str):
            raise VectorSearchError(f"Index {self.index_name} has no host")
        self.index_host = host
        logger.info(f"Pinecone index {self.index_name} resolved to host={host_only(host)}")
        return host

    @staticmethod
    def _parse_match(hit: Dict[str, Any]) -> RetrievalMatch:
        md = hit.get("metadata") or {}
        text = md.get("text")
        if not isinstance(text, str):
            text = ""
        score = hit.get("score")
        return RetrievalMatch(
            text=text,
            source=md.get("source") or None,
            score=float(score) if isinstance(score, (int, float)) else None,
        )

    async def query(self, vector: List[float], top_k: int, agent_type: str) -> List[RetrievalMatch]:
        """Return matches ordered score-descending as the index reports them"""
        payload = {
            "vector": vector,
            "topK": int(top_k),
            "includeMetadata": True,
            "filter": {"agent": {"$eq": agent_type}},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                host = await self._resolve_host(client)
                base = host if host.startswith("http") else f"https://{host}"
                logger.info(f"Pinecone query host={host_only(base)} k={top_k} agent={agent_type}")
                resp = await client.post(f"{base.rstrip('/')}/query", json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"❌ Pinecone transport error: {e}")
            raise VectorSearchError("Vector index unavailable") from e
        if resp.status_code >= 400:
            logger.error(f"❌ Pinecone query status={resp.status_code}")
            raise VectorSearchError("Vector index query failed", status_code=resp.status_code)
        try:
            body = resp.json()
        except ValueError as e:
            raise VectorSearchError("Vector index returned invalid JSON") from e
        if not isinstance(body, dict):
            raise VectorSearchError("Unexpected vector index response shape")
        hits = body.get("matches") if isinstance(body.get("matches"), list) else []
        matches = [self._parse_match(h) for h in hits if isinstance(h, dict)]
        logger.info(f"Pinecone hits={len(matches)}")
        return matches
