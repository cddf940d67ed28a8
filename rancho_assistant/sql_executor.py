"""
Remote SQL execution through a Supabase RPC function
The function receives one read-only statement and returns rows as JSON
"""

import re
import logging
from typing import Any, Dict, List, Optional

import httpx

from rancho_assistant.config import host_only
from rancho_assistant.data_models import SqlResult
from rancho_assistant.errors import AnalyticsError, ConfigurationError

logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r"```(?:sql)?", re.IGNORECASE)
READ_ONLY_START = re.compile(r"^\s*(select|with)\b", re.IGNORECASE)
TABLE_PATTERN = re.compile(r"\b(?:from|join)\s+([a-zA-Z_][a-zA-Z0-9_]*)", re.IGNORECASE)
KNOWN_TABLES = ("tickets", "energy_usage", "meter_readings")


def clean_sql(raw: str) -> str:
    """Strip markdown fences, surrounding whitespace and trailing terminators"""
    sql = FENCE_PATTERN.sub("", raw or "").strip()
    return sql.rstrip().rstrip(";").rstrip()


def validate_sql(sql: str) -> None:
    if not sql:
        raise AnalyticsError("Empty SQL statement", sql=sql)
    if not READ_ONLY_START.match(sql):
        raise AnalyticsError("Only SELECT statements are allowed", sql=sql)
    if ";" in sql:
        raise AnalyticsError("Only a single statement is allowed", sql=sql)


def referenced_tables(sql: str) -> List[str]:
    tables: List[str] = []
    for name in TABLE_PATTERN.findall(sql or ""):
        lowered = name.lower()
        if lowered in KNOWN_TABLES and lowered not in tables:
            tables.append(lowered)
    return tables


class SupabaseSqlExecutor:
    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        function_name: str = "execute_sql",
        timeout: int = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        url = (supabase_url or "").strip().rstrip("/")
        self.base_url = f"{url}/rest/v1" if url else ""
        self.service_key = (service_key or "").strip()
        self.function_name = function_name
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.service_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }

    async def execute(self, sql: str) -> SqlResult:
        """Run one statement. Transport errors and error bodies are both terminal."""
        if not self.configured:
            raise ConfigurationError("Supabase is not configured. Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY.")
        validate_sql(sql)
        url = f"{self.base_url}/rpc/{self.function_name}"
        logger.info(f"SQL rpc host={host_only(self.base_url)} fn={self.function_name} chars={len(sql)}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(url, json={"query": sql}, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"❌ SQL rpc transport error: {e}")
            raise AnalyticsError("SQL execution failed", sql=sql) from e
        if resp.status_code >= 400:
            logger.error(f"❌ SQL rpc status={resp.status_code} body={resp.text[:300]}")
            raise AnalyticsError(f"SQL execution failed ({resp.status_code})", sql=sql)
        try:
            body: Any = resp.json() if resp.text else []
        except ValueError as e:
            raise AnalyticsError("SQL response was not JSON", sql=sql) from e

        # The procedure reports query errors inside a 200 response
        if isinstance(body, dict):
            if body.get("error"):
                logger.error(f"❌ SQL logic error: {str(body.get('error'))[:300]}")
                raise AnalyticsError("SQL query returned an error", sql=sql)
            body = body.get("rows") or body.get("data") or []
        if body is None:
            body = []
        if not isinstance(body, list):
            raise AnalyticsError("Unexpected SQL response shape", sql=sql)
        rows = [r for r in body if isinstance(r, dict)]
        logger.info(f"SQL rows={len(rows)}")
        return SqlResult(sql=sql, rows=rows, tables=referenced_tables(sql))
