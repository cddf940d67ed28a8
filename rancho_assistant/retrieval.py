"""
Retrieval dispatch
Vector search with content post-filters, LLM-generated SQL analytics and ticket lookups
"""

import re
import json
import logging
from typing import Any, Dict, List

from rancho_assistant.data_models import Classification, Query, RetrievalMatch, SqlResult
from rancho_assistant.errors import AnalyticsError
from rancho_assistant.intent import TICKET_ID_PATTERN
from rancho_assistant.services import ServiceContext
from rancho_assistant.sql_executor import clean_sql

logger = logging.getLogger(__name__)

NUMERIC_CONTENT = re.compile(r"\d")
DIRECTORY_CONTENT = re.compile(r"@|\d{3}[-.\s]?\d{3}|suite|ave|street|st\b", re.IGNORECASE)

TICKET_LOOKUP_LIMIT = 10


def apply_content_filters(classification: Classification, matches: List[RetrievalMatch]) -> List[RetrievalMatch]:
    """Narrow matches to ones that look like they hold the answer.

    A filter that removes every match is ignored: the unfiltered set is returned.
    """
    filtered = matches
    if classification.wants_numeric or classification.wants_chart:
        filtered = [m for m in matches if NUMERIC_CONTENT.search(m.text or "")]
    if classification.wants_directory:
        filtered = [m for m in matches if DIRECTORY_CONTENT.search(m.text or "")]
    return filtered if filtered else matches


def build_context(matches: List[RetrievalMatch], limit: int, budget: int) -> str:
    texts = [m.text for m in matches[:limit] if m.text]
    return "\n".join(texts)[:budget]


def rows_context(rows: List[Dict[str, Any]], budget: int) -> str:
    return json.dumps(rows, default=str)[:budget]


def match_sources(matches: List[RetrievalMatch]) -> List[Dict[str, Any]]:
    return [{"source": m.source, "score": m.score} for m in matches[:3]]


def table_sources(result: SqlResult) -> List[Dict[str, Any]]:
    return [{"source": f"table:{t}", "score": None} for t in result.tables[:3]]


async def search_knowledge(ctx: ServiceContext, query: Query, classification: Classification) -> List[RetrievalMatch]:
    """Embed the message and query the index scoped to the agent type"""
    vector = await ctx.embedder.embed(query.message)
    matches = await ctx.index.query(vector, ctx.settings.top_k, query.agent_type.value)
    if not matches:
        return []
    usable = apply_content_filters(classification, matches)
    logger.info(f"Vector matches={len(matches)} usable={len(usable)}")
    return usable


async def generate_sql(ctx: ServiceContext, query: Query) -> str:
    prompt = ctx.prompts.sql_generation(query.agent_type)
    raw = await ctx.llm.complete(prompt, query.message, temperature=0.0)
    sql = clean_sql(raw)
    logger.info(f"Generated SQL chars={len(sql)}")
    logger.debug(f"Generated SQL: {sql}")
    return sql


async def run_analytics(ctx: ServiceContext, query: Query) -> SqlResult:
    """Generate and execute one statement. Any failure is terminal for this path."""
    sql = await generate_sql(ctx, query)
    return await ctx.sql.execute(sql)


def ticket_lookup_sql(ticket_ids: List[str]) -> str:
    ids = [t.upper() for t in ticket_ids if TICKET_ID_PATTERN.fullmatch(t)]
    if not ids:
        raise AnalyticsError("No valid ticket identifiers")
    id_list = ", ".join(f"'{t}'" for t in ids)
    return (
        "SELECT ticket_id, category, status, priority, created_at, resolved_at "
        f"FROM tickets WHERE upper(ticket_id) IN ({id_list}) LIMIT {TICKET_LOOKUP_LIMIT}"
    )


async def lookup_tickets(ctx: ServiceContext, ticket_ids: List[str]) -> SqlResult:
    return await ctx.sql.execute(ticket_lookup_sql(ticket_ids))
