"""
Message router
Classifies a query, runs the matching retrieval path, asks the LLM and
extracts the final answer
"""

import re
import time
import logging
from typing import Any, Dict, List

from rancho_assistant.data_models import ChatResult, Classification, Intent, Query, SqlResult
from rancho_assistant.errors import AnalyticsError
from rancho_assistant.extraction import render_answer
from rancho_assistant.intent import classify
from rancho_assistant.retrieval import (
    build_context,
    lookup_tickets,
    match_sources,
    rows_context,
    run_analytics,
    search_knowledge,
    table_sources,
)
from rancho_assistant.services import ServiceContext

logger = logging.getLogger(__name__)

NO_ANSWER_FALLBACK = (
    "I am sorry, I have access to only publicly available City of Rancho Cordova and SMUD data, "
    "and I won't be able to answer any questions outside my scope."
)
NO_RECORDS_MESSAGE = "No records found matching your question."
ANALYTICS_FAILURE_MESSAGE = (
    "I wasn't able to run that analysis against the city records. Please try rephrasing your question."
)

REFUSAL_PATTERN = re.compile(
    r"i cannot answer|i can'?t answer|not provided in the context|no information available|"
    r"i do not have that information",
    re.IGNORECASE,
)


def fallback_result(intent: Intent) -> ChatResult:
    return ChatResult(response=NO_ANSWER_FALLBACK, chart_data=None, sources=[], intent=intent)


def finalize_answer(raw_text: str, sources: List[Dict[str, Any]], intent: Intent) -> ChatResult:
    """Refusals and empty output become the fallback; otherwise extract chart and redact"""
    if not raw_text or REFUSAL_PATTERN.search(raw_text):
        logger.info("LLM declined or returned nothing; using fallback")
        return fallback_result(intent)
    answer = render_answer(raw_text)
    if not answer.text and answer.chart is None:
        return fallback_result(intent)
    return ChatResult(response=answer.text, chart_data=answer.chart, sources=sources, intent=intent)


async def _answer_knowledge(ctx: ServiceContext, query: Query, classification: Classification) -> ChatResult:
    matches = await search_knowledge(ctx, query, classification)
    if not matches:
        logger.info("No retrieval matches; using fallback")
        return fallback_result(classification.intent)
    context = build_context(matches, ctx.settings.context_match_limit, ctx.settings.context_char_budget)
    prompt = ctx.prompts.knowledge(query.agent_type, context, classification.wants_chart)
    raw = await ctx.llm.complete(prompt, query.message)
    return finalize_answer(raw, match_sources(matches), classification.intent)


async def _answer_from_rows(
    ctx: ServiceContext, query: Query, classification: Classification, result: SqlResult
) -> ChatResult:
    if not result.rows:
        return ChatResult(response=NO_RECORDS_MESSAGE, sources=[], intent=classification.intent)
    context = rows_context(result.rows, ctx.settings.context_char_budget)
    if classification.intent is Intent.LOOKUP:
        prompt = ctx.prompts.ticket_status(query.agent_type, context)
    else:
        prompt = ctx.prompts.query_results(query.agent_type, context, classification.wants_chart)
    raw = await ctx.llm.complete(prompt, query.message)
    return finalize_answer(raw, table_sources(result), classification.intent)


async def route_message(ctx: ServiceContext, query: Query) -> ChatResult:
    """Answer one message.

    Upstream failures (ModelLoadingError, UpstreamError, ConfigurationError)
    propagate to the caller. A failed analytics or lookup query is reported in
    the answer text and never retried or sent down the vector path.
    """
    started = time.time()
    classification = classify(query.message)
    intent = classification.intent
    logger.info(f"route start q_len={len(query.message)} agent={query.agent_type.value} intent={intent.value}")

    if intent is Intent.OUT_OF_SCOPE:
        return fallback_result(intent)

    if intent in (Intent.LOOKUP, Intent.ANALYTICS):
        try:
            if intent is Intent.LOOKUP:
                result = await lookup_tickets(ctx, classification.ticket_ids)
            else:
                result = await run_analytics(ctx, query)
        except AnalyticsError as e:
            logger.warning(f"⚠️ {intent.value} query failed: {e}")
            return ChatResult(response=ANALYTICS_FAILURE_MESSAGE, sources=[], intent=intent)
        answer = await _answer_from_rows(ctx, query, classification, result)
    else:
        answer = await _answer_knowledge(ctx, query, classification)

    logger.info(
        f"route done intent={intent.value} chart={'set' if answer.chart_data else 'unset'} "
        f"sources={len(answer.sources)} ms={int((time.time() - started) * 1000)}"
    )
    return answer
