"""Tests for rancho_assistant/router.py: end-to-end routing with mocked services."""

import json

import pytest

from rancho_assistant.data_models import AgentType, Intent, Query, SqlResult
from rancho_assistant.errors import AnalyticsError, ModelLoadingError, VectorSearchError
from rancho_assistant.extraction import REDACTION_MARKER
from rancho_assistant.router import (
    ANALYTICS_FAILURE_MESSAGE,
    NO_ANSWER_FALLBACK,
    NO_RECORDS_MESSAGE,
    route_message,
)
from tests.conftest import make_match

CHART = {
    "type": "chart",
    "chartType": "line",
    "title": "Outages by month",
    "explanation": "Outages peaked in August.",
    "data": {"labels": ["Jun", "Jul", "Aug"], "datasets": [{"label": "Outages", "data": [3, 5, 9]}]},
}


# ── Fallback policy ───────────────────────────────────────────

@pytest.mark.asyncio
async def test_privacy_message_short_circuits_without_network(ctx):
    result = await route_message(ctx, Query(message="Tell me about my neighbor's SSN"))

    assert result.response == NO_ANSWER_FALLBACK
    assert result.chart_data is None
    assert result.sources == []
    ctx.embedder.embed.assert_not_awaited()
    ctx.llm.complete.assert_not_awaited()
    ctx.sql.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_out_of_domain_message_gets_fallback(ctx):
    result = await route_message(ctx, Query(message="Who won the World Cup?"))
    assert result.response == NO_ANSWER_FALLBACK
    assert result.intent is Intent.OUT_OF_SCOPE


@pytest.mark.asyncio
async def test_zero_matches_gets_fallback(ctx):
    ctx.index.query.return_value = []
    result = await route_message(ctx, Query(message="What are the hours for city hall?"))

    assert result.response == NO_ANSWER_FALLBACK
    assert result.sources == []
    ctx.llm.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_refusal_from_llm_becomes_fallback(ctx):
    ctx.index.query.return_value = [make_match("City hall is at 2729 Prospect Park Dr")]
    ctx.llm.complete.return_value = "I'm afraid I cannot answer that from the provided documents."

    result = await route_message(ctx, Query(message="What are the hours for city hall?"))
    assert result.response == NO_ANSWER_FALLBACK
    assert result.sources == []


# ── Knowledge and chart answers ───────────────────────────────

@pytest.mark.asyncio
async def test_knowledge_answer_with_three_sources(ctx):
    ctx.index.query.return_value = [make_match(f"Permit counter info {i}", source=f"doc{i}", score=0.9 - i / 10)
                                    for i in range(5)]
    ctx.llm.complete.return_value = "Submit the building permit application online through the Planning department."

    result = await route_message(ctx, Query(message="How do I apply for a building permit?"))

    assert result.intent is Intent.KNOWLEDGE
    assert result.response.startswith("Submit the building permit")
    assert [s["source"] for s in result.sources] == ["doc0", "doc1", "doc2"]
    system_prompt = ctx.llm.complete.await_args.args[0]
    assert "Permit counter info 3" in system_prompt
    assert "Permit counter info 4" not in system_prompt


@pytest.mark.asyncio
async def test_chart_request_returns_chart_payload(ctx):
    ctx.index.query.return_value = [make_match("Outages: Jun 3, Jul 5, Aug 9", source="outages.csv")]
    ctx.llm.complete.return_value = "Here is the trend:\n" + json.dumps(CHART)

    result = await route_message(ctx, Query(message="Show a chart of power outages by month", agent_type=AgentType.ENERGY))

    assert result.intent is Intent.CHART
    assert result.chart_data == CHART
    assert result.response == "Outages peaked in August."
    assert '"type":"chart"' in ctx.llm.complete.await_args.args[0]


@pytest.mark.asyncio
async def test_answer_text_is_redacted(ctx):
    ctx.index.query.return_value = [make_match("Streetlight repairs are logged as CL tickets")]
    ctx.llm.complete.return_value = "Streetlight outage CL5531 was repaired within two days."

    result = await route_message(ctx, Query(message="How fast are streetlight outages fixed?"))
    assert result.response == f"Streetlight outage {REDACTION_MARKER} was repaired within two days."


@pytest.mark.asyncio
async def test_vector_failures_propagate(ctx):
    ctx.index.query.side_effect = VectorSearchError("Vector index unavailable", status_code=500)
    with pytest.raises(VectorSearchError):
        await route_message(ctx, Query(message="Where can I pay my utility bill?"))


@pytest.mark.asyncio
async def test_model_loading_propagates(ctx):
    ctx.embedder.embed.side_effect = ModelLoadingError(estimated_time=20)
    with pytest.raises(ModelLoadingError):
        await route_message(ctx, Query(message="Where can I pay my utility bill?"))


# ── Analytics path ────────────────────────────────────────────

@pytest.mark.asyncio
async def test_average_usage_takes_sql_path(ctx):
    ctx.llm.complete.side_effect = [
        "```sql\nSELECT avg(kwh) AS avg_kwh FROM energy_usage WHERE extract(month from month) = 5;\n```",
        "Average usage in May was 612 kWh.",
    ]
    ctx.sql.execute.return_value = SqlResult(
        sql="SELECT avg(kwh) AS avg_kwh FROM energy_usage WHERE extract(month from month) = 5",
        rows=[{"avg_kwh": 612.4}],
        tables=["energy_usage"],
    )

    result = await route_message(ctx, Query(message="What's the average energy usage in May?", agent_type=AgentType.ENERGY))

    assert result.intent is Intent.ANALYTICS
    assert result.response == "Average usage in May was 612 kWh."
    assert result.chart_data is None
    assert result.sources == [{"source": "table:energy_usage", "score": None}]
    ctx.sql.execute.assert_awaited_once_with(
        "SELECT avg(kwh) AS avg_kwh FROM energy_usage WHERE extract(month from month) = 5"
    )
    ctx.embedder.embed.assert_not_awaited()
    assert "612.4" in ctx.llm.complete.await_args_list[1].args[0]


@pytest.mark.asyncio
async def test_sql_failure_is_reported_without_vector_fallback(ctx):
    ctx.llm.complete.return_value = "SELECT total(kwh) FROM energy_usage"
    ctx.sql.execute.side_effect = AnalyticsError("SQL query returned an error")

    result = await route_message(ctx, Query(message="What is the total energy usage this year?"))

    assert result.response == ANALYTICS_FAILURE_MESSAGE
    assert result.sources == []
    ctx.embedder.embed.assert_not_awaited()
    ctx.index.query.assert_not_awaited()
    assert ctx.sql.execute.await_count == 1


@pytest.mark.asyncio
async def test_zero_rows_reports_no_records(ctx):
    ctx.llm.complete.return_value = "SELECT count(*) FROM tickets WHERE category = 'graffiti'"
    ctx.sql.execute.return_value = SqlResult(sql="...", rows=[], tables=["tickets"])

    result = await route_message(ctx, Query(message="How many graffiti complaints were filed?"))
    assert result.response == NO_RECORDS_MESSAGE
    assert ctx.llm.complete.await_count == 1


# ── Ticket lookup ─────────────────────────────────────────────

@pytest.mark.asyncio
async def test_ticket_lookup_summarizes_and_redacts(ctx):
    ctx.sql.execute.return_value = SqlResult(
        sql="...",
        rows=[{"ticket_id": "CL1234", "status": "open", "category": "pothole"}],
        tables=["tickets"],
    )
    ctx.llm.complete.return_value = "Ticket CL1234 for a pothole is still open."

    result = await route_message(ctx, Query(message="What is the status of ticket CL1234?"))

    assert result.intent is Intent.LOOKUP
    assert result.response == f"Ticket {REDACTION_MARKER} for a pothole is still open."
    assert "CL1234" in ctx.sql.execute.await_args.args[0]
    ctx.embedder.embed.assert_not_awaited()
