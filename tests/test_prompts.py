"""Tests for rancho_assistant/prompts.py: prompt composition."""

from rancho_assistant.data_models import AgentType
from rancho_assistant.prompts import AGENT_PROFILES, SCHEMA_HINTS, Instruction, PromptBuilder, PromptConfig


def test_build_numbers_persona_rules_then_instructions():
    prompt = PromptBuilder().build(PromptConfig(
        agent_type=AgentType.CUSTOMER,
        instructions=[Instruction.GROUNDED_ONLY],
        context="Public Works: (916) 851-8700",
    ))
    lines = prompt.splitlines()
    assert lines[0] == AGENT_PROFILES[AgentType.CUSTOMER].persona
    assert lines[1] == "RULES:"
    assert lines[2].startswith("1. Provide phone numbers")
    assert f"4. {Instruction.GROUNDED_ONLY.value}" in prompt
    assert prompt.endswith("Context:\nPublic Works: (916) 851-8700")


def test_knowledge_prompt_without_chart_asks_to_admit_unknown():
    prompt = PromptBuilder().knowledge(AgentType.ENERGY, "rates...", wants_chart=False)
    assert Instruction.ADMIT_UNKNOWN.value in prompt
    assert '"type":"chart"' not in prompt
    assert "Zone 12" in prompt


def test_knowledge_prompt_with_chart_appends_chart_block_last():
    prompt = PromptBuilder().knowledge(AgentType.ENERGY, "May 540 kWh", wants_chart=True)
    assert Instruction.ADMIT_UNKNOWN.value not in prompt
    assert prompt.index("Context:\nMay 540 kWh") < prompt.index('"type":"chart"')
    assert prompt.endswith("}")


def test_sql_prompt_carries_schema_and_skips_persona_rules():
    prompt = PromptBuilder().sql_generation(AgentType.CUSTOMER)
    assert SCHEMA_HINTS in prompt
    assert "1. " + Instruction.SQL_ONLY.value in prompt
    assert "Be empathetic" not in prompt


def test_ticket_prompt_forbids_identifiers():
    prompt = PromptBuilder().ticket_status(AgentType.CUSTOMER, '[{"status": "open"}]')
    assert Instruction.TICKET_STATUS.value in prompt
    assert Instruction.NO_RECORD_IDS.value in prompt


def test_every_agent_type_has_a_profile():
    assert set(AGENT_PROFILES) == set(AgentType)
