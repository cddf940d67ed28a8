"""
Prompt assembly
Agent personas plus a fixed set of named instructions composed into one system prompt
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from rancho_assistant.data_models import AgentType


class Instruction(str, Enum):
    GROUNDED_ONLY = "Use ONLY the provided context."
    NO_RECORD_IDS = "Do not mention ticket numbers, call IDs, or customer IDs."
    ADMIT_UNKNOWN = "If the answer is not in the context say you cannot answer."
    SUMMARIZE_TRENDS = "Summarize trends by category."
    SUMMARIZE_ROWS = (
        "The context holds database query results as JSON rows. Answer the question from those rows "
        "and report numbers exactly as given."
    )
    TICKET_STATUS = (
        "The context holds service request records. Describe their status, category and dates "
        "without repeating any identifier."
    )
    SQL_ONLY = (
        "Translate the question into ONE PostgreSQL SELECT statement over the schema below. "
        "Respond with the SQL only: no explanation, no markdown."
    )
    CHART_JSON = """IF numerical data is involved respond ONLY with valid JSON.

{
  "type":"chart",
  "chartType":"line|bar|pie|doughnut",
  "title":"Chart Title",
  "explanation":"Brief explanation",
  "data":{"labels":[...],"datasets":[...]}
}"""


SCHEMA_HINTS = """tickets(ticket_id text, agent text, category text, status text, priority text, description text, created_at timestamptz, resolved_at timestamptz)
energy_usage(id bigint, zone text, month date, kwh numeric, cost_usd numeric, rate_plan text)
meter_readings(id bigint, meter_id text, zone text, reading_date date, kwh numeric)"""


@dataclass(frozen=True)
class AgentProfile:
    agent_type: AgentType
    name: str
    description: str
    greeting: str
    persona: str
    rules: Tuple[str, ...]


AGENT_PROFILES = {
    AgentType.ENERGY: AgentProfile(
        agent_type=AgentType.ENERGY,
        name="Energy Advisor",
        description="SMUD programs, energy savings, rebates and usage visualizations.",
        greeting=(
            "Hello! I'm your Energy Advisor. Ask me about SMUD programs, energy savings, rebates, "
            "or request data visualizations!"
        ),
        persona="You are the Senior Energy Efficiency Expert for Rancho Cordova.",
        rules=(
            "Reference specific numbers and rates from the context.",
            "If calculating costs, show your math.",
            "Mention SMUD rebates and the Zone 12 climate where relevant.",
        ),
    ),
    AgentType.CUSTOMER: AgentProfile(
        agent_type=AgentType.CUSTOMER,
        name="Customer Service",
        description="City services, departments, permits, parks and service requests.",
        greeting="Hello! I'm your Customer Service assistant. How can I help you with city services today?",
        persona="You are the Rancho Cordova City Services Agent.",
        rules=(
            "Provide phone numbers, addresses, and hours from the context.",
            "Be empathetic and clear.",
            "Direct residents to the specific department (Public Works, Planning, etc).",
        ),
    ),
}


@dataclass
class PromptConfig:
    agent_type: AgentType
    instructions: List[Instruction] = field(default_factory=list)
    context: str = ""
    schema_hints: Optional[str] = None
    persona_rules: bool = True


class PromptBuilder:
    """Turns a PromptConfig into the final system prompt string"""

    def build(self, config: PromptConfig) -> str:
        profile = AGENT_PROFILES[config.agent_type]
        persona_rules = list(profile.rules) if config.persona_rules else []
        rules = persona_rules + [i.value for i in config.instructions if i is not Instruction.CHART_JSON]
        parts = [profile.persona, "RULES:"]
        parts.extend(f"{n}. {rule}" for n, rule in enumerate(rules, 1))
        if config.schema_hints:
            parts.append(f"Schema:\n{config.schema_hints}")
        if config.context:
            parts.append(f"Context:\n{config.context}")
        if Instruction.CHART_JSON in config.instructions:
            parts.append(Instruction.CHART_JSON.value)
        return "\n".join(parts)

    def knowledge(self, agent_type: AgentType, context: str, wants_chart: bool) -> str:
        if wants_chart:
            instructions = [Instruction.GROUNDED_ONLY, Instruction.NO_RECORD_IDS,
                            Instruction.SUMMARIZE_TRENDS, Instruction.CHART_JSON]
        else:
            instructions = [Instruction.GROUNDED_ONLY, Instruction.NO_RECORD_IDS, Instruction.ADMIT_UNKNOWN]
        return self.build(PromptConfig(agent_type=agent_type, instructions=instructions, context=context))

    def sql_generation(self, agent_type: AgentType) -> str:
        return self.build(PromptConfig(
            agent_type=agent_type,
            instructions=[Instruction.SQL_ONLY],
            schema_hints=SCHEMA_HINTS,
            persona_rules=False,
        ))

    def query_results(self, agent_type: AgentType, context: str, wants_chart: bool) -> str:
        instructions = [Instruction.SUMMARIZE_ROWS, Instruction.NO_RECORD_IDS]
        if wants_chart:
            instructions.append(Instruction.CHART_JSON)
        return self.build(PromptConfig(agent_type=agent_type, instructions=instructions, context=context))

    def ticket_status(self, agent_type: AgentType, context: str) -> str:
        return self.build(PromptConfig(
            agent_type=agent_type,
            instructions=[Instruction.TICKET_STATUS, Instruction.NO_RECORD_IDS],
            context=context,
        ))
