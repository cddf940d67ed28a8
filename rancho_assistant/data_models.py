"""
Request-scoped data structures
Nothing here outlives a single /api/chat call
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any, Optional


class AgentType(str, Enum):
    CUSTOMER = "customer"
    ENERGY = "energy"


class Intent(str, Enum):
    """Handling path chosen for a message"""
    CHART = "chart"
    ANALYTICS = "analytics"
    LOOKUP = "lookup"
    KNOWLEDGE = "knowledge"
    OUT_OF_SCOPE = "out_of_scope"


@dataclass(frozen=True)
class Query:
    message: str
    agent_type: AgentType = AgentType.CUSTOMER


@dataclass(frozen=True)
class Classification:
    """Independent flags for one message plus the intent derived from them"""
    in_domain: bool
    wants_chart: bool
    wants_analytics: bool
    wants_ticket_lookup: bool
    wants_numeric: bool = False
    wants_directory: bool = False
    ticket_ids: List[str] = field(default_factory=list)
    intent: Intent = Intent.KNOWLEDGE


@dataclass
class RetrievalMatch:
    """One vector index hit"""
    text: str
    source: Optional[str]
    score: Optional[float]


@dataclass
class SqlResult:
    """Rows returned by the remote SQL procedure"""
    sql: str
    rows: List[Dict[str, Any]]
    tables: List[str] = field(default_factory=list)


@dataclass
class ChatResult:
    """Terminal artifact of the router; serialized by the HTTP layer"""
    response: str
    chart_data: Optional[Dict[str, Any]] = None
    sources: List[Dict[str, Any]] = field(default_factory=list)
    intent: Optional[Intent] = None
