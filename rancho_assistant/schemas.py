"""
Pydantic models for the HTTP contract and the chart payload
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from rancho_assistant.data_models import AgentType

CHART_TYPES = ("line", "bar", "pie", "doughnut")
MAX_MESSAGE_LENGTH = 1000


class ChartDataset(BaseModel):
    model_config = ConfigDict(extra="allow")

    label: str = ""
    data: List[Optional[float]]


class ChartData(BaseModel):
    model_config = ConfigDict(extra="allow")

    labels: List[Union[str, int, float]]
    datasets: List[ChartDataset]


class ChartPayload(BaseModel):
    """Chart object the LLM embeds in its answer; used for validation only"""
    model_config = ConfigDict(extra="allow")

    type: Literal["chart"]
    chartType: Literal["line", "bar", "pie", "doughnut"]
    title: str = ""
    explanation: str = ""
    data: ChartData


class Source(BaseModel):
    source: Optional[str] = None
    score: Optional[float] = None


class ChatRequest(BaseModel):
    message: str = Field(..., description="User message", min_length=1, max_length=MAX_MESSAGE_LENGTH)
    agentType: AgentType = Field(default=AgentType.CUSTOMER, description="Persona and dataset filter")


class ChatResponse(BaseModel):
    response: str = Field(..., description="Visible answer text")
    chartData: Optional[Dict[str, Any]] = Field(default=None, description="Chart payload, if any")
    sources: List[Source] = Field(default=[], description="Top sources, at most 3")


class ModelLoadingResponse(BaseModel):
    error: str = "Model loading"
    estimated_time: float


class ErrorResponse(BaseModel):
    error: str


class AgentInfo(BaseModel):
    agentType: AgentType
    name: str
    description: str
    greeting: str
