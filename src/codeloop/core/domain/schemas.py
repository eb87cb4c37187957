"""
Model-facing Wire Schemas

Pydantic models for the two JSON contracts exchanged with the language
model. They form the strict decoding tier; json_extraction provides the
tolerant tier used when strict validation fails. Field names here and in
the prompts must stay in sync.

Planning response:
    {"tasks": [{"description", "type", "priority", "parameters"}], "reasoning"}

Agent (ReAct) response:
    {"thinking", "action": {"tool", "parameters", "reasoning"},
     "final_answer", "continue_cycle"}
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator


class PlannedTaskSpec(BaseModel):
    description: str | None = None
    type: str | None = None
    priority: str | None = None
    parameters: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("parameters", mode="before")
    def _none_to_empty(cls, v):
        return {} if v is None else v


class PlanResponse(BaseModel):
    tasks: List[PlannedTaskSpec]
    reasoning: str | None = None


class AgentActionSpec(BaseModel):
    tool: str | None = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    reasoning: str | None = None

    @field_validator("parameters", mode="before")
    def _none_to_empty(cls, v):
        return {} if v is None else v


class AgentResponse(BaseModel):
    """Structured thinking returned by the model on every think step."""

    thinking: str | None = None
    action: AgentActionSpec | None = None
    observation: str | None = None
    final_answer: str | None = None
    continue_cycle: bool | None = None

    @property
    def has_action(self) -> bool:
        return self.action is not None and bool((self.action.tool or "").strip())

    @property
    def has_final_answer(self) -> bool:
        return bool((self.final_answer or "").strip())
