from typing import Any

from pydantic import BaseModel, Field

from src.core.contracts.orchestrator import Step


class StepInvokeRequest(BaseModel):
    step: Step
    code: str | dict[str, Any] | None = None
    context: dict[str, Any] = Field(default_factory=dict)
    model: str | None = None
    request_id: str | None = None
