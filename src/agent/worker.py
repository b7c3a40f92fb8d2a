from __future__ import annotations

import logging
import os
import time
from typing import Any

from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from src.core.contracts.orchestrator import Step, StepResult, Usage
from src.orchestrator.executor import StepExecutorBase, now_iso

log = logging.getLogger("agent.worker")

SYSTEM = """You are a code transformation agent working on one step of a larger workflow.
Follow the task exactly. When the task changes code, return the complete resulting code."""

HUMAN = """Task: {task}

{position}{instructions}

Code:
{code}"""

ACTION_INSTRUCTIONS = {
    "analyze": "Provide a thorough analysis. Identify patterns, issues, and opportunities.",
    "refactor": "Refactor the code while preserving functionality. Provide clean, well-structured code.",
    "optimize": "Optimize for performance and efficiency. Explain the optimizations made.",
    "document": "Add comprehensive documentation. Include purpose, parameters, and examples.",
    "test": "Generate comprehensive tests covering edge cases and common scenarios.",
    "review": "Review the code critically. Identify issues and suggest improvements.",
    "fix": "Fix the identified issues. Provide corrected code with explanations.",
}

ACTION_TEMPERATURES = {
    "analyze": 0.3,
    "refactor": 0.5,
    "optimize": 0.4,
    "document": 0.4,
    "test": 0.6,
    "review": 0.3,
    "fix": 0.5,
}

READ_ONLY_NOTE = "Read-only mode: describe the changes, do not rewrite files.\n\n"


def build_chat_model(model: str, temperature: float = 0.3) -> ChatOpenAI:
    """OpenAI-compatible chat model. OPENAI_BASE_URL points it at another gateway."""
    base_url = os.environ.get("OPENAI_BASE_URL")
    if base_url:
        return ChatOpenAI(model=model, temperature=temperature, base_url=base_url)
    return ChatOpenAI(model=model, temperature=temperature)


def usage_from_message(message: Any) -> Usage:
    meta = getattr(message, "usage_metadata", None) or {}
    prompt_tokens = int(meta.get("input_tokens") or 0)
    completion_tokens = int(meta.get("output_tokens") or 0)
    return Usage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=int(meta.get("total_tokens") or prompt_tokens + completion_tokens),
    )


def build_step_prompt_values(step: Step, code: Any, context: dict[str, Any]) -> dict[str, str]:
    position = ""
    if context.get("step_number"):
        position = f"This is step {context['step_number']} of {context.get('total_steps', '?')}.\n\n"
    instructions = ACTION_INSTRUCTIONS.get(step.action, "")
    if context.get("read_only"):
        instructions = READ_ONLY_NOTE + instructions
    return {
        "task": step.description or step.prompt or step.name,
        "position": position,
        "instructions": instructions,
        "code": "" if code is None else str(code),
    }


class LangChainStepExecutor(StepExecutorBase):
    def __init__(self, default_model: str = "gpt-4o-mini", model_factory=build_chat_model):
        self.default_model = default_model
        self.model_factory = model_factory
        self.prompt = ChatPromptTemplate.from_messages([("system", SYSTEM), ("human", HUMAN)])

    async def execute_step(
        self,
        step: Step,
        code: Any,
        context: dict[str, Any] | None = None,
        model: str | None = None,
    ) -> StepResult:
        context = context or {}
        selected = model or step.model or self.default_model
        log.info("Executing step: %s (%s) with %s", step.name, step.action, selected)
        start = time.perf_counter()
        try:
            llm = self.model_factory(selected, ACTION_TEMPERATURES.get(step.action, 0.5))
            out = await (self.prompt | llm).ainvoke(build_step_prompt_values(step, code, context))
            content = out.content if hasattr(out, "content") else str(out)
            return StepResult(
                success=True,
                output=content,
                usage=usage_from_message(out),
                step_name=step.name,
                action=step.action,
                model=selected,
                latency_ms=int((time.perf_counter() - start) * 1000),
                timestamp=now_iso(),
            )
        except Exception as e:
            log.error("Step execution failed: %s - %s", step.name, e)
            return StepResult(
                success=False,
                output=None,
                error=str(e),
                step_name=step.name,
                action=step.action,
                model=selected,
                latency_ms=int((time.perf_counter() - start) * 1000),
                timestamp=now_iso(),
            )
