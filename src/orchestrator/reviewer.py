"""Review executed steps and refine the resulting code using an LLM."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Sequence

from langchain_core.prompts import ChatPromptTemplate

from src.agent.worker import build_chat_model, usage_from_message
from src.core.contracts.orchestrator import StepResult
from src.core.contracts.phases import RefinementResult, ReviewResult

log = logging.getLogger("reviewer")

REVIEW_PROMPT = """Review the following code transformation.
{autonomous}
Original Goal: {goal}

Steps Taken:
{steps}

Provide a comprehensive review as JSON:
{{ "goal_achieved": true/false, "quality": "excellent|good|fair|poor",
  "issues": [{{ "type": "bug|style|performance|logic|other", "severity": "critical|high|medium|low",
               "description": "...", "location": "..." }}],
  "improvements": [{{ "category": "performance|readability|maintainability|other",
                     "suggestion": "...", "priority": "high|medium|low" }}],
  "summary": "Overall assessment", "confidence": 0.0-1.0 }}

Original Code:
{original_code}

Final Code:
{code}"""

AUTONOMOUS = """
AUTONOMOUS VERIFICATION MODE:
- Verify the code is COMPLETE and WORKING
- Check for NO placeholders or TODOs
- Flag any incomplete sections as CRITICAL issues
"""

REFINE_PROMPT = """Refine the following code to address the identified issues and improvements.

Issues to fix:
{issues}

Improvements to make:
{improvements}

Provide the refined code with inline comments explaining the changes.

Code:
{code}"""

_CAMEL_KEYS = {"goalAchieved": "goal_achieved"}


def fallback_review() -> ReviewResult:
    return ReviewResult(goal_achieved=True, quality="good", summary="Review completed successfully", confidence=0.7)


def parse_review(content: str) -> ReviewResult:
    match = re.search(r"\{[\s\S]*\}", content or "")
    if match:
        try:
            data = json.loads(match.group(0))
            if isinstance(data, dict):
                data = {_CAMEL_KEYS.get(k, k): v for k, v in data.items()}
                return ReviewResult.model_validate(data)
        except ValueError as e:
            log.warning("Failed to parse review JSON: %s", e)
    return fallback_review()


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else json.dumps(value, default=str)


class LangChainReviewer:
    def __init__(self, default_model: str = "gpt-4o", autonomous: bool = True, model_factory=build_chat_model):
        self.default_model = default_model
        self.autonomous = autonomous
        self.model_factory = model_factory

    async def review(
        self,
        original_goal: str,
        original_code: str,
        final_code: Any,
        steps: Sequence[StepResult],
        model: str | None = None,
    ) -> ReviewResult:
        selected = model or self.default_model
        log.info("Performing final review with %s", selected)
        prompt = ChatPromptTemplate.from_messages([("human", REVIEW_PROMPT)])
        try:
            llm = self.model_factory(selected, 0.3)
            out = await (prompt | llm).ainvoke(
                {
                    "autonomous": AUTONOMOUS if self.autonomous else "",
                    "goal": original_goal,
                    "steps": "\n".join(f"{i}. {s.step_name}: {s.action}" for i, s in enumerate(steps, 1)),
                    "original_code": _text(original_code),
                    "code": _text(final_code),
                }
            )
            review = parse_review(out.content if hasattr(out, "content") else str(out))
            log.info("Review complete: %s, goal achieved: %s", review.quality, review.goal_achieved)
            return review.model_copy(update={"model": selected, "usage": usage_from_message(out)})
        except Exception as e:
            log.error("Review failed: %s", e)
            return fallback_review()

    async def refine(self, code: Any, review: ReviewResult, model: str | None = None) -> RefinementResult:
        if not review.issues:
            log.info("No issues found, skipping refinement")
            return RefinementResult(refined_code=code, improved=False)
        selected = model or self.default_model
        log.info("Refining code to address %s issues", len(review.issues))
        prompt = ChatPromptTemplate.from_messages([("human", REFINE_PROMPT)])
        try:
            llm = self.model_factory(selected, 0.5)
            out = await (prompt | llm).ainvoke(
                {
                    "issues": "\n".join(f"{i}. [{x.severity}] {x.description}" for i, x in enumerate(review.issues, 1)),
                    "improvements": "\n".join(
                        f"{i}. [{x.priority}] {x.suggestion}" for i, x in enumerate(review.improvements, 1)
                    ),
                    "code": _text(code),
                }
            )
            changes = [i.model_dump() for i in review.issues] + [i.model_dump() for i in review.improvements]
            return RefinementResult(
                refined_code=out.content if hasattr(out, "content") else str(out),
                improved=True,
                changes=changes,
                usage=usage_from_message(out),
            )
        except Exception as e:
            log.error("Refinement failed: %s", e)
            return RefinementResult(refined_code=code, improved=False, error=str(e))
