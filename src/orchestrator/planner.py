"""Generate a step plan from a goal and code using an LLM."""
from __future__ import annotations

import json
import logging
import re

from langchain_core.prompts import ChatPromptTemplate

from src.agent.worker import build_chat_model, usage_from_message
from src.core.contracts.orchestrator import Step
from src.core.contracts.phases import PlanResult, PlanValidation
from src.orchestrator.classifier import ActionClassifier, KeywordActionClassifier

log = logging.getLogger("planner")

# In the template, only {goal}, {autonomous} and {code} are variables; the JSON example uses {{ }} for literal braces
SYSTEM = """You are an autonomous software engineering agent. Create an executable plan for immediate action.
{autonomous}
Output only valid JSON with this exact structure (no markdown, no explanation):
{{ "steps": [{{ "name": "step-identifier", "description": "What this step accomplishes",
  "action": "analyze|refactor|optimize|document|test|review|fix", "priority": "high|medium|low",
  "estimated_complexity": "simple|moderate|complex", "dependencies": [] }}, ...],
  "strategy": "Brief description of overall approach", "estimated_steps": <number> }}
Each step should be specific and actionable. Order steps logically."""

AUTONOMOUS = """AUTONOMOUS EXECUTION MODE ENABLED:
- Each step MUST be immediately executable
- Each step MUST produce complete, working code
- Steps must be atomic and self-contained
"""

HUMAN = """Task: {goal}

Code:
{code}"""

_NUMBERED = re.compile(r"^(\d+[.)]|-|\*)\s+(.+)")

# Planner vocabulary differs a little from the preset one: synonyms first, analyze last.
PLANNER_KEYWORDS = ("refactor", "restructure", "optimize", "performance", "document", "comment", "test", "review", "check", "fix", "bug")
_SYNONYMS = {"restructure": "refactor", "performance": "optimize", "comment": "document", "check": "review", "bug": "fix"}


class PlannerActionClassifier(KeywordActionClassifier):
    def __init__(self):
        super().__init__(PLANNER_KEYWORDS, default="analyze")

    def classify(self, text: str) -> str:
        keyword = super().classify(text)
        return _SYNONYMS.get(keyword, keyword)


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
    return text.strip()


def _with_ids(steps: list[Step]) -> list[Step]:
    return [s if s.id else s.model_copy(update={"id": f"step-{i + 1}"}) for i, s in enumerate(steps)]


def _coerce_step(raw: dict) -> Step:
    """LLM plans often carry numeric ids and null or scalar dependencies."""
    data = dict(raw)
    if data.get("id") is not None:
        data["id"] = str(data["id"])
    deps = data.get("dependencies")
    if deps is None:
        data["dependencies"] = []
    elif not isinstance(deps, list):
        data["dependencies"] = [str(deps)]
    else:
        data["dependencies"] = [str(d) for d in deps if d is not None]
    return Step.model_validate(data)


def parse_text_plan(content: str, classifier: ActionClassifier | None = None) -> PlanResult:
    classifier = classifier or PlannerActionClassifier()
    steps = []
    for line in (l.strip() for l in content.splitlines()):
        match = _NUMBERED.match(line)
        if match:
            description = match.group(2)
            steps.append(Step(name=f"step-{len(steps) + 1}", description=description, action=classifier.classify(description)))
    if not steps:
        steps.append(Step(name="step-1", description=content[:200], action="analyze", priority="high"))
    return PlanResult(steps=_with_ids(steps), strategy="Auto-generated from text plan", estimated_steps=len(steps))


def parse_plan(content: str, classifier: ActionClassifier | None = None) -> PlanResult:
    """JSON plan when the reply holds one, otherwise a numbered/bulleted text plan."""
    text = _strip_fences(content)
    match = re.search(r"\{[\s\S]*\}", text)
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            log.warning("Failed to parse JSON plan: %s", e)
            data = None
        if isinstance(data, dict) and isinstance(data.get("steps"), list):
            steps = [_coerce_step(s) for s in data["steps"] if isinstance(s, dict)]
            return PlanResult(
                steps=_with_ids(steps),
                strategy=str(data.get("strategy", "")),
                estimated_steps=data.get("estimated_steps") or len(steps),
            )
    return parse_text_plan(content, classifier)


def fallback_plan(goal: str) -> PlanResult:
    steps = [
        Step(id="step-1", name="analyze", description=f"Analyze the code in context of: {goal}", action="analyze", priority="high"),
        Step(id="step-2", name="implement", description=f"Implement changes for: {goal}", action="refactor", priority="high"),
        Step(id="step-3", name="verify", description="Verify changes and provide final result", action="review", estimated_complexity="simple"),
    ]
    return PlanResult(steps=steps, strategy="Fallback 3-step plan: analyze, implement, verify", estimated_steps=3)


def validate_plan(plan: PlanResult) -> PlanValidation:
    issues = []
    if not plan.steps:
        issues.append("Plan has no steps")
    for i, step in enumerate(plan.steps, 1):
        if not step.name:
            issues.append(f"Step {i}: Missing name")
        if not step.description:
            issues.append(f"Step {i}: Missing description")
        if not step.action:
            issues.append(f"Step {i}: Missing action type")
    return PlanValidation(valid=not issues, issues=issues, step_count=len(plan.steps))


class LangChainPlanner:
    def __init__(self, default_model: str = "gpt-4o", autonomous: bool = True, model_factory=build_chat_model):
        self.default_model = default_model
        self.autonomous = autonomous
        self.model_factory = model_factory
        self.prompt = ChatPromptTemplate.from_messages([("system", SYSTEM), ("human", HUMAN)])

    async def create_plan(self, goal: str, code: str, model: str | None = None) -> PlanResult:
        selected = model or self.default_model
        try:
            llm = self.model_factory(selected, 0.3)
            out = await (self.prompt | llm).ainvoke(
                {"goal": goal, "code": code, "autonomous": AUTONOMOUS if self.autonomous else ""}
            )
            text = out.content if hasattr(out, "content") else str(out)
            plan = parse_plan(text)
            log.info("Plan created: %s steps, strategy: %s", len(plan.steps), plan.strategy)
            return plan.model_copy(update={"model": selected, "usage": usage_from_message(out)})
        except Exception as e:
            log.error("Planning call failed, using fallback plan: %s", e)
            return fallback_plan(goal)

    def validate_plan(self, plan: PlanResult) -> PlanValidation:
        return validate_plan(plan)
