"""Keyword classifiers for step actions and essential context keys.

Both are plain substring matchers. They sit behind small interfaces so a real
intent model can replace them without touching the runners or the optimizer.
"""
from __future__ import annotations

import json
from typing import Any, Protocol, Sequence

from src.core.contracts.orchestrator import Step

ACTIONS = ("analyze", "refactor", "optimize", "document", "test", "review", "fix")
ALWAYS_ESSENTIAL = ("prompt", "task", "goal")


class ActionClassifier(Protocol):
    def classify(self, text: str) -> str: ...


class ContextKeySelector(Protocol):
    def essential_keys(self, step: Step, context: dict[str, Any]) -> list[str]: ...


class KeywordActionClassifier:
    """First keyword found (in priority order) wins; falls back to the default action."""

    def __init__(self, keywords: Sequence[str] = ACTIONS, default: str = "analyze"):
        self.keywords = tuple(keywords)
        self.default = default

    def classify(self, text: str) -> str:
        lower = (text or "").lower()
        for keyword in self.keywords:
            if keyword in lower:
                return keyword
        return self.default


class KeywordContextSelector:
    def __init__(self, always: Sequence[str] = ALWAYS_ESSENTIAL):
        self.always = tuple(always)

    def essential_keys(self, step: Step, context: dict[str, Any]) -> list[str]:
        keys = list(self.always)
        step_text = serialize_step(step).lower()
        for key in context:
            if key.lower() in step_text and key not in keys:
                keys.append(key)
        return keys


def serialize_step(step: Step) -> str:
    return json.dumps(step.model_dump(exclude_none=True), separators=(",", ":"), default=str)


default_action_classifier = KeywordActionClassifier()
