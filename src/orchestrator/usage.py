"""Token-usage aggregation across step results and workflow phases."""
from __future__ import annotations

from typing import Any, Iterable

from src.core.contracts.orchestrator import Usage

_FIELDS = ("prompt_tokens", "completion_tokens", "total_tokens")


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def usage_of(obj: Any) -> Usage:
    """Usage record carried by a result-like object or dict. Missing fields count as zero."""
    return to_usage(_field(obj, "usage"))


def to_usage(raw: Any) -> Usage:
    if raw is None:
        return Usage()
    if isinstance(raw, Usage):
        return raw
    return Usage(**{name: int(_field(raw, name) or 0) for name in _FIELDS})


def aggregate_usage(results: Iterable[Any]) -> Usage:
    total = Usage()
    for result in results:
        total = total + usage_of(result)
    return total


def aggregate_total_usage(plan: Any = None, execution: Any = None, review: Any = None) -> Usage:
    """Sum plan, execution and review usage. An absent phase contributes nothing."""
    phases = [
        _field(plan, "usage"),
        _field(execution, "total_usage"),
        _field(review, "usage"),
    ]
    total = Usage()
    for phase in phases:
        if phase is not None:
            total = total + to_usage(phase)
    return total
