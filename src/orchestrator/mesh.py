"""All-to-all mesh: models exchange outputs over several rounds, then one synthesized answer is produced.

Round 1 has every model work on the original task. In each later round a model
sees its own previous output plus every peer output as it stood when the round
started, and is asked to synthesize. The message log only records metadata;
ModelState keeps indices into it.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Sequence

from src.core.contracts.collaborators import StepExecutor
from src.core.contracts.orchestrator import (
    MeshMessage,
    MeshResult,
    ModelRunResult,
    ModelStateSnapshot,
    Step,
    WorkflowOptions,
)
from src.orchestrator.executor import as_model_result, failed_model_result
from src.orchestrator.usage import aggregate_usage

log = logging.getLogger("workflow")

SYNTHESIS_NOTE = "\n\n---\nSynthesized from all-to-all collaboration between: {models}"


class MeshMessageLog:
    """Append-only. Positions never change once written."""

    def __init__(self):
        self._messages: list[MeshMessage] = []

    def append(self, message: MeshMessage) -> int:
        self._messages.append(message)
        return len(self._messages) - 1

    def __getitem__(self, index: int) -> MeshMessage:
        return self._messages[index]

    def __len__(self) -> int:
        return len(self._messages)

    def all(self) -> list[MeshMessage]:
        return list(self._messages)


@dataclass
class ModelState:
    model_id: str
    current_output: Any = None
    history: list[Any] = field(default_factory=list)
    received: list[int] = field(default_factory=list)
    sent: list[int] = field(default_factory=list)

    def record(self, output: Any) -> None:
        self.current_output = output
        self.history.append(output)

    def snapshot(self, messages: MeshMessageLog) -> ModelStateSnapshot:
        return ModelStateSnapshot(
            model_id=self.model_id,
            current_output=None if self.current_output is None else str(self.current_output),
            history=[str(h) for h in self.history],
            messages_received=[messages[i] for i in self.received],
            messages_sent=[messages[i] for i in self.sent],
        )


def build_mesh_prompt(prompt: str, model: str, own_output: Any, peer_outputs: Sequence[tuple[str, Any]]) -> str:
    parts = [
        f"Original task: {prompt}",
        "",
        f"Your previous output ({model}):",
        str(own_output) if own_output is not None else "(none)",
        "",
        "Outputs from the other models:",
    ]
    for peer, output in peer_outputs:
        parts += ["", f"--- {peer} ---", str(output)]
    parts += [
        "",
        "Review the other models' work, keep the strongest ideas from each, fix what they got wrong, "
        "and produce a single improved result.",
    ]
    return "\n".join(parts)


def synthesize(states: Sequence[ModelState]) -> Any:
    """Last model with an output, annotated with every contributor. Placeholder for a real merge."""
    with_output = [s for s in states if s.current_output is not None]
    if not with_output:
        return None
    contributors = list(dict.fromkeys(s.model_id for s in states if s.history))
    return f"{with_output[-1].current_output}{SYNTHESIS_NOTE.format(models=', '.join(contributors))}"


async def _attempt(
    executor: StepExecutor,
    step: Step,
    code: Any,
    context: dict[str, Any],
    model: str,
    **extra: Any,
) -> ModelRunResult:
    try:
        result = await executor.execute_step(step, code, context, model)
        return as_model_result(result, model, **extra)
    except Exception as e:
        log.error("Mesh step %s (%s) failed: %s", step.name, model, e)
        return failed_model_result(step, model, e, **extra)


async def run_mesh(
    executor: StepExecutor,
    prompt: str,
    code: str,
    models: Sequence[str],
    iterations: int = 2,
    options: WorkflowOptions | None = None,
) -> MeshResult:
    if not models:
        raise ValueError("All-to-all requires at least one model")
    if iterations < 1:
        raise ValueError("All-to-all requires at least one iteration")
    options = options or WorkflowOptions()
    log.info("Starting all-to-all workflow with %s models, %s rounds", len(models), iterations)
    start = time.perf_counter()

    messages = MeshMessageLog()
    # One state per participant; a model listed twice is sampled twice.
    states = [ModelState(model_id=m) for m in models]
    results: list[ModelRunResult] = []

    for i, state in enumerate(states):
        model = state.model_id
        step = Step(name=f"mesh-r1-{i + 1}-{model}", description=prompt, action="analyze")
        context = {"round": 1, "total_rounds": iterations, "read_only": options.is_read_only}
        result = await _attempt(executor, step, code, context, model, round=1)
        results.append(result)
        if result.success:
            state.record(result.output)

    for round_no in range(2, iterations + 1):
        # Peers are read from the round-start snapshot so processing order does not matter.
        snapshot = [s.current_output for s in states]
        for i, state in enumerate(states):
            model = state.model_id
            peers = [j for j, out in enumerate(snapshot) if j != i and out is not None]
            if not peers:
                log.warning("Round %s: no peer outputs for %s, skipping", round_no, model)
                continue
            for j in peers:
                index = messages.append(
                    MeshMessage(round=round_no, sender=states[j].model_id, recipient=model, chars=len(str(snapshot[j])))
                )
                state.received.append(index)
                states[j].sent.append(index)
            peer_names = [states[j].model_id for j in peers]
            step = Step(
                name=f"mesh-r{round_no}-{i + 1}-{model}",
                description=build_mesh_prompt(prompt, model, snapshot[i], [(states[j].model_id, snapshot[j]) for j in peers]),
                action="refactor",
            )
            context = {
                "round": round_no,
                "total_rounds": iterations,
                "peers": peer_names,
                "read_only": options.is_read_only,
            }
            working_code = snapshot[i] if snapshot[i] is not None else code
            result = await _attempt(
                executor, step, working_code, context, model, round=round_no, collaborated_with=peer_names
            )
            results.append(result)
            if result.success:
                state.record(result.output)

    final_output = synthesize(states)
    return MeshResult(
        prompt=prompt,
        models=list(models),
        iterations=iterations,
        results=results,
        model_states=[s.snapshot(messages) for s in states],
        messages=messages.all(),
        final_output=final_output,
        success=final_output is not None,
        duration_ms=int((time.perf_counter() - start) * 1000),
        total_usage=aggregate_usage(results),
    )
