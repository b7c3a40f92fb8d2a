"""Run a named preset: a fixed step list from configuration, applied in order."""
from __future__ import annotations

import logging
import time
from typing import Any

from src.core.config.models import EngineConfig, PresetConfig
from src.core.contracts.collaborators import StepExecutor
from src.core.contracts.orchestrator import PresetWorkflowResult, Step, StepResult, WorkflowOptions
from src.core.exceptions import WorkflowNotFound
from src.orchestrator.classifier import ActionClassifier, default_action_classifier
from src.orchestrator.usage import aggregate_usage

log = logging.getLogger("workflow")


def list_presets(config: EngineConfig) -> list[dict[str, Any]]:
    return [
        {
            "id": workflow_id,
            "name": preset.name,
            "description": preset.description,
            "steps": len(preset.steps),
            "output_format": preset.output_format,
        }
        for workflow_id, preset in config.presets.items()
    ]


def preset_steps(preset: PresetConfig, classifier: ActionClassifier = default_action_classifier) -> list[Step]:
    return [
        Step(
            id=f"step-{i}",
            name=s.name,
            description=s.prompt,
            action=classifier.classify(s.prompt),
            model=s.model,
        )
        for i, s in enumerate(preset.steps)
    ]


async def run_preset(
    config: EngineConfig,
    executor: StepExecutor,
    workflow_id: str,
    code: str,
    options: WorkflowOptions | None = None,
    classifier: ActionClassifier = default_action_classifier,
) -> PresetWorkflowResult:
    preset = config.get_preset(workflow_id)
    if preset is None:
        raise WorkflowNotFound(workflow_id)
    options = options or WorkflowOptions()
    stop_on_error = bool(options.stop_on_error)
    log.info("Executing preset workflow: %s", preset.name)

    start = time.perf_counter()
    steps = preset_steps(preset, classifier)
    results: list[StepResult] = []
    current_output: Any = code
    for i, (step, step_config) in enumerate(zip(steps, preset.steps)):
        log.info("Step %s/%s: %s", i + 1, len(steps), step.name)
        step_input = code if step_config.requires_input else current_output
        context = {
            "workflow_name": preset.name,
            "step_number": i + 1,
            "total_steps": len(steps),
            "read_only": options.is_read_only,
        }
        result = await executor.execute_step(step, step_input, context, step_config.model)
        results.append(result)
        if result.success:
            current_output = result.output
        else:
            log.warning("Step failed: %s - %s", step.name, result.error)
            if stop_on_error:
                break

    return PresetWorkflowResult(
        workflow_id=workflow_id,
        workflow_name=preset.name,
        output_format=preset.output_format,
        results=results,
        final_output=current_output,
        success=all(r.success for r in results),
        duration_ms=int((time.perf_counter() - start) * 1000),
        total_usage=aggregate_usage(results),
    )
