"""Workflow optimizer: redundancy, bottlenecks, parallel groups, context routing, batch plans.

Pure analysis over a step list. The only state is a set of monotonically
increasing counters, reset by clear_cache().
"""
from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Sequence

from src.core.contracts.optimizer import (
    Batch,
    BatchStep,
    BottleneckEntry,
    ContextRecommendation,
    ExecutionPlan,
    GroupMember,
    OptimizationAnalysis,
    OptimizationMetrics,
    OptimizedWorkflow,
    OptimizerMetrics,
    ParallelGroup,
    PlanSummary,
    RedundancyEntry,
    RemovedSteps,
)
from src.core.contracts.orchestrator import Step
from src.orchestrator.classifier import ContextKeySelector, KeywordContextSelector

log = logging.getLogger("optimizer")

BOTTLENECK_THRESHOLD = 3


def _json_size(value: Any) -> int:
    return len(json.dumps(value, separators=(",", ":"), default=str))


def task_signature(step: Step) -> str:
    task_data = {
        "type": step.type or step.action or "unknown",
        "description": (step.description or step.prompt or "").lower().strip(),
        "target": step.target or step.file or "",
    }
    return hashlib.md5(json.dumps(task_data).encode("utf-8")).hexdigest()


def dependency_key(step: Step) -> str:
    return ",".join(sorted(step.dependencies))


def _group_steps(steps: Sequence[Step]) -> list[ParallelGroup]:
    """Steps sharing an identical dependency set, two or more per group. Indices refer to `steps`."""
    groups = []
    processed: set[int] = set()
    for i, step in enumerate(steps):
        if i in processed:
            continue
        processed.add(i)
        key = dependency_key(step)
        members = [i]
        for j in range(i + 1, len(steps)):
            if j not in processed and dependency_key(steps[j]) == key:
                members.append(j)
                processed.add(j)
        if len(members) >= 2:
            groups.append(
                ParallelGroup(
                    steps=[GroupMember(index=idx, step=steps[idx]) for idx in members],
                    dependencies=sorted(step.dependencies),
                    expected_speedup=f"~{len(members)}x",
                )
            )
    return groups


class WorkflowOptimizer:
    def __init__(self, context_selector: ContextKeySelector | None = None):
        self.context_selector = context_selector or KeywordContextSelector()
        self.metrics = OptimizerMetrics()

    def analyze_workflow(self, steps: Sequence[Step], context: dict[str, Any] | None = None) -> OptimizationAnalysis:
        context = context or {}
        log.info("Analyzing workflow with %s steps", len(steps))
        analysis = OptimizationAnalysis(
            redundancy=self.detect_redundancy(steps),
            bottlenecks=self.identify_bottlenecks(steps),
            parallel_groups=self.find_parallel_groups(steps),
            context_optimization=self.analyze_context_usage(steps, context),
        )
        log.info(
            "Workflow analysis: %s redundant, %s parallel groups, %s bottlenecks",
            len(analysis.redundancy),
            len(analysis.parallel_groups),
            len(analysis.bottlenecks),
        )
        return analysis

    def detect_redundancy(self, steps: Sequence[Step]) -> list[RedundancyEntry]:
        redundant = []
        first_seen: dict[str, int] = {}
        for i, step in enumerate(steps):
            signature = task_signature(step)
            if signature in first_seen:
                redundant.append(RedundancyEntry(step_index=i, duplicate_of=first_seen[signature], step=step))
                self.metrics.redundancy_detections += 1
            else:
                first_seen[signature] = i
        return redundant

    def identify_bottlenecks(self, steps: Sequence[Step]) -> list[BottleneckEntry]:
        bottlenecks = []
        for i, step in enumerate(steps):
            step_id = step.step_id(i)
            dependent_count = sum(1 for later in steps[i + 1:] if step_id in later.dependencies)
            if dependent_count >= BOTTLENECK_THRESHOLD:
                bottlenecks.append(
                    BottleneckEntry(
                        step_index=i,
                        step=step,
                        dependent_count=dependent_count,
                        reason=f"{dependent_count} steps blocked by this step",
                    )
                )
                self.metrics.bottlenecks_identified += 1
        return bottlenecks

    def find_parallel_groups(self, steps: Sequence[Step]) -> list[ParallelGroup]:
        groups = _group_steps(steps)
        self.metrics.async_optimizations += len(groups)
        return groups

    def analyze_context_usage(self, steps: Sequence[Step], context: dict[str, Any]) -> list[ContextRecommendation]:
        context_size = _json_size(context)
        recommendations = []
        for i, step in enumerate(steps):
            essential = self.context_selector.essential_keys(step, context)
            reduced = {key: context[key] for key in essential if key in context}
            if len(reduced) >= len(context):
                continue
            reduced_size = _json_size(reduced)
            reduction = (1 - reduced_size / context_size) * 100
            recommendations.append(
                ContextRecommendation(
                    step_index=i,
                    essential_keys=essential,
                    reduced_context=reduced,
                    original_size=context_size,
                    reduced_size=reduced_size,
                    reduction_percentage=f"{reduction:.1f}%",
                )
            )
            self.metrics.context_reductions += 1
        return recommendations

    def route_essential_context(self, step: Step, context: dict[str, Any], step_index: int) -> dict[str, Any]:
        essential = self.context_selector.essential_keys(step, context)
        routed = {key: context[key] for key in essential if key in context}
        routed["_step_index"] = step_index
        routed["_essential_keys_only"] = True
        routed["_original_keys"] = list(context.keys())
        return routed

    def optimize_workflow(
        self,
        steps: Sequence[Step],
        context: dict[str, Any] | None = None,
        remove_redundant: bool = True,
    ) -> OptimizedWorkflow:
        """Drop redundant steps (keeping order), flag bottlenecks, regroup the survivors."""
        context = context or {}
        log.info("Optimizing workflow with %s steps", len(steps))
        redundancy = self.detect_redundancy(steps)
        bottleneck_entries = self.identify_bottlenecks(steps)
        redundant = {r.step_index for r in redundancy} if remove_redundant else set()
        bottlenecks = {b.step_index: b for b in bottleneck_entries}

        optimized: list[Step] = []
        original_indices: list[int] = []
        for i, step in enumerate(steps):
            if i in redundant:
                continue
            if i in bottlenecks:
                info = bottlenecks[i].model_dump(exclude={"step"})
                step = step.model_copy(update={"is_bottleneck": True, "bottleneck_info": info})
            optimized.append(step)
            original_indices.append(i)

        # Groups and context recommendations index the filtered list the batch plan walks.
        parallel_groups = self.find_parallel_groups(optimized)
        context_optimization = self.analyze_context_usage(optimized, context)
        log.info(
            "Workflow optimized: %s removed, %s parallel groups, %s bottlenecks",
            len(redundant),
            len(parallel_groups),
            len(bottleneck_entries),
        )
        speedup = max((len(g.steps) for g in parallel_groups), default=1)
        return OptimizedWorkflow(
            optimized_steps=optimized,
            original_indices=original_indices,
            parallel_groups=parallel_groups,
            context_optimization=context_optimization,
            removed=RemovedSteps(redundant=redundancy if remove_redundant else [], count=len(redundant)),
            bottlenecks=bottleneck_entries,
            metrics=OptimizationMetrics(
                original_steps=len(steps),
                optimized_steps=len(optimized),
                steps_removed=len(redundant),
                parallel_groups=len(parallel_groups),
                estimated_speedup=f"{speedup}x",
            ),
        )

    def create_execution_plan(
        self,
        steps: Sequence[Step],
        context: dict[str, Any] | None = None,
        remove_redundant: bool = True,
    ) -> ExecutionPlan:
        context = context or {}
        optimization = self.optimize_workflow(steps, context, remove_redundant=remove_redundant)
        optimized = optimization.optimized_steps
        group_of: dict[int, ParallelGroup] = {}
        for group in optimization.parallel_groups:
            for member in group.steps:
                group_of[member.index] = group

        def batch_step(index: int) -> BatchStep:
            step = optimized[index]
            return BatchStep(
                step_index=index,
                original_index=optimization.original_indices[index],
                step=step,
                context=self.route_essential_context(step, context, index),
            )

        batches: list[Batch] = []
        processed: set[int] = set()
        for i in range(len(optimized)):
            if i in processed:
                continue
            group = group_of.get(i)
            if group is None:
                batches.append(Batch(batch_index=len(batches), type="sequential", steps=[batch_step(i)]))
                processed.add(i)
            else:
                members = [m.index for m in group.steps]
                batches.append(Batch(batch_index=len(batches), type="parallel", steps=[batch_step(m) for m in members]))
                processed.update(members)

        parallel = sum(1 for b in batches if b.type == "parallel")
        return ExecutionPlan(
            batches=batches,
            optimization=optimization.metrics,
            summary=PlanSummary(
                total_batches=len(batches),
                parallel_batches=parallel,
                sequential_batches=len(batches) - parallel,
                removed_redundancy=optimization.removed.count,
                identified_bottlenecks=len(optimization.bottlenecks),
            ),
        )

    def get_metrics(self) -> OptimizerMetrics:
        return self.metrics.model_copy()

    def clear_cache(self) -> None:
        self.metrics = OptimizerMetrics()
        log.info("Workflow optimizer metrics cleared")


# Process-wide instance shared by the engine and the HTTP API.
workflow_optimizer = WorkflowOptimizer()
