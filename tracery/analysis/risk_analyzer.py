"""
Risk Analyzer
=============

Scans a completed ExecutionPipeline for known performance risk patterns.

Rules (each evaluated independently, several may fire):
- Client-side business rules: >5 Medium, >10 additional High
- Synchronous server-side step with an external call: Critical
- Any stage bucket: >3 Medium, >5 additional High
- PreValidation bucket: >2 Medium
- Async steps: >10 Medium, >20 additional High
- Async steps with external calls: >5 Low
- Client + synchronous steps: >10 High
- External calls in both sync and async execution: Critical
- Flows triggered by the event: >5 Medium

Design Decisions:
-----------------
1. Thresholds come from AnalysisConfig so environments can tune them
2. Every risk carries a representative step; a rule whose bucket is empty
   emits nothing
3. Output is stable-sorted by descending severity weight, so ties keep
   discovery order
"""

from typing import Optional

from ..model.schemas import (
    ExecutionPipeline, ExecutionStep, ExecutionMode, PerformanceRisk, Severity, StepType
)
from ..config import AnalysisConfig


class RiskAnalyzer:
    """Detects performance risks in execution pipelines.

    Usage:
        analyzer = RiskAnalyzer()
        risks = analyzer.analyze(pipeline)

        # Or populate pipeline.performance_risks in place
        analyzer.attach(pipeline)
        stats = analyzer.summary_stats(pipeline.performance_risks)
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        """Initialize the analyzer.

        Args:
            config: Analysis thresholds (uses defaults if None)
        """
        self.config = config or AnalysisConfig()

    def analyze(self, pipeline: ExecutionPipeline) -> list[PerformanceRisk]:
        """Evaluate every rule against a pipeline.

        Args:
            pipeline: Pipeline built by PipelineBuilder

        Returns:
            Risks sorted most severe first
        """
        risks: list[PerformanceRisk] = []

        self._client_side_risks(pipeline.client_side, risks)
        self._sync_risks(pipeline, risks)
        self._async_risks(pipeline.server_side_async, risks)
        self._complexity_risks(pipeline, risks)

        return sorted(risks, key=lambda r: -r.severity.weight)

    def attach(self, pipeline: ExecutionPipeline) -> ExecutionPipeline:
        """Analyze a pipeline and store the result on it."""
        pipeline.performance_risks = self.analyze(pipeline)
        return pipeline

    @staticmethod
    def summary_stats(risks: list[PerformanceRisk]) -> dict:
        """Count risks per severity.

        Returns:
            Dictionary with critical/high/medium/low/total counts
        """
        stats = {severity.value.lower(): 0 for severity in Severity}
        for risk in risks:
            stats[risk.severity.value.lower()] += 1
        stats["total"] = len(risks)
        return stats

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    def _client_side_risks(self, steps: list[ExecutionStep], risks: list) -> None:
        count = len(steps)

        if steps and count > self.config.client_side_medium:
            risks.append(PerformanceRisk(
                severity=Severity.MEDIUM,
                step=steps[0],
                reason=f"{count} business rules executing on client side",
                recommendation="Consider consolidating business rules to reduce client-side processing",
            ))

        if steps and count > self.config.client_side_high:
            risks.append(PerformanceRisk(
                severity=Severity.HIGH,
                step=steps[0],
                reason=f"Excessive client-side automation: {count} business rules",
                recommendation=(
                    "Review and consolidate business rules. Consider moving logic to "
                    "server-side plugins for better performance"
                ),
            ))

    def _sync_risks(self, pipeline: ExecutionPipeline, risks: list) -> None:
        for step in pipeline.server_side_sync:
            if step.has_external_call and step.mode == ExecutionMode.SYNC:
                risks.append(PerformanceRisk(
                    severity=Severity.CRITICAL,
                    step=step,
                    reason="Synchronous external call blocking transaction",
                    recommendation=(
                        f'Move {step.step_type.value} "{step.name}" to asynchronous execution '
                        "or use message queuing to avoid blocking the user transaction"
                    ),
                ))

        for stage_name, steps in pipeline.stage_buckets:
            count = len(steps)

            if steps and count > self.config.stage_medium:
                risks.append(PerformanceRisk(
                    severity=Severity.MEDIUM,
                    step=steps[0],
                    reason=f"{count} synchronous steps in {stage_name} stage",
                    recommendation="Consider consolidating logic or moving non-critical steps to async execution",
                ))

            if steps and count > self.config.stage_high:
                risks.append(PerformanceRisk(
                    severity=Severity.HIGH,
                    step=steps[0],
                    reason=f"Excessive synchronous steps: {count} in {stage_name}",
                    recommendation=(
                        "Review execution order and consolidate plugins. "
                        "Move non-transactional logic to async"
                    ),
                ))

        if pipeline.pre_validation and len(pipeline.pre_validation) > self.config.pre_validation_max:
            risks.append(PerformanceRisk(
                severity=Severity.MEDIUM,
                step=pipeline.pre_validation[0],
                reason=f"{len(pipeline.pre_validation)} steps in PreValidation stage",
                recommendation=(
                    "PreValidation should only validate input. Consider moving logic "
                    "to PreOperation or PostOperation"
                ),
            ))

    def _async_risks(self, steps: list[ExecutionStep], risks: list) -> None:
        count = len(steps)

        if steps and count > self.config.async_medium:
            risks.append(PerformanceRisk(
                severity=Severity.MEDIUM,
                step=steps[0],
                reason=f"{count} asynchronous automation steps",
                recommendation="Review async workflows for consolidation opportunities to reduce system load",
            ))

        if steps and count > self.config.async_high:
            risks.append(PerformanceRisk(
                severity=Severity.HIGH,
                step=steps[0],
                reason=f"Excessive async automation: {count} steps",
                recommendation="Consider batch processing or consolidating workflows to reduce async queue load",
            ))

        # Async external calls don't block, but many of them still add up
        calling = [s for s in steps if s.has_external_call]
        if calling and len(calling) > self.config.async_external_calls:
            risks.append(PerformanceRisk(
                severity=Severity.LOW,
                step=calling[0],
                reason=f"{len(calling)} async steps with external calls",
                recommendation=(
                    "Monitor external service availability and implement retry logic "
                    "with exponential backoff"
                ),
            ))

    def _complexity_risks(self, pipeline: ExecutionPipeline, risks: list) -> None:
        sync_steps = pipeline.client_side + pipeline.server_side_sync

        if sync_steps and len(sync_steps) > self.config.total_sync_high:
            risks.append(PerformanceRisk(
                severity=Severity.HIGH,
                step=sync_steps[0],
                reason=f"Total synchronous automation: {len(sync_steps)} steps in pipeline",
                recommendation=(
                    "User experience will be degraded. Review entire automation chain "
                    "and move non-critical logic to async"
                ),
            ))

        sync_caller = next((s for s in sync_steps if s.has_external_call), None)
        async_calls = any(s.has_external_call for s in pipeline.server_side_async)
        if sync_caller is not None and async_calls:
            risks.append(PerformanceRisk(
                severity=Severity.CRITICAL,
                step=sync_caller,
                reason="External calls in both sync and async execution",
                recommendation=(
                    "All external integrations should be async to prevent transaction "
                    "blocking and improve reliability"
                ),
            ))

        flows = [
            s for s in pipeline.server_side_sync + pipeline.server_side_async
            if s.step_type == StepType.FLOW
        ]
        if flows and len(flows) > self.config.flow_count_medium:
            risks.append(PerformanceRisk(
                severity=Severity.MEDIUM,
                step=flows[0],
                reason=f"{len(flows)} Power Automate flows triggered by this event",
                recommendation="Consider consolidating flows to reduce overhead and improve maintainability",
            ))
