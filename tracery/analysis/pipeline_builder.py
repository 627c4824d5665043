"""
Pipeline Builder
================

Reconstructs the execution order of all automation that fires for one
(entity, event) pair.

Ordering Rules:
1. Client side: active business rules, in discovery order
2. Synchronous plugins: sorted by stage then rank (stable), bucketed into
   PreValidation(10) / PreOperation(20) / MainOperation(30) /
   PostOperation(40); any other stage value is dropped
3. Active flows that are not async-scoped run after the main operation and
   are appended to PostOperation
4. Async plugins followed by async-scoped flows form the async list
5. Every bucket is numbered 1..n independently

Design Decisions:
-----------------
1. Plugins never carry an external-call flag: there is no access to plugin
   assembly code, so detection is not attempted
2. Flows carry the external-call flag of their parsed definition verbatim
3. Steps are immutable; numbering creates new step objects
"""

from dataclasses import replace
from typing import Optional

from ..model.schemas import ExecutionPipeline, ExecutionStep, ExecutionMode, StepType, TriggerEvent
from ..model.artifacts import (
    PluginStep, Flow, BusinessRule, EntityBlueprint,
    STAGE_PRE_VALIDATION, STAGE_PRE_OPERATION, STAGE_MAIN_OPERATION, STAGE_POST_OPERATION
)


class PipelineBuilder:
    """Builds ExecutionPipeline objects.

    Usage:
        builder = PipelineBuilder()
        pipeline = builder.build_pipeline("account", "Update", plugins, flows, rules)

        # Or every event the entity has automation for
        pipelines = builder.build_all(blueprint)
    """

    def build_pipeline(
        self,
        entity_logical_name: str,
        event_name: str,
        plugins: list[PluginStep],
        flows: list[Flow],
        business_rules: list[BusinessRule]
    ) -> ExecutionPipeline:
        """Build the execution pipeline for one entity/event.

        Args:
            entity_logical_name: Entity logical name (e.g. "account")
            event_name: Message name (Create, Update, Delete, ...)
            plugins: Plugin steps (any entity; filtered here)
            flows: Flows (any entity; filtered here)
            business_rules: Business rules (any entity; filtered here)

        Returns:
            ExecutionPipeline with an empty performance_risks list
        """
        entity = (entity_logical_name or "").lower()
        event = (event_name or "").lower()

        relevant_plugins = [
            p for p in plugins
            if (p.entity or "").lower() == entity and (p.message or "").lower() == event
        ]
        relevant_flows = [
            f for f in flows
            if (f.entity or "").lower() == entity and f.definition.trigger_event.matches(event_name)
        ]
        relevant_rules = [br for br in business_rules if (br.entity or "").lower() == entity]

        pipeline = ExecutionPipeline(entity=entity_logical_name, event=event_name)
        pipeline.client_side = self._build_client_side_steps(relevant_rules)
        (pipeline.pre_validation, pipeline.pre_operation,
         pipeline.main_operation, pipeline.post_operation) = self._build_sync_steps(
            relevant_plugins, relevant_flows
        )
        pipeline.server_side_async = self._build_async_steps(relevant_plugins, relevant_flows)

        all_steps = pipeline.all_steps
        pipeline.total_steps = len(all_steps)
        pipeline.has_external_calls = any(step.has_external_call for step in all_steps)

        return pipeline

    def _build_client_side_steps(self, business_rules: list[BusinessRule]) -> list[ExecutionStep]:
        """Active business rules run in the browser during form interaction."""
        steps = [
            ExecutionStep(
                order=0,
                step_type=StepType.BUSINESS_RULE,
                name=rule.name,
                id=rule.id,
                mode=ExecutionMode.CLIENT,
                description=rule.description,
            )
            for rule in business_rules
            if rule.is_active
        ]
        return _numbered(steps)

    def _build_sync_steps(
        self,
        plugins: list[PluginStep],
        flows: list[Flow]
    ) -> tuple[list, list, list, list]:
        """Bucket synchronous plugins by stage and append sync flows."""
        buckets: dict[int, list[ExecutionStep]] = {
            STAGE_PRE_VALIDATION: [],
            STAGE_PRE_OPERATION: [],
            STAGE_MAIN_OPERATION: [],
            STAGE_POST_OPERATION: [],
        }

        sync_plugins = sorted(
            (p for p in plugins if p.is_synchronous),
            key=lambda p: (p.stage, p.rank)
        )
        for plugin in sync_plugins:
            bucket = buckets.get(plugin.stage)
            if bucket is None:
                continue
            bucket.append(self._plugin_step(plugin, ExecutionMode.SYNC))

        for flow in flows:
            if flow.is_active and not flow.is_async_scoped:
                buckets[STAGE_POST_OPERATION].append(self._flow_step(flow, ExecutionMode.SYNC))

        return (
            _numbered(buckets[STAGE_PRE_VALIDATION]),
            _numbered(buckets[STAGE_PRE_OPERATION]),
            _numbered(buckets[STAGE_MAIN_OPERATION]),
            _numbered(buckets[STAGE_POST_OPERATION]),
        )

    def _build_async_steps(self, plugins: list[PluginStep], flows: list[Flow]) -> list[ExecutionStep]:
        """Async plugins first, then async-scoped flows, numbered across both."""
        steps = [self._plugin_step(p, ExecutionMode.ASYNC) for p in plugins if p.is_asynchronous]
        steps.extend(
            self._flow_step(f, ExecutionMode.ASYNC)
            for f in flows
            if f.is_active and f.is_async_scoped
        )
        return _numbered(steps)

    @staticmethod
    def _plugin_step(plugin: PluginStep, mode: ExecutionMode) -> ExecutionStep:
        return ExecutionStep(
            order=0,
            step_type=StepType.PLUGIN,
            name=plugin.name,
            id=plugin.id,
            mode=mode,
            stage=plugin.stage,
            rank=plugin.rank,
            has_external_call=False,
            external_endpoints=None,
            description=plugin.description,
        )

    @staticmethod
    def _flow_step(flow: Flow, mode: ExecutionMode) -> ExecutionStep:
        return ExecutionStep(
            order=0,
            step_type=StepType.FLOW,
            name=flow.name,
            id=flow.id,
            mode=mode,
            has_external_call=flow.has_external_calls,
            external_endpoints=tuple(call.url for call in flow.definition.external_calls),
            description=flow.description,
        )

    def get_entity_events(
        self,
        entity_logical_name: str,
        plugins: list[PluginStep],
        flows: list[Flow],
        business_rules: list[BusinessRule]
    ) -> list[str]:
        """Get the sorted list of events that have automation for an entity.

        Events are matched case-insensitively; the Create/Update/Delete
        spelling wins over a plugin's own casing. CreateOrUpdate flows count
        for both Create and Update; business rules run on create and update
        forms.
        """
        entity = (entity_logical_name or "").lower()
        events: dict[str, str] = {}

        for plugin in plugins:
            if (plugin.entity or "").lower() == entity and plugin.message:
                events.setdefault(plugin.message.lower(), plugin.message)

        for flow in flows:
            if (flow.entity or "").lower() != entity:
                continue
            trigger = flow.definition.trigger_event
            if trigger in (TriggerEvent.CREATE, TriggerEvent.UPDATE, TriggerEvent.DELETE):
                events[trigger.value.lower()] = trigger.value
            elif trigger == TriggerEvent.CREATE_OR_UPDATE:
                events.update(create="Create", update="Update")

        if any((br.entity or "").lower() == entity for br in business_rules):
            events.update(create="Create", update="Update")

        for standard in ("Create", "Update", "Delete"):
            if standard.lower() in events:
                events[standard.lower()] = standard

        return sorted(events.values())

    def build_all(
        self,
        blueprint: EntityBlueprint,
        events: Optional[list[str]] = None
    ) -> dict[str, ExecutionPipeline]:
        """Build one pipeline per event for an entity blueprint.

        Args:
            blueprint: EntityBlueprint with the entity's automation
            events: Events to build (default: every event with automation)

        Returns:
            Dictionary mapping event name to ExecutionPipeline
        """
        if events is None:
            events = self.get_entity_events(
                blueprint.logical_name, blueprint.plugins, blueprint.flows, blueprint.business_rules
            )

        return {
            event: self.build_pipeline(
                blueprint.logical_name, event,
                blueprint.plugins, blueprint.flows, blueprint.business_rules
            )
            for event in events
        }


def _numbered(steps: list[ExecutionStep]) -> list[ExecutionStep]:
    """Return copies of the steps numbered 1..n."""
    return [replace(step, order=i) for i, step in enumerate(steps, 1)]


def build_pipeline(
    entity_logical_name: str,
    event_name: str,
    plugins: list[PluginStep],
    flows: list[Flow],
    business_rules: list[BusinessRule]
) -> ExecutionPipeline:
    """Module-level shortcut for PipelineBuilder().build_pipeline()."""
    return PipelineBuilder().build_pipeline(
        entity_logical_name, event_name, plugins, flows, business_rules
    )
