"""
Cross-Entity Mapper
===================

Finds automation on one entity that creates, updates or deletes records of
another entity.

Sources:
- Flows: every Dataverse action whose target differs from the flow's
  entity becomes an asynchronous link with the action's confidence
- Plugins: a Low-confidence, name-based link when another known entity's
  logical name appears as a whole word in the plugin name or description
- Business rules: no links (lookup-field references are not parsed)

Design Decisions:
-----------------
1. A link never points back at its own source entity
2. Web API collection names ("accounts") resolve to logical names when the
   entity metadata carries them
3. Links are sorted by (source entity, target entity)
"""

import re

from ..model.schemas import AutomationType, Confidence, CrossEntityLink, Operation
from ..model.artifacts import EntityBlueprint
from ..model.graph_builder import EntityGraph


# Checked in order; the first operation with a matching keyword wins
OPERATION_KEYWORDS = [
    (Operation.CREATE, ["create", "insert", "add"]),
    (Operation.UPDATE, ["update", "modify", "change", "sync"]),
    (Operation.DELETE, ["delete", "remove"]),
]


class CrossEntityMapper:
    """Maps automation that reaches across entities.

    Usage:
        mapper = CrossEntityMapper()
        links = mapper.map(blueprints)
        graph = mapper.build_graph(links)
    """

    def map(self, blueprints: list[EntityBlueprint]) -> list[CrossEntityLink]:
        """Collect cross-entity links for every entity blueprint.

        Args:
            blueprints: EntityBlueprint per analyzed entity

        Returns:
            Sorted list of CrossEntityLink
        """
        display_names: dict[str, str] = {}
        set_names: dict[str, str] = {}
        for blueprint in blueprints:
            logical = blueprint.logical_name.lower()
            display_names[logical] = blueprint.display_name
            if blueprint.entity.entity_set_name:
                set_names[blueprint.entity.entity_set_name.lower()] = logical

        links: list[CrossEntityLink] = []
        for blueprint in blueprints:
            links.extend(self._flow_links(blueprint, display_names, set_names))
            links.extend(self._plugin_links(blueprint, display_names))

        return sorted(links, key=lambda link: (link.source_entity, link.target_entity))

    def _flow_links(self, blueprint: EntityBlueprint, display_names: dict, set_names: dict) -> list:
        source = blueprint.logical_name
        links = []

        for flow in blueprint.flows:
            for action in flow.definition.dataverse_actions:
                target = self._resolve_entity(action.target_entity, set_names)
                if not target or target == source.lower():
                    continue

                links.append(CrossEntityLink(
                    source_entity=source,
                    source_entity_display_name=blueprint.display_name,
                    target_entity=target,
                    target_entity_display_name=display_names.get(target, target),
                    automation_type=AutomationType.FLOW,
                    automation_name=flow.name,
                    automation_id=flow.id,
                    operation=action.operation,
                    description=(
                        f'Flow "{flow.name}" {action.operation.value.lower()}s records in {target} '
                        f"when {source} is {flow.definition.trigger_event.past_tense}"
                    ),
                    is_asynchronous=True,
                    confidence=action.confidence,
                ))

        return links

    def _plugin_links(self, blueprint: EntityBlueprint, display_names: dict) -> list:
        source = blueprint.logical_name.lower()
        links = []

        for plugin in blueprint.plugins:
            text = f"{plugin.name or ''} {plugin.description or ''}".lower()

            for target, target_display in display_names.items():
                if target == source:
                    continue
                if not re.search(rf"\b{re.escape(target)}\b", text):
                    continue

                operation = self.guess_operation(text)
                links.append(CrossEntityLink(
                    source_entity=blueprint.logical_name,
                    source_entity_display_name=blueprint.display_name,
                    target_entity=target,
                    target_entity_display_name=target_display,
                    automation_type=AutomationType.PLUGIN,
                    automation_name=plugin.name,
                    automation_id=plugin.id,
                    operation=operation,
                    description=(
                        f'Plugin "{plugin.name}" may {operation.value.lower()} {target} '
                        "(detected from naming)"
                    ),
                    is_asynchronous=plugin.is_asynchronous,
                    confidence=Confidence.LOW,
                    name_based=True,
                ))

        return links

    @staticmethod
    def guess_operation(text: str) -> Operation:
        """Guess a plugin's operation from keywords, defaulting to Update."""
        text = text.lower()
        for operation, keywords in OPERATION_KEYWORDS:
            if any(keyword in text for keyword in keywords):
                return operation
        return Operation.UPDATE

    @staticmethod
    def _resolve_entity(name: str, set_names: dict) -> str:
        name = (name or "").strip().lower()
        return set_names.get(name, name)

    @staticmethod
    def build_graph(links: list[CrossEntityLink]) -> EntityGraph:
        """Load links into an EntityGraph for traversal queries."""
        graph = EntityGraph()
        for link in links:
            graph.add_link(link)
        return graph
