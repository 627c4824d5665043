"""
Workflow Markup Parser
======================

Regex-based scanning of legacy workflow / business process flow XAML.

The markup has no schema we can rely on, so the parser only looks for a
handful of named elements:
- <mxswa:Stage ... EntityName="" StageName="" StageId="">: stage definitions
- <mxswa:Step ...>: step elements (counted only)

Stage order is the order of first appearance in the markup. A process is
cross-entity when its stages belong to more than one entity.
"""

import re
from typing import Optional

from ..model.schemas import ProcessDefinition, ProcessStage


_STAGE_TAG = re.compile(r"<\w+:Stage\b[^>]*>", re.IGNORECASE)
_STEP_TAG = re.compile(r"<\w+:Step\b[^>]*>", re.IGNORECASE)
_ATTRIBUTE = re.compile(r'([\w:.]+)\s*=\s*"([^"]*)"')


class WorkflowMarkupParser:
    """Parser for workflow XAML.

    Usage:
        definition = WorkflowMarkupParser.parse(bpf_record["xaml"])
        if definition.cross_entity_flow:
            print("Stages span", definition.entities)
    """

    @classmethod
    def parse(cls, xaml: Optional[str]) -> ProcessDefinition:
        """Extract stages, step count and the entities the stages belong to.

        Args:
            xaml: Raw workflow markup

        Returns:
            ProcessDefinition; empty when no markup is given
        """
        if not xaml or not isinstance(xaml, str):
            return ProcessDefinition()

        stages = cls._extract_stages(xaml)

        entities: list[str] = []
        for stage in stages:
            if stage.entity and stage.entity not in entities:
                entities.append(stage.entity)

        return ProcessDefinition(
            stages=stages,
            entities=entities,
            total_steps=len(_STEP_TAG.findall(xaml)),
            cross_entity_flow=len(entities) > 1,
        )

    @staticmethod
    def _extract_stages(xaml: str) -> list[ProcessStage]:
        stages: list[ProcessStage] = []
        seen_ids: set[str] = set()

        for tag in _STAGE_TAG.findall(xaml):
            attributes = {key.lower(): value for key, value in _ATTRIBUTE.findall(tag)}
            entity = attributes.get("entityname", "")
            name = attributes.get("stagename", "")
            if not entity and not name:
                continue

            stage_id = attributes.get("stageid") or f"stage-{len(stages)}"
            if stage_id in seen_ids:
                continue
            seen_ids.add(stage_id)

            stages.append(ProcessStage(
                id=stage_id,
                name=name,
                entity=entity.lower(),
                order=len(stages),
            ))

        return stages

    @staticmethod
    def contains_any(xaml: Optional[str], markers) -> bool:
        """True if any marker substring occurs in the markup."""
        if not xaml:
            return False
        return any(marker in xaml for marker in markers)
