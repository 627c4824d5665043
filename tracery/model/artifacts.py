"""
tracery Artifact Records
========================

Typed records for the automation artifacts handed over by discovery:
plugin steps, flows, business rules, legacy workflows, web resources,
business process flows and entity metadata.

Design Decision:
    Optional values are resolved exactly once, in __post_init__, so that
    no consumer has to repeat "name or type name" style fallbacks.
"""

from dataclasses import dataclass, field
from typing import Optional

from .schemas import (
    FlowDefinition, ScriptAnalysis, BusinessRuleDefinition, ProcessDefinition,
    ExecutionMode
)


# Plugin step registration stages
STAGE_PRE_VALIDATION = 10
STAGE_PRE_OPERATION = 20
STAGE_MAIN_OPERATION = 30
STAGE_POST_OPERATION = 40

STAGE_NAMES = {
    STAGE_PRE_VALIDATION: "PreValidation",
    STAGE_PRE_OPERATION: "PreOperation",
    STAGE_MAIN_OPERATION: "MainOperation",
    STAGE_POST_OPERATION: "PostOperation",
}

# Plugin step modes
MODE_SYNCHRONOUS = 0
MODE_ASYNCHRONOUS = 1

# Flow scope value for asynchronous (background) flows
FLOW_SCOPE_ASYNC = 50

# Legacy workflow modes
WORKFLOW_MODE_BACKGROUND = 0
WORKFLOW_MODE_REALTIME = 1


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass
class EntityMetadata:
    """Logical and display name of a table.

    entity_set_name is the plural collection name used in Web API paths
    (e.g. "accounts"), when known.
    """
    logical_name: str
    display_name: Optional[str] = None
    entity_set_name: Optional[str] = None

    def __post_init__(self):
        self.logical_name = (self.logical_name or "").lower()
        self.display_name = _blank_to_none(self.display_name) or self.logical_name
        self.entity_set_name = _blank_to_none(self.entity_set_name)


@dataclass
class PluginStep:
    """A registered plugin step.

    Attributes:
        stage: 10/20/30/40 for PreValidation/PreOperation/MainOperation/
            PostOperation
        mode: 0 = synchronous, 1 = asynchronous
    """
    id: str
    name: Optional[str]
    type_name: str
    entity: str
    message: str
    stage: int
    rank: int = 1
    mode: int = MODE_SYNCHRONOUS
    description: Optional[str] = None
    assembly_name: Optional[str] = None
    filtering_attributes: list = field(default_factory=list)

    def __post_init__(self):
        self.name = _blank_to_none(self.name) or self.type_name
        self.description = _blank_to_none(self.description)

    @property
    def is_synchronous(self) -> bool:
        return self.mode == MODE_SYNCHRONOUS

    @property
    def is_asynchronous(self) -> bool:
        return self.mode == MODE_ASYNCHRONOUS

    @property
    def stage_name(self) -> str:
        return STAGE_NAMES.get(self.stage, f"Stage {self.stage}")


@dataclass
class Flow:
    """A cloud flow with its parsed definition."""
    id: str
    name: str
    entity: Optional[str]
    state: str = "Draft"  # Draft, Active, Suspended
    scope: int = 0
    description: Optional[str] = None
    definition: FlowDefinition = field(default_factory=FlowDefinition)
    has_external_calls: bool = False

    def __post_init__(self):
        self.description = _blank_to_none(self.description)
        self.has_external_calls = self.definition.has_external_calls

    @property
    def is_active(self) -> bool:
        return self.state == "Active"

    @property
    def is_async_scoped(self) -> bool:
        return self.scope == FLOW_SCOPE_ASYNC


@dataclass
class BusinessRule:
    """A client-side business rule."""
    id: str
    name: str
    entity: str
    state: str = "Draft"  # Draft, Active
    scope: str = "AllForms"  # Entity, AllForms, SpecificForm
    description: Optional[str] = None
    definition: BusinessRuleDefinition = field(default_factory=BusinessRuleDefinition)

    def __post_init__(self):
        self.description = _blank_to_none(self.description)

    @property
    def is_active(self) -> bool:
        return self.state == "Active"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "state": self.state,
            "scope": self.scope,
            "description": self.description,
            "definition": self.definition.to_dict(),
        }


@dataclass
class ClassicWorkflow:
    """A legacy (classic) workflow definition.

    Attributes:
        mode: 0 = background (asynchronous), 1 = real-time (synchronous)
        xaml: Raw workflow markup
    """
    id: str
    name: str
    entity: str
    mode: int = WORKFLOW_MODE_BACKGROUND
    mode_name: Optional[str] = None
    trigger_on_create: bool = False
    trigger_on_update: bool = False
    trigger_on_delete: bool = False
    on_demand: bool = False
    state: str = "Draft"
    description: Optional[str] = None
    xaml: str = ""

    def __post_init__(self):
        self.description = _blank_to_none(self.description)
        if not self.mode_name:
            self.mode_name = "RealTime" if self.mode == WORKFLOW_MODE_REALTIME else "Background"
        if self.xaml is None:
            self.xaml = ""

    @property
    def is_synchronous(self) -> bool:
        return self.mode == WORKFLOW_MODE_REALTIME or self.mode_name == "RealTime"

    @property
    def execution_mode(self) -> ExecutionMode:
        return ExecutionMode.SYNC if self.is_synchronous else ExecutionMode.ASYNC


@dataclass
class WebResource:
    """A web resource; analysis is set for JavaScript resources only."""
    id: str
    name: str
    resource_type: int = 3
    display_name: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    analysis: Optional[ScriptAnalysis] = None
    has_external_calls: bool = False
    is_deprecated: bool = False

    def __post_init__(self):
        self.display_name = _blank_to_none(self.display_name) or self.name
        self.description = _blank_to_none(self.description)
        if self.analysis is not None:
            self.has_external_calls = len(self.analysis.external_calls) > 0
            self.is_deprecated = self.analysis.uses_deprecated_xrm_page

    @property
    def is_javascript(self) -> bool:
        return self.resource_type == 3

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "resource_type": self.resource_type,
            "has_external_calls": self.has_external_calls,
            "is_deprecated": self.is_deprecated,
            "analysis": self.analysis.to_dict() if self.analysis else None,
        }


@dataclass
class BusinessProcessFlow:
    """A business process flow with its parsed stage structure."""
    id: str
    name: str
    primary_entity: str
    state: str = "Draft"
    definition: ProcessDefinition = field(default_factory=ProcessDefinition)


@dataclass
class EntityBlueprint:
    """All automation discovered for one entity.

    pipelines maps event name -> ExecutionPipeline once built.
    """
    entity: EntityMetadata
    plugins: list = field(default_factory=list)  # List of PluginStep
    flows: list = field(default_factory=list)  # List of Flow
    business_rules: list = field(default_factory=list)  # List of BusinessRule
    classic_workflows: list = field(default_factory=list)  # List of ClassicWorkflow
    pipelines: dict = field(default_factory=dict)

    @property
    def logical_name(self) -> str:
        return self.entity.logical_name

    @property
    def display_name(self) -> str:
        return self.entity.display_name

    @property
    def automation_count(self) -> int:
        return len(self.plugins) + len(self.flows) + len(self.business_rules) + len(self.classic_workflows)

    def to_dict(self) -> dict:
        return {
            "entity": self.logical_name,
            "display_name": self.display_name,
            "plugin_count": len(self.plugins),
            "flow_count": len(self.flows),
            "business_rule_count": len(self.business_rules),
            "classic_workflow_count": len(self.classic_workflows),
            "business_rules": [rule.to_dict() for rule in self.business_rules],
            "pipelines": {event: p.to_dict() for event, p in self.pipelines.items()},
        }
