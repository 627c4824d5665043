"""
tracery Data Schemas
====================

Typed dataclasses and enums describing parsed automation definitions and
the results of topology/risk analysis.

Design Decisions:
-----------------
1. Ranked enumerations (Severity, TrustLevel) carry their numeric rank as
   a property; the mapping is defined once, next to the enum
2. ExecutionStep is frozen; the pipeline builder renumbers steps by creating
   replacements rather than mutating them
3. Confidence is an explicit field on every heuristically extracted fact
4. All result objects expose to_dict() for JSON serialization

Schema Hierarchy:
- Parsed definitions: FlowDefinition, ScriptAnalysis, BusinessRuleDefinition,
  ProcessDefinition (and their facts: ExternalCall, DataverseAction, ...)
- Pipeline: ExecutionStep -> ExecutionPipeline <- PerformanceRisk
- Dependencies: ExternalEndpoint -> ExternalCallSource, RiskFactor
- Cross-entity: CrossEntityLink
- Migration: MigrationRecommendation -> MigrationFeature
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Severity(Enum):
    """Severity of a performance risk or endpoint risk factor."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def weight(self) -> int:
        """Sort weight, higher = more severe (Critical=4 ... Low=1)."""
        return _SEVERITY_WEIGHTS[self]

    @property
    def order(self) -> int:
        """Ascending sort key, most severe first (Critical=0 ... Low=3)."""
        return 4 - self.weight


_SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


class Confidence(Enum):
    """How direct the evidence for an extracted fact was."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ExecutionMode(Enum):
    """Where and how a step executes."""
    CLIENT = "Client"
    SYNC = "Sync"
    ASYNC = "Async"


class StepType(Enum):
    """Kinds of automation that appear in an execution pipeline."""
    BUSINESS_RULE = "BusinessRule"
    PLUGIN = "Plugin"
    FLOW = "Flow"


class AutomationType(Enum):
    """Kinds of automation that can reference endpoints or other entities."""
    FLOW = "Flow"
    BUSINESS_RULE = "BusinessRule"
    PLUGIN = "Plugin"
    JAVASCRIPT = "JavaScript"


class TrustLevel(Enum):
    """Allow-list classification of an external domain."""
    UNKNOWN = "Unknown"
    KNOWN = "Known"
    TRUSTED = "Trusted"

    @property
    def rank(self) -> int:
        """Riskiest first: Unknown=0, Known=1, Trusted=2."""
        return _TRUST_RANKS[self]


_TRUST_RANKS = {
    TrustLevel.UNKNOWN: 0,
    TrustLevel.KNOWN: 1,
    TrustLevel.TRUSTED: 2,
}


class Complexity(Enum):
    """Complexity tier for scripts and legacy workflow migrations."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class TriggerType(Enum):
    """Classification of a flow's first trigger."""
    DATAVERSE = "Dataverse"
    MANUAL = "Manual"
    SCHEDULED = "Scheduled"
    OTHER = "Other"


class TriggerEvent(Enum):
    """Event that fires a flow."""
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    CREATE_OR_UPDATE = "CreateOrUpdate"
    MANUAL = "Manual"
    SCHEDULED = "Scheduled"
    UNKNOWN = "Unknown"

    def matches(self, event_name: str) -> bool:
        """Check whether a flow with this trigger runs for a message.

        Create accepts Create/CreateOrUpdate, Update accepts
        Update/CreateOrUpdate, Delete accepts Delete only.
        """
        event = (event_name or "").strip().lower()
        if event == "create":
            return self in (TriggerEvent.CREATE, TriggerEvent.CREATE_OR_UPDATE)
        if event == "update":
            return self in (TriggerEvent.UPDATE, TriggerEvent.CREATE_OR_UPDATE)
        if event == "delete":
            return self == TriggerEvent.DELETE
        return False

    @property
    def past_tense(self) -> str:
        """Human-readable description used in link descriptions."""
        return {
            TriggerEvent.CREATE: "created",
            TriggerEvent.UPDATE: "updated",
            TriggerEvent.DELETE: "deleted",
            TriggerEvent.CREATE_OR_UPDATE: "created or updated",
        }.get(self, "triggered")


class ScopeType(Enum):
    """Run-as scope of a flow."""
    USER = "User"
    BUSINESS_UNIT = "BusinessUnit"
    ORGANIZATION = "Organization"
    UNKNOWN = "Unknown"


class Operation(Enum):
    """CRUD-ish operation performed against an entity."""
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"
    READ = "Read"
    GET = "Get"
    LIST = "List"


# =============================================================================
# Parsed definition facts
# =============================================================================

@dataclass
class ExternalCall:
    """One detected outbound HTTP reference.

    Attributes:
        url: URL (or path) as found in the definition
        domain: Lower-cased host extracted from the URL
        method: HTTP method if known
        action_name: Action or call site that contained the URL
        confidence: High for explicit URI+method, Medium for path-based
            connector calls or ajax, Low for bare string matches
    """
    url: str
    domain: str
    method: Optional[str] = None
    action_name: str = ""
    confidence: Confidence = Confidence.LOW

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "method": self.method,
            "action_name": self.action_name,
            "confidence": self.confidence.value,
        }


@dataclass
class DataverseAction:
    """A create/update/delete/get/list action found inside a flow."""
    operation: Operation
    target_entity: str
    action_name: str
    confidence: Confidence = Confidence.LOW

    def to_dict(self) -> dict:
        return {
            "operation": self.operation.value,
            "target_entity": self.target_entity,
            "action_name": self.action_name,
            "confidence": self.confidence.value,
        }


@dataclass
class FlowDefinition:
    """Structured description of a cloud flow's clientdata JSON.

    The default instance (no arguments) is what the parser returns for
    missing or malformed definitions.
    """
    trigger_type: TriggerType = TriggerType.OTHER
    trigger_event: TriggerEvent = TriggerEvent.UNKNOWN
    trigger_conditions: Optional[str] = None
    scope_type: ScopeType = ScopeType.UNKNOWN
    actions_count: int = 0
    external_calls: list = field(default_factory=list)  # List of ExternalCall
    connection_references: list = field(default_factory=list)  # List of str
    dataverse_actions: list = field(default_factory=list)  # List of DataverseAction
    parse_error: Optional[str] = None

    @property
    def has_external_calls(self) -> bool:
        return len(self.external_calls) > 0

    def to_dict(self) -> dict:
        return {
            "trigger_type": self.trigger_type.value,
            "trigger_event": self.trigger_event.value,
            "trigger_conditions": self.trigger_conditions,
            "scope_type": self.scope_type.value,
            "actions_count": self.actions_count,
            "external_calls": [c.to_dict() for c in self.external_calls],
            "connection_references": list(self.connection_references),
            "dataverse_actions": [a.to_dict() for a in self.dataverse_actions],
            "parse_error": self.parse_error,
        }


@dataclass
class ScriptAnalysis:
    """Result of scanning a JavaScript web resource."""
    external_calls: list = field(default_factory=list)  # List of ExternalCall
    uses_xrm: bool = False
    uses_deprecated_xrm_page: bool = False
    frameworks: list = field(default_factory=list)  # List of str
    lines_of_code: int = 0
    complexity: Complexity = Complexity.LOW

    def to_dict(self) -> dict:
        return {
            "external_calls": [c.to_dict() for c in self.external_calls],
            "uses_xrm": self.uses_xrm,
            "uses_deprecated_xrm_page": self.uses_deprecated_xrm_page,
            "frameworks": list(self.frameworks),
            "lines_of_code": self.lines_of_code,
            "complexity": self.complexity.value,
        }


@dataclass
class RuleCondition:
    field: str
    operator: str
    value: str
    logic_operator: str = "AND"


@dataclass
class RuleAction:
    action_type: str
    field: str
    value: Optional[str] = None
    message: Optional[str] = None


@dataclass
class BusinessRuleDefinition:
    """Conditions and actions extracted from business rule markup."""
    conditions: list = field(default_factory=list)  # List of RuleCondition
    actions: list = field(default_factory=list)  # List of RuleAction
    execution_context: str = "Client"  # Client, Server, Both
    condition_logic: str = "No conditions defined"
    parse_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "conditions": [
                {"field": c.field, "operator": c.operator, "value": c.value,
                 "logic_operator": c.logic_operator}
                for c in self.conditions
            ],
            "actions": [
                {"type": a.action_type, "field": a.field, "value": a.value,
                 "message": a.message}
                for a in self.actions
            ],
            "execution_context": self.execution_context,
            "condition_logic": self.condition_logic,
            "parse_error": self.parse_error,
        }


@dataclass
class ProcessStage:
    """One stage of a business process flow, in order of appearance."""
    id: str
    name: str
    entity: str
    order: int


@dataclass
class ProcessDefinition:
    """Stage structure extracted from legacy workflow/BPF markup."""
    stages: list = field(default_factory=list)  # List of ProcessStage
    entities: list = field(default_factory=list)  # Distinct stage entities
    total_steps: int = 0
    cross_entity_flow: bool = False
    parse_error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "stages": [
                {"id": s.id, "name": s.name, "entity": s.entity, "order": s.order}
                for s in self.stages
            ],
            "entities": list(self.entities),
            "total_steps": self.total_steps,
            "cross_entity_flow": self.cross_entity_flow,
            "parse_error": self.parse_error,
        }


# =============================================================================
# Execution pipeline
# =============================================================================

@dataclass(frozen=True)
class ExecutionStep:
    """One unit of automation inside a pipeline.

    Attributes:
        order: 1-based position within its bucket
        step_type: BusinessRule, Plugin or Flow
        name: Display name
        id: Stable identifier of the underlying artifact
        mode: Client, Sync or Async
        stage: Platform stage (plugins only)
        rank: Execution rank within the stage (plugins only)
        has_external_call: Whether the step is known to call out
        external_endpoints: URLs called, when known
        description: Optional description
    """
    order: int
    step_type: StepType
    name: str
    id: str
    mode: ExecutionMode
    stage: Optional[int] = None
    rank: Optional[int] = None
    has_external_call: bool = False
    external_endpoints: Optional[tuple] = None
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "order": self.order,
            "type": self.step_type.value,
            "name": self.name,
            "id": self.id,
            "mode": self.mode.value,
            "stage": self.stage,
            "rank": self.rank,
            "has_external_call": self.has_external_call,
            "external_endpoints": list(self.external_endpoints) if self.external_endpoints is not None else None,
            "description": self.description,
        }


@dataclass
class PerformanceRisk:
    """A risk pattern detected in an execution pipeline."""
    severity: Severity
    step: ExecutionStep
    reason: str
    recommendation: str

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "step": self.step.to_dict(),
            "reason": self.reason,
            "recommendation": self.recommendation,
        }


@dataclass
class ExecutionPipeline:
    """Reconstructed execution order for one (entity, event) pair.

    The synchronous server-side steps are split into the four platform
    stages. performance_risks is empty until RiskAnalyzer.attach() runs.
    """
    entity: str
    event: str
    client_side: list = field(default_factory=list)
    pre_validation: list = field(default_factory=list)
    pre_operation: list = field(default_factory=list)
    main_operation: list = field(default_factory=list)
    post_operation: list = field(default_factory=list)
    server_side_async: list = field(default_factory=list)
    total_steps: int = 0
    has_external_calls: bool = False
    performance_risks: list = field(default_factory=list)  # List of PerformanceRisk

    @property
    def stage_buckets(self) -> list[tuple[str, list]]:
        """Named synchronous stage buckets in execution order."""
        return [
            ("PreValidation", self.pre_validation),
            ("PreOperation", self.pre_operation),
            ("MainOperation", self.main_operation),
            ("PostOperation", self.post_operation),
        ]

    @property
    def server_side_sync(self) -> list[ExecutionStep]:
        """All synchronous server-side steps, stage by stage."""
        steps = []
        for _, bucket in self.stage_buckets:
            steps.extend(bucket)
        return steps

    @property
    def all_steps(self) -> list[ExecutionStep]:
        return self.client_side + self.server_side_sync + self.server_side_async

    def to_dict(self) -> dict:
        return {
            "entity": self.entity,
            "event": self.event,
            "client_side": [s.to_dict() for s in self.client_side],
            "server_side_sync": {
                "pre_validation": [s.to_dict() for s in self.pre_validation],
                "pre_operation": [s.to_dict() for s in self.pre_operation],
                "main_operation": [s.to_dict() for s in self.main_operation],
                "post_operation": [s.to_dict() for s in self.post_operation],
            },
            "server_side_async": [s.to_dict() for s in self.server_side_async],
            "total_steps": self.total_steps,
            "has_external_calls": self.has_external_calls,
            "performance_risks": [r.to_dict() for r in self.performance_risks],
        }


# =============================================================================
# External dependencies
# =============================================================================

@dataclass
class RiskFactor:
    """A single reason an external endpoint is risky."""
    severity: Severity
    factor: str
    description: str
    recommendation: str

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "factor": self.factor,
            "description": self.description,
            "recommendation": self.recommendation,
        }


@dataclass
class ExternalCallSource:
    """An artifact that references an external endpoint."""
    automation_type: AutomationType
    name: str
    id: str
    entity: Optional[str]
    mode: ExecutionMode
    confidence: Confidence

    def to_dict(self) -> dict:
        return {
            "type": self.automation_type.value,
            "name": self.name,
            "id": self.id,
            "entity": self.entity,
            "mode": self.mode.value,
            "confidence": self.confidence.value,
        }


@dataclass
class ExternalEndpoint:
    """Deduplicated view of one external domain across all artifacts.

    Identity key is the lower-cased domain.
    """
    url: str
    domain: str
    protocol: str = "http"
    trust: TrustLevel = TrustLevel.UNKNOWN
    risk_factors: list = field(default_factory=list)  # List of RiskFactor
    detected_in: list = field(default_factory=list)  # List of ExternalCallSource
    call_count: int = 0

    def __hash__(self):
        return hash(self.domain)

    def __eq__(self, other):
        if isinstance(other, ExternalEndpoint):
            return self.domain == other.domain
        return False

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "protocol": self.protocol,
            "trust": self.trust.value,
            "risk_factors": [f.to_dict() for f in self.risk_factors],
            "detected_in": [s.to_dict() for s in self.detected_in],
            "call_count": self.call_count,
        }


# =============================================================================
# Cross-entity links
# =============================================================================

@dataclass
class CrossEntityLink:
    """Automation on a source entity that reads or writes a target entity.

    Attributes:
        confidence: Certainty of the underlying extraction
        name_based: True when the link was guessed from naming only
            (plugin hints); such links must not be trusted like parsed ones
    """
    source_entity: str
    source_entity_display_name: str
    target_entity: str
    target_entity_display_name: str
    automation_type: AutomationType
    automation_name: str
    automation_id: str
    operation: Operation
    description: str
    is_asynchronous: bool
    confidence: Confidence = Confidence.HIGH
    name_based: bool = False

    def to_dict(self) -> dict:
        return {
            "source_entity": self.source_entity,
            "source_entity_display_name": self.source_entity_display_name,
            "target_entity": self.target_entity,
            "target_entity_display_name": self.target_entity_display_name,
            "automation_type": self.automation_type.value,
            "automation_name": self.automation_name,
            "automation_id": self.automation_id,
            "operation": self.operation.value,
            "description": self.description,
            "is_asynchronous": self.is_asynchronous,
            "confidence": self.confidence.value,
            "name_based": self.name_based,
        }


# =============================================================================
# Migration advice
# =============================================================================

@dataclass
class MigrationFeature:
    feature: str
    recommendation: str
    migration_path: str

    def to_dict(self) -> dict:
        return {
            "feature": self.feature,
            "recommendation": self.recommendation,
            "migration_path": self.migration_path,
        }


@dataclass
class MigrationRecommendation:
    """Migration assessment for a legacy workflow."""
    complexity: Complexity
    effort: str
    approach: str
    challenges: list = field(default_factory=list)  # List of str
    features: list = field(default_factory=list)  # List of MigrationFeature
    documentation_link: str = ""
    advisory: str = ""

    def to_dict(self) -> dict:
        return {
            "complexity": self.complexity.value,
            "effort": self.effort,
            "approach": self.approach,
            "challenges": list(self.challenges),
            "features": [f.to_dict() for f in self.features],
            "documentation_link": self.documentation_link,
            "advisory": self.advisory,
        }


# =============================================================================
# Complete analysis output
# =============================================================================

@dataclass
class AnalysisResult:
    """Complete analysis result container handed to reporting.

    Attributes:
        blueprints: EntityBlueprint per analyzed entity (with pipelines)
        external_endpoints: Deduplicated endpoint inventory
        cross_entity_links: Cross-entity automation links
        migration_recommendations: workflow id -> MigrationRecommendation
        business_process_flows: Parsed BPFs (for cross-entity stage context)
        web_resources: Web resources with their script analysis
        report_path: Path to generated JSON report
        total_risks: Total performance risks across all pipelines
        critical_risks / high_risks / medium_risks / low_risks: Counts
        metadata: Additional metadata (timestamp, environment, input file)
    """
    blueprints: list = field(default_factory=list)
    external_endpoints: list = field(default_factory=list)
    cross_entity_links: list = field(default_factory=list)
    migration_recommendations: dict = field(default_factory=dict)
    business_process_flows: list = field(default_factory=list)
    web_resources: list = field(default_factory=list)
    report_path: Optional[str] = None
    total_risks: int = 0
    critical_risks: int = 0
    high_risks: int = 0
    medium_risks: int = 0
    low_risks: int = 0
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        """Calculate risk counts from the pipelines of all blueprints."""
        if self.blueprints and self.total_risks == 0:
            self.recount_risks()

    def recount_risks(self) -> None:
        risks = [
            risk
            for blueprint in self.blueprints
            for pipeline in blueprint.pipelines.values()
            for risk in pipeline.performance_risks
        ]
        self.total_risks = len(risks)
        self.critical_risks = sum(1 for r in risks if r.severity == Severity.CRITICAL)
        self.high_risks = sum(1 for r in risks if r.severity == Severity.HIGH)
        self.medium_risks = sum(1 for r in risks if r.severity == Severity.MEDIUM)
        self.low_risks = sum(1 for r in risks if r.severity == Severity.LOW)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "blueprints": [b.to_dict() for b in self.blueprints],
            "external_endpoints": [e.to_dict() for e in self.external_endpoints],
            "cross_entity_links": [l.to_dict() for l in self.cross_entity_links],
            "migration_recommendations": {
                workflow_id: rec.to_dict()
                for workflow_id, rec in self.migration_recommendations.items()
            },
            "business_process_flows": [
                {"id": bpf.id, "name": bpf.name, "primary_entity": bpf.primary_entity,
                 "state": bpf.state, "definition": bpf.definition.to_dict()}
                for bpf in self.business_process_flows
            ],
            "web_resources": [w.to_dict() for w in self.web_resources],
            "report_path": self.report_path,
            "total_risks": self.total_risks,
            "critical_risks": self.critical_risks,
            "high_risks": self.high_risks,
            "medium_risks": self.medium_risks,
            "low_risks": self.low_risks,
            "metadata": self.metadata,
        }
