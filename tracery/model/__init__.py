"""
tracery Model Module
====================

Contains the core data models and the cross-entity graph.

Key Components:
- schemas.py: Enums, parsed-definition facts and analysis result types
- artifacts.py: Typed records for discovered automation artifacts
- graph_builder.py: NetworkX-based graph of cross-entity automation

Design Philosophy:
- Every result object is plain data with to_dict() for serialization
- Ranked enumerations carry their numeric rank in one place
"""

from .schemas import (
    Severity,
    Confidence,
    ExecutionMode,
    StepType,
    AutomationType,
    TrustLevel,
    Complexity,
    TriggerType,
    TriggerEvent,
    ScopeType,
    Operation,
    ExternalCall,
    DataverseAction,
    FlowDefinition,
    ScriptAnalysis,
    BusinessRuleDefinition,
    ProcessDefinition,
    ExecutionStep,
    ExecutionPipeline,
    PerformanceRisk,
    RiskFactor,
    ExternalCallSource,
    ExternalEndpoint,
    CrossEntityLink,
    MigrationFeature,
    MigrationRecommendation,
    AnalysisResult
)
from .artifacts import (
    EntityMetadata,
    PluginStep,
    Flow,
    BusinessRule,
    ClassicWorkflow,
    WebResource,
    BusinessProcessFlow,
    EntityBlueprint
)
from .graph_builder import EntityGraph
