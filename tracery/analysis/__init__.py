"""
tracery Analysis Module
=======================

Deterministic topology reconstruction and risk assessment.

Components:
- pipeline_builder.py: Execution order per (entity, event)
- risk_analyzer.py: Performance risk rules over a pipeline
- dependency_aggregator.py: Deduplicated, trust-classified external endpoints
- cross_entity_mapper.py: Automation that touches other entities
- migration_advisor.py: Classic workflow migration assessment

Design Philosophy:
- All analysis is pure: no I/O, no shared state between calls
- Thresholds and allow-lists come from configuration
"""

from .pipeline_builder import PipelineBuilder
from .risk_analyzer import RiskAnalyzer
from .dependency_aggregator import DependencyAggregator
from .cross_entity_mapper import CrossEntityMapper
from .migration_advisor import MigrationAdvisor
