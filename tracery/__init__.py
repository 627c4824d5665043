"""
tracery - Automation Topology & Risk Analysis
=============================================

A Python framework that reconstructs what automation runs for a table in a
low-code business platform environment, in what order, and how risky it is.

Architecture Overview:
----------------------
- ingestion/: Loader for environment snapshot JSON exports
- parsers/: Heuristic parsers for flow, script and workflow definitions
- model/: Typed data models and the cross-entity graph
- analysis/: Pipeline reconstruction, risk scoring, dependency aggregation,
  cross-entity mapping and migration advice
- reporting/: JSON report and text summary generation
- integration/: Bridge module with the run_analysis() entry point

Design Decisions:
-----------------
1. NetworkX is used as the graph backend for cross-entity traversal
2. All data models use Python dataclasses for type safety and clarity
3. Parsers never raise on malformed definitions; they degrade to documented
   defaults and tag every extracted fact with a confidence level
4. The analysis core performs no I/O; loading and reporting live at the edges
"""

__version__ = "1.0.0"

from .config import TraceryConfig
