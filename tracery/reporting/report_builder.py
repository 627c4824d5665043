"""
Report Builder Module
=====================

Builds structured report objects from analysis results.

The report contains:
- Execution pipelines and performance risks per entity/event
- The external endpoint inventory
- Cross-entity automation links and graph summary
- Migration recommendations for classic workflows

Design Decisions:
-----------------
1. Reports are structured data (JSON-serializable)
2. HTML/Markdown rendering is left to downstream tools; the JSON report
   and a plain-text summary are produced here
3. Includes all data needed for display
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..model.schemas import AnalysisResult, Complexity
from ..model.graph_builder import EntityGraph
from ..config import OutputConfig


class ReportBuilder:
    """Builds comprehensive reports from analysis results.

    Usage:
        builder = ReportBuilder(output_dir="output")

        result = builder.build_report(
            blueprints=blueprints,
            external_endpoints=endpoints,
            cross_entity_links=links,
        )

        print(result.total_risks)
        print(result.report_path)
    """

    def __init__(self, output_dir: str = "output", config: Optional[OutputConfig] = None):
        """Initialize the report builder.

        Args:
            output_dir: Directory for output files
            config: Output configuration (uses defaults if None)
        """
        self.config = config or OutputConfig(output_dir=output_dir)
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def build_report(
        self,
        blueprints: list,
        external_endpoints: Optional[list] = None,
        cross_entity_links: Optional[list] = None,
        migration_recommendations: Optional[dict] = None,
        business_process_flows: Optional[list] = None,
        web_resources: Optional[list] = None,
        entity_graph: Optional[EntityGraph] = None,
        environment: str = "unknown",
        input_file: Optional[str] = None
    ) -> AnalysisResult:
        """Build a complete analysis report.

        Args:
            blueprints: EntityBlueprints with built and analyzed pipelines
            external_endpoints: Aggregated endpoint inventory
            cross_entity_links: Cross-entity links
            migration_recommendations: workflow id -> MigrationRecommendation
            business_process_flows: Parsed business process flows
            web_resources: Web resources with their script analysis
            entity_graph: Graph built from the links, for summary metadata
            environment: Environment name from the snapshot
            input_file: Snapshot file name for metadata

        Returns:
            AnalysisResult object with all report data
        """
        metadata = {
            'timestamp': datetime.now().isoformat(),
            'environment': environment,
            'input_file': input_file,
            'entity_count': len(blueprints),
            'pipeline_count': sum(len(b.pipelines) for b in blueprints),
        }

        if entity_graph is not None:
            metadata['entity_graph'] = entity_graph.to_dict()
            metadata['hub_entities'] = entity_graph.hub_entities()

        result = AnalysisResult(
            blueprints=blueprints,
            external_endpoints=external_endpoints or [],
            cross_entity_links=cross_entity_links or [],
            migration_recommendations=migration_recommendations or {},
            business_process_flows=business_process_flows or [],
            web_resources=web_resources or [],
            metadata=metadata,
        )
        result.recount_risks()

        if self.config.generate_json:
            result.report_path = self._save_json_report(result)

        return result

    def _save_json_report(self, result: AnalysisResult) -> str:
        """Save the report as JSON.

        Returns:
            Path to saved JSON file
        """
        json_path = self.output_dir / self.config.report_filename

        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(result.to_dict(), f, indent=2, default=str)

        return str(json_path)

    def get_summary_stats(self, result: AnalysisResult) -> dict:
        """Get summary statistics from a report.

        Args:
            result: AnalysisResult to summarize

        Returns:
            Dictionary with summary statistics
        """
        # Entities with the most risks
        risks_by_entity = {}
        for blueprint in result.blueprints:
            count = sum(len(p.performance_risks) for p in blueprint.pipelines.values())
            if count:
                risks_by_entity[blueprint.logical_name] = count

        top_entities = sorted(risks_by_entity.items(), key=lambda x: (-x[1], x[0]))[:5]

        trust_counts = {}
        for endpoint in result.external_endpoints:
            trust_counts[endpoint.trust.value] = trust_counts.get(endpoint.trust.value, 0) + 1

        complexity_counts = {}
        for recommendation in result.migration_recommendations.values():
            key = recommendation.complexity.value
            complexity_counts[key] = complexity_counts.get(key, 0) + 1

        return {
            'total_risks': result.total_risks,
            'critical_risks': result.critical_risks,
            'high_risks': result.high_risks,
            'medium_risks': result.medium_risks,
            'low_risks': result.low_risks,
            'entities_with_most_risks': top_entities,
            'external_endpoints': len(result.external_endpoints),
            'endpoints_by_trust': trust_counts,
            'cross_entity_links': len(result.cross_entity_links),
            'name_based_links': sum(1 for l in result.cross_entity_links if l.name_based),
            'deprecated_scripts': sum(1 for w in result.web_resources if w.is_deprecated),
            'workflows_to_migrate': len(result.migration_recommendations),
            'migration_complexity': complexity_counts,
        }


def generate_text_report(result: AnalysisResult) -> str:
    """Generate a text-based report summary.

    Args:
        result: AnalysisResult to summarize

    Returns:
        Formatted text report
    """
    lines = [
        "=" * 60,
        "tracery - Automation Topology & Risk Report",
        "=" * 60,
        "",
        f"Generated: {result.metadata.get('timestamp', 'Unknown')}",
        f"Environment: {result.metadata.get('environment', 'unknown')}",
        f"Entities: {len(result.blueprints)}, pipelines: {result.metadata.get('pipeline_count', 0)}",
        "",
        "SUMMARY",
        "-" * 40,
        f"Total Performance Risks: {result.total_risks}",
        f"  - Critical: {result.critical_risks}",
        f"  - High: {result.high_risks}",
        f"  - Medium: {result.medium_risks}",
        f"  - Low: {result.low_risks}",
        "",
    ]

    # Pipelines with risks, most severe first
    risky = [
        (blueprint.logical_name, event, pipeline)
        for blueprint in result.blueprints
        for event, pipeline in blueprint.pipelines.items()
        if pipeline.performance_risks
    ]
    risky.sort(key=lambda item: (item[2].performance_risks[0].severity.order, item[0], item[1]))

    lines.extend([
        "PIPELINE RISKS",
        "-" * 40,
    ])
    if not risky:
        lines.append("  No performance risks detected")
    for entity, event, pipeline in risky[:10]:
        lines.append(f"")
        lines.append(f"{entity} / {event}: {pipeline.total_steps} steps")
        for risk in pipeline.performance_risks:
            lines.append(f"   [{risk.severity.value}] {risk.reason}")
            lines.append(f"      -> {risk.recommendation}")

    # Endpoints
    if result.external_endpoints:
        lines.extend([
            "",
            "EXTERNAL ENDPOINTS",
            "-" * 40,
        ])
        for endpoint in result.external_endpoints:
            worst = endpoint.risk_factors[0].severity.value if endpoint.risk_factors else "None"
            lines.append(
                f"  {endpoint.domain} [{endpoint.trust.value}] {endpoint.protocol}, "
                f"{endpoint.call_count} reference(s), worst factor: {worst}"
            )

    # Cross-entity links
    if result.cross_entity_links:
        lines.extend([
            "",
            "CROSS-ENTITY AUTOMATION",
            "-" * 40,
        ])
        for link in result.cross_entity_links:
            flag = " (name-based)" if link.name_based else ""
            lines.append(
                f"  {link.source_entity} -> {link.target_entity}: {link.operation.value} "
                f"by {link.automation_type.value} \"{link.automation_name}\"{flag}"
            )

        cycles = result.metadata.get('entity_graph', {}).get('cycles', [])
        for cycle in cycles:
            lines.append(f"  Cycle: {' -> '.join(cycle + cycle[:1])}")

    # Client scripts
    scripts = [w for w in result.web_resources if w.analysis is not None]
    if scripts:
        lines.extend([
            "",
            "CLIENT SCRIPTS",
            "-" * 40,
        ])
        for resource in scripts:
            analysis = resource.analysis
            line = (
                f"  {resource.name}: {analysis.complexity.value}, {analysis.lines_of_code} line(s), "
                f"{len(analysis.external_calls)} external call(s)"
            )
            if analysis.frameworks:
                line += f", frameworks: {', '.join(analysis.frameworks)}"
            if analysis.uses_deprecated_xrm_page:
                line += " [deprecated Xrm.Page]"
            lines.append(line)

    # Migration
    if result.migration_recommendations:
        names = {
            workflow.id: workflow.name
            for blueprint in result.blueprints
            for workflow in blueprint.classic_workflows
        }
        lines.extend([
            "",
            "CLASSIC WORKFLOW MIGRATION",
            "-" * 40,
        ])
        ordered = sorted(
            result.migration_recommendations.items(),
            key=lambda item: (-list(Complexity).index(item[1].complexity), names.get(item[0], item[0]))
        )
        for workflow_id, recommendation in ordered:
            lines.append(
                f"  {names.get(workflow_id, workflow_id)}: {recommendation.complexity.value} "
                f"({recommendation.effort})"
            )
            for challenge in recommendation.challenges:
                lines.append(f"    • {challenge}")

    lines.extend([
        "",
        "=" * 60,
        "End of Report",
        "=" * 60,
    ])

    return "\n".join(lines)