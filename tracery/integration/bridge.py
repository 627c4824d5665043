"""
Integration Bridge Module
=========================

High-level interface for callers (CLI, notebooks, other tools).

This module orchestrates the entire analysis pipeline:
1. Snapshot loading (file or in-memory dictionary)
2. Pipeline reconstruction per entity/event
3. Performance risk analysis
4. External dependency aggregation
5. Cross-entity mapping
6. Classic workflow migration assessment
7. Report generation

Design Decisions:
-----------------
1. Single entry point (run_analysis) for simplicity
2. Returns AnalysisResult which contains everything a renderer needs
3. Progress updates via callback for real-time display
"""

from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional, Union

from ..config import TraceryConfig, OutputConfig, get_config
from ..ingestion.snapshot_loader import SnapshotLoader, Snapshot
from ..model.schemas import AnalysisResult
from ..analysis.pipeline_builder import PipelineBuilder
from ..analysis.risk_analyzer import RiskAnalyzer
from ..analysis.dependency_aggregator import DependencyAggregator
from ..analysis.cross_entity_mapper import CrossEntityMapper
from ..analysis.migration_advisor import MigrationAdvisor
from ..reporting.report_builder import ReportBuilder


def run_analysis(
    snapshot_path: Optional[str] = None,
    snapshot: Optional[Union[dict, Snapshot]] = None,
    output_dir: Optional[str] = None,
    config: Optional[Union[dict, TraceryConfig]] = None,
    progress_callback: Optional[Callable[[str], None]] = None,
    entities: Optional[list[str]] = None
) -> AnalysisResult:
    """Main entry point for running an automation analysis.

    Args:
        snapshot_path: Path to a snapshot JSON file
        snapshot: Already-loaded snapshot (dict or Snapshot); wins over the path
        output_dir: Directory for output files (default: config output dir)
        config: Optional configuration (dict or TraceryConfig)
        progress_callback: Optional callback for progress updates
        entities: Restrict pipelines to these entity logical names

    Returns:
        AnalysisResult containing pipelines, endpoints, links and
        migration recommendations

    Raises:
        ValueError: If neither a snapshot path nor a snapshot is given

    Example:
        result = run_analysis(snapshot_path="contoso-dev.json")
        print(result.critical_risks)
    """
    tracery_config = _build_config(config, output_dir)

    def log(message: str):
        """Log message to callback if provided."""
        if progress_callback:
            progress_callback(message)
        if tracery_config.verbose:
            print(message)

    if snapshot is None and not snapshot_path:
        raise ValueError("Must provide either a snapshot file or an in-memory snapshot")

    # Step 1: Load snapshot
    loader = SnapshotLoader(verbose=tracery_config.verbose)
    input_file = None
    if isinstance(snapshot, Snapshot):
        data = snapshot
    elif snapshot is not None:
        log("[*] Loading in-memory snapshot...")
        data = loader.load_dict(snapshot)
    else:
        log(f"[*] Loading snapshot from {snapshot_path}...")
        data = loader.load_file(snapshot_path)
        input_file = Path(snapshot_path).name

    if data.skipped_records:
        log(f"[!] Skipped {data.skipped_records} malformed record(s)")

    blueprints = data.blueprints()
    if entities:
        wanted = {e.lower() for e in entities}
        blueprints = [b for b in blueprints if b.logical_name in wanted]

    log(f"[+] Environment '{data.environment}': {len(blueprints)} entities, "
        f"{len(data.plugins)} plugin steps, {len(data.flows)} flows, "
        f"{len(data.business_rules)} business rules, {len(data.classic_workflows)} classic workflows")

    # Step 2 + 3: Pipelines and risks
    log("[*] Reconstructing execution pipelines...")
    builder = PipelineBuilder()
    risk_analyzer = RiskAnalyzer(tracery_config.analysis)

    for blueprint in blueprints:
        blueprint.pipelines = builder.build_all(blueprint)
        for pipeline in blueprint.pipelines.values():
            risk_analyzer.attach(pipeline)

    pipeline_count = sum(len(b.pipelines) for b in blueprints)
    log(f"[+] Built {pipeline_count} pipelines")

    # Step 4: External dependencies (whole scope)
    log("[*] Aggregating external dependencies...")
    endpoints = DependencyAggregator(tracery_config.trust).aggregate(data.flows, data.web_resources)
    log(f"[+] Found {len(endpoints)} external endpoints")

    # Step 5: Cross-entity links
    log("[*] Mapping cross-entity automation...")
    mapper = CrossEntityMapper()
    links = mapper.map(blueprints)
    entity_graph = mapper.build_graph(links)
    log(f"[+] Found {len(links)} cross-entity links")

    cycles = entity_graph.find_cycles()
    if cycles:
        log(f"[!] {len(cycles)} automation cycle(s) between entities")

    # Step 6: Migration
    advisor = MigrationAdvisor()
    recommendations = {
        workflow.id: advisor.analyze(workflow)
        for blueprint in blueprints
        for workflow in blueprint.classic_workflows
    }
    if recommendations:
        log(f"[+] Assessed {len(recommendations)} classic workflows for migration")

    # Step 7: Report
    log("[*] Generating report...")
    report_builder = ReportBuilder(tracery_config.output.output_dir, tracery_config.output)
    result = report_builder.build_report(
        blueprints=blueprints,
        external_endpoints=endpoints,
        cross_entity_links=links,
        migration_recommendations=recommendations,
        business_process_flows=data.business_process_flows,
        web_resources=data.web_resources,
        entity_graph=entity_graph,
        environment=data.environment,
        input_file=input_file,
    )

    log(f"[+] Risk distribution: Critical={result.critical_risks}, High={result.high_risks}, "
        f"Medium={result.medium_risks}, Low={result.low_risks}")
    if result.report_path:
        log(f"[+] Report saved to {result.report_path}")
    log("[+] Analysis complete!")

    return result


def _build_config(
    config: Optional[Union[dict, TraceryConfig]],
    output_dir: Optional[str]
) -> TraceryConfig:
    """Build TraceryConfig from a dictionary or an existing config.

    Without a config the global default is used. An explicit output_dir
    overrides the configured one on a copy, never on the caller's object.
    """
    if isinstance(config, TraceryConfig):
        tracery_config = replace(config)
    elif config:
        tracery_config = TraceryConfig.from_dict(config)
    else:
        tracery_config = replace(get_config())

    if output_dir:
        output = tracery_config.output
        tracery_config.output = OutputConfig(
            output_dir=output_dir,
            generate_json=output.generate_json,
            report_filename=output.report_filename,
        )

    return tracery_config
