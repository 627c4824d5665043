#!/usr/bin/env python3
"""
tracery - Automation Topology & Risk Analysis
=============================================

Command-line interface for analyzing an environment snapshot.

Usage:
    # Analyze a snapshot
    tracery contoso-dev.json

    # Only some tables, custom output directory
    tracery contoso-dev.json -e account -e contact -o ./results

    # Thresholds / allow-lists from a JSON config file
    tracery contoso-dev.json --config tracery.json

Options:
    snapshot            Snapshot JSON file
    --entity, -e        Restrict analysis to an entity (repeatable)
    --output, -o        Output directory (default: ./output)
    --config, -c        JSON configuration file
    --no-json           Do not write the JSON report
    --quiet, -q         Only print the final summary
    --verbose, -v       Print the full text report

Environment Variables:
    TRACERY_OUTPUT_DIR  Default output directory
"""

import argparse
import json
import sys

from .integration.bridge import run_analysis
from .reporting.report_builder import generate_text_report
from . import __version__


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="tracery",
        description="tracery - reconstruct what automation runs, in what order, and how risky it is",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze a snapshot
  %(prog)s contoso-dev.json

  # Two tables only
  %(prog)s contoso-dev.json -e account -e contact

  # Custom output directory and full text report
  %(prog)s contoso-dev.json -o ./results -v
        """
    )

    parser.add_argument(
        "snapshot",
        help="Environment snapshot JSON file"
    )

    # Analysis options
    analysis_group = parser.add_argument_group("Analysis Options")
    analysis_group.add_argument(
        "-e", "--entity",
        action="append",
        dest="entities",
        help="Restrict pipelines to this entity logical name (repeatable)"
    )
    analysis_group.add_argument(
        "-c", "--config",
        help="JSON configuration file (analysis thresholds, trust allow-lists)"
    )

    # Output options
    output_group = parser.add_argument_group("Output")
    output_group.add_argument(
        "-o", "--output",
        default=None,
        help="Output directory for results (default: ./output)"
    )
    output_group.add_argument(
        "--no-json",
        action="store_true",
        help="Do not write the JSON report"
    )

    # General options
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only print the final summary"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Print the full text report"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"tracery {__version__}"
    )

    args = parser.parse_args(argv)

    try:
        config = {}
        if args.config:
            with open(args.config, 'r', encoding='utf-8') as f:
                config = json.load(f)

        config["verbose"] = not args.quiet
        if args.no_json:
            config.setdefault("output", {})["generate_json"] = False

        result = run_analysis(
            snapshot_path=args.snapshot,
            output_dir=args.output,
            config=config,
            entities=args.entities,
        )

        # Print summary
        print(f"\n{'='*60}")
        print("Analysis Complete")
        print(f"{'='*60}\n")

        print(f"Total Performance Risks: {result.total_risks}")
        print(f"  - Critical: {result.critical_risks}")
        print(f"  - High: {result.high_risks}")
        print(f"  - Medium: {result.medium_risks}")
        print(f"  - Low: {result.low_risks}")
        print(f"External Endpoints: {len(result.external_endpoints)}")
        print(f"Cross-Entity Links: {len(result.cross_entity_links)}")
        print(f"Classic Workflows Assessed: {len(result.migration_recommendations)}")

        if result.report_path:
            print(f"\nResults saved to:")
            print(f"  - JSON: {result.report_path}")

        if args.verbose:
            print(f"\n{'='*60}")
            print(generate_text_report(result))

        return 0

    except Exception as e:
        print(f"\n[!] Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
