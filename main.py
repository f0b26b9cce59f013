#!/usr/bin/env python3
"""
Survey Grading Agent - CLI Entry Point

A LangGraph-based agent that grades CCTV sewer survey sections against
MSCC5, splits mixed service/structural sections, prices the work and
reports gaps in the item numbering.

Usage:
    # Grade a survey export
    python main.py ./surveys/GR7188.csv ./output

    # With pricing
    python main.py ./surveys/GR7188.csv ./output --pricing ./config/pricing.yaml --sector utilities

    # Show workflow visualization
    python main.py --show-graph

Environment (.env supported):
    SURVEY_SECTOR            Default sector (default: utilities)
    SURVEY_PRICING_CONFIG    Default pricing YAML
    SURVEY_RULES_FILE        Rule table YAML replacing the built-in table
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from datetime import datetime

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from version import __version__, APP_NAME
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description=f"{APP_NAME} - Grade CCTV sewer surveys against MSCC5",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ./surveys/GR7188.csv ./output
  %(prog)s ./surveys/GR7188.csv ./output --pricing ./config/pricing.yaml
  %(prog)s ./surveys/GR7188.csv ./output --sector highways --parallel
  %(prog)s --show-graph
        """
    )

    parser.add_argument(
        "input_path",
        nargs="?",
        help="Survey CSV export (one row per observation)"
    )

    parser.add_argument(
        "output_path",
        nargs="?",
        help="Directory for output reports"
    )

    parser.add_argument(
        "--pricing", "-p",
        default=os.getenv("SURVEY_PRICING_CONFIG"),
        help="Pricing YAML (default: $SURVEY_PRICING_CONFIG, else ./config/pricing.yaml if present)"
    )

    parser.add_argument(
        "--no-pricing",
        action="store_true",
        help="Skip pricing; all costs are left empty"
    )

    parser.add_argument(
        "--rules",
        default=os.getenv("SURVEY_RULES_FILE"),
        help="Rule table YAML replacing the built-in MSCC5 table"
    )

    parser.add_argument(
        "--sector", "-s",
        default=os.getenv("SURVEY_SECTOR", "utilities"),
        help="Sector used to select pricing (default: utilities)"
    )

    parser.add_argument(
        "--upload-id",
        default=None,
        help="Upload identifier used in report names (default: input file name)"
    )

    parser.add_argument(
        "--parallel",
        action="store_true",
        default=False,
        help="Grade sections on a thread pool"
    )

    parser.add_argument(
        "--show-graph",
        action="store_true",
        help="Show workflow graph visualization and exit"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging"
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.show_graph:
        from pipeline import get_workflow_visualization
        print(get_workflow_visualization())
        return 0

    if not args.input_path or not args.output_path:
        parser.error("input_path and output_path are required (unless using --show-graph)")

    input_path = Path(args.input_path).resolve()
    output_path = Path(args.output_path).resolve()

    if not input_path.exists():
        logger.error(f"Input path does not exist: {input_path}")
        return 1

    pricing_path = None
    if not args.no_pricing:
        pricing_path = args.pricing
        if not pricing_path:
            default_pricing = Path(__file__).parent / "config" / "pricing.yaml"
            if default_pricing.exists():
                pricing_path = str(default_pricing)
                logger.info(f"Using default pricing: {pricing_path}")

    output_path.mkdir(parents=True, exist_ok=True)

    from mscc5.rule_table import rules_version

    print("\n" + "=" * 60)
    print(f"  {APP_NAME} v{__version__}")
    print("  MSCC5 grading, splitting & pricing")
    print("=" * 60)
    print(f"  Input:    {input_path}")
    print(f"  Output:   {output_path}")
    print(f"  Sector:   {args.sector}")
    print(f"  Rules:    {args.rules or rules_version()}")
    print(f"  Parallel: {'Enabled' if args.parallel else 'Disabled'}")
    print(f"  Pricing:  {pricing_path or 'None (costs left empty)'}")
    print("=" * 60 + "\n")

    try:
        from pipeline import run_survey_workflow

        start_time = datetime.now()

        result = run_survey_workflow(
            input_path=str(input_path),
            output_path=str(output_path),
            pricing_config_path=pricing_path,
            rules_path=args.rules,
            sector=args.sector,
            upload_id=args.upload_id,
            parallel=args.parallel
        )

        duration = (datetime.now() - start_time).total_seconds()

        if result.get("failed"):
            print("\n" + "=" * 60)
            print("  BATCH ABORTED")
            print("=" * 60)
            print(f"  {result.get('last_error')}")
            print()
            return 1

        summary = result.get("summary") or {}

        print("\n" + "=" * 60)
        print("  PROCESSING COMPLETE")
        print("=" * 60)
        print(f"  Sections:        {summary.get('sections', 0)}")
        print(f"  Report rows:     {summary.get('rows', 0)}")
        print(f"  Service rows:    {summary.get('service_rows', 0)}")
        print(f"  Structural rows: {summary.get('structural_rows', 0)}")
        print(f"  Not adoptable:   {summary.get('not_adoptable', 0)}")
        print(f"  Total Estimate:  £{float(summary.get('total_cost', 0)):,.2f}")
        print(f"  Duration:        {duration:.1f} seconds")
        print("=" * 60)

        if result.get("skipped_items"):
            print(f"\n  Items skipped due to source deletion: {result['skipped_items']}")

        warnings = result.get("warnings") or []
        if warnings:
            print(f"\n  Warnings ({len(warnings)}):")
            for w in warnings[:20]:
                print(f"    - {w.message}")
            if len(warnings) > 20:
                print(f"    ... {len(warnings) - 20} more in the JSON report")

        print(f"\n  Reports saved to: {output_path}")
        print()
        return 0

    except ImportError as e:
        logger.error(f"Missing dependency: {e}")
        logger.error("Run: pip install -e .")
        return 1
    except Exception as e:
        logger.exception(f"Workflow failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
