"""
Node 6: Report Generation
Generates JSON and CSV survey reports from the graded, priced rows.
"""

import csv
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List

from mscc5.integrity import count_by_category
from mscc5.models import BatchResult, LogicalRow

from ..state import SurveyState

logger = logging.getLogger(__name__)


def _generate_csv_report(rows: List[LogicalRow], output_path: Path, filename_stem: str) -> str:
    """
    Generate CSV report from report rows.

    Args:
        rows: Rows in report order
        output_path: Output directory path
        filename_stem: Base filename (without extension)

    Returns:
        Path to generated CSV file
    """
    csv_path = output_path / f"{filename_stem}_rows.csv"

    fieldnames = [
        'Item No',
        'Start MH',
        'Finish MH',
        'Pipe Size',
        'Pipe Material',
        'Total Length',
        'Defect Type',
        'Severity Grade',
        'Defects',
        'Recommendation',
        'Adoptable',
        'Cost',
        'Pricing Status',
    ]

    with open(csv_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        for row in rows:
            writer.writerow({
                'Item No': row.item_label,
                'Start MH': row.start_node,
                'Finish MH': row.end_node,
                'Pipe Size': row.pipe_size if row.pipe_size else '',
                'Pipe Material': row.pipe_material,
                'Total Length': row.total_length if row.total_length is not None else '',
                'Defect Type': row.defect_type.value,
                'Severity Grade': row.severity_grade,
                'Defects': row.defects,
                'Recommendation': row.recommendation,
                'Adoptable': 'Yes' if row.adoptable else 'No',
                'Cost': str(row.cost) if row.cost is not None else '',
                'Pricing Status': row.pricing_status.value,
            })

    return str(csv_path)


def generate_report_node(state: SurveyState) -> Dict[str, Any]:
    """
    Generate JSON and CSV survey reports.

    Args:
        state: Current workflow state

    Returns:
        State updates with report_path, csv_path, summary, or last_error
    """
    output_path = state.get("output_path", "")
    upload_id = state.get("upload_id", "survey")

    if not output_path:
        logger.error("No output path specified")
        return {"last_error": "No output path specified"}

    result = BatchResult(
        rows=state.get("rows") or [],
        warnings=state.get("warnings") or [],
        rules_version=state.get("rules_version") or "",
        upload_id=upload_id,
        sector=state.get("sector"),
    )
    summary = result.summary()
    summary["skipped_items"] = state.get("skipped_items", [])
    summary["warnings_by_category"] = count_by_category(result.warnings)

    output_dir = Path(output_path)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Generating report: {summary['rows']} rows, £{result.total_cost:,.2f}")

    try:
        report_data = result.to_dict()
        report_data["summary"] = summary
        report_data["notes"] = [
            f"Source: {Path(state.get('input_path', '')).name}",
            f"Rules: {result.rules_version}",
            f"Started: {state.get('start_time')}",
        ]

        report_path = output_dir / f"{upload_id}_report.json"
        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(report_data, f, indent=2)
        logger.info(f"JSON report saved: {report_path}")

        csv_path = _generate_csv_report(result.rows, output_dir, upload_id)
        logger.info(f"CSV report saved: {csv_path}")

    except OSError as e:
        logger.error(f"Report generation failed: {e}")
        return {"last_error": f"Report generation failed: {str(e)}"}

    return {
        "report_path": str(report_path),
        "csv_path": csv_path,
        "summary": summary,
        "last_error": None,
        "end_time": datetime.now().isoformat(),
    }
