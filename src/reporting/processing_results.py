"""
Processing results: one CSV row per delivery case.

Multi-valued cells (one value per record or per cycle) are joined with
", " so the workbook transform can split them back apart.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from ..synthesis.models import CaseResult, Relationship

logger = logging.getLogger(__name__)

VALUE_SEPARATOR = ", "
DATA_SOURCE = "JSON"

PROCESSING_COLUMNS = [
    "Company Code",
    "Data Source",
    "SO Number",
    "Record Index",
    "Billing Number",
    "Original Prepayment Request Number",
    "Amount",
    "Assigned Case",
    "Assigned Scenario",
    "OneToMany Number",
    "ZFSN",
    "Generated Prepayment Request Number",
    "Processed",
    "TransactionOrderNumbers",
]


def _join(values) -> str:
    return VALUE_SEPARATOR.join(str(v) for v in values)


def _fanout_column(result: CaseResult) -> Any:
    relationship = result.descriptor.scenario
    if relationship == Relationship.ONE_TO_MANY:
        return len(result.payloads)
    if relationship == Relationship.MANY_TO_ONE:
        return len(result.case_input.original_identifiers)
    return ""


def build_result_row(result: CaseResult) -> Dict[str, Any]:
    """Flatten a CaseResult into a processing-results row."""
    records = result.case_input.records
    return {
        "Company Code": result.company_code,
        "Data Source": DATA_SOURCE,
        "SO Number": _join(r.so_number for r in records),
        "Record Index": _join(range(1, len(records) + 1)),
        "Billing Number": _join(r.billing_number for r in records),
        "Original Prepayment Request Number": _join(r.request_number for r in records),
        "Amount": _join(r.amount for r in records),
        "Assigned Case": result.descriptor.case_type,
        "Assigned Scenario": result.descriptor.scenario_name,
        "OneToMany Number": _fanout_column(result),
        "ZFSN": _join(result.amounts),
        "Generated Prepayment Request Number": _join(result.identifiers),
        "Processed": True,
        "TransactionOrderNumbers": _join(result.correlation_markers),
    }


def results_frame(results: List[CaseResult]) -> pd.DataFrame:
    return pd.DataFrame([build_result_row(r) for r in results], columns=PROCESSING_COLUMNS)


def write_processing_results(results: List[CaseResult], path: Path) -> pd.DataFrame:
    """Write the processing-results CSV and return the frame written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = results_frame(results)
    df.to_csv(path, index=False)
    logger.info("Wrote %d case rows to %s", len(df), path)
    return df


def read_processing_results(path: Path) -> pd.DataFrame:
    """Read a processing-results CSV with every cell as a string."""
    return pd.read_csv(path, dtype=str, keep_default_na=False)
