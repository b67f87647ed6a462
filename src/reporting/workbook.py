"""
Transform processing results into the reconciliation workbook.

Each case row expands according to its relationship:

    OneToOne   one row
    OneToMany  one row per delivery, all sharing the single prepayment
    ManyToOne  one row per prepayment, all sharing the single delivery

The sheet carries a business header row followed by a technical header
row naming the source field of each column.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
from openpyxl import Workbook

from ..synthesis.models import Relationship
from ..utils.config import LOCAL_CURRENCY
from .processing_results import VALUE_SEPARATOR

logger = logging.getLogger(__name__)

SHEET_TITLE = "Transformed Data"
DELIVERY_LINE_ITEM = "10"
LINE_ITEM_STEP = 10

WORKBOOK_COLUMNS = [
    "Reference Number (Prepayment SO)",
    "Sold to Party",
    "Prepayment SO Number",
    "Prepayment SO Line Item Number",
    "Prepayment SO Amount",
    "Prepayment SO Currency",
    "Billing Document (Prepayment Tax Invoice)",
    "Reference Number (Delivery SO)",
    "Delivery SO Number",
    "Delivery SO Line Item Number",
    "Delivery SO Amount",
    "Delivery SO Currency",
    "Amount to Apply",
    "Sales Organization",
    "Data Source",
    "Assigned Case",
    "Assigned Scenario",
    "Number Of Case",
]

TECHNICAL_HEADERS = [
    "I_Salesdocument-YY1_PrepaymentReqNum",
    "I_Salesdocument - Soldtoparty",
    "I_Salesdocument-Salesdocument",
    "I_Salesdocumentitem-Salesdocumentitem",
    "I_Salesdocumentitem-Netamount",
    "I_Salesdocument-Currency",
    "I_Billingdocument-Billingdocument",
    "I_Salesdocument-YY1_PrepaymentReqNum",
    "I_Salesdocument-Salesdocument",
    "I_Salesdocumentitem-Salesdocumentitem",
    "I_Salesdocumentitem-Netamount",
    "I_Salesdocument-Currency",
    "Customzed field (refer to field I_Salesdocumentitem-Netamount)",
    "I_Salesdocument-SALESORGANIZATION",
    "Data Source",
    "Assigned Case",
    "Assigned Scenario",
    "Number Of Case",
]


def split_cell(value: Any) -> List[str]:
    """Split a joined cell back into its values ([''] for an empty cell)."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return [""]
    text = str(value)
    if not text:
        return [""]
    return [part.strip() for part in text.split(VALUE_SEPARATOR.strip())]


def _at(values: List[str], index: int) -> str:
    return values[index] if index < len(values) else ""


def _line_item(record_index: str) -> str:
    try:
        return str(int(record_index) * LINE_ITEM_STEP)
    except (TypeError, ValueError):
        return ""


class WorkbookTransformer:
    """Reshapes processing-result rows into workbook rows."""

    def __init__(
        self,
        currency_type: str = LOCAL_CURRENCY,
        company_currencies: Optional[Dict[str, str]] = None,
        sold_to_parties: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            currency_type: 'Local' for company currencies, otherwise a currency code
            company_currencies: company code -> local currency
            sold_to_parties: company code -> sold-to party
        """
        self.currency_type = currency_type
        self.company_currencies = company_currencies or {}
        self.sold_to_parties = sold_to_parties or {}

    def currency_for(self, company_code: str) -> str:
        if self.currency_type == LOCAL_CURRENCY:
            return self.company_currencies.get(company_code, "USD")
        return self.currency_type.upper()

    def sold_to_party_for(self, company_code: str) -> str:
        return self.sold_to_parties.get(company_code, "Unknown")

    def transform_row(self, row: Dict[str, Any]) -> List[Dict[str, str]]:
        """Expand one processing-results row."""
        company_code = str(row.get("Company Code", "") or "")
        scenario = str(row.get("Assigned Scenario", "") or "")

        generated_refs = split_cell(row.get("Generated Prepayment Request Number"))
        delivery_amounts = split_cell(row.get("ZFSN"))
        delivery_orders = split_cell(row.get("TransactionOrderNumbers"))
        so_numbers = split_cell(row.get("SO Number"))
        billing_numbers = split_cell(row.get("Billing Number"))
        amounts = split_cell(row.get("Amount"))
        prepayment_refs = split_cell(row.get("Original Prepayment Request Number"))
        record_indices = split_cell(row.get("Record Index"))

        currency = self.currency_for(company_code)
        base = {
            "Sold to Party": self.sold_to_party_for(company_code),
            "Prepayment SO Currency": currency,
            "Delivery SO Currency": currency,
            "Delivery SO Line Item Number": DELIVERY_LINE_ITEM,
            "Sales Organization": company_code,
            "Data Source": str(row.get("Data Source", "") or ""),
            "Assigned Case": str(row.get("Assigned Case", "") or ""),
            "Assigned Scenario": scenario,
            "Number Of Case": (
                "1" if scenario == Relationship.ONE_TO_ONE.value
                else str(row.get("OneToMany Number", "") or "")
            ),
        }

        def prepayment_side(i: int) -> Dict[str, str]:
            return {
                "Reference Number (Prepayment SO)": _at(prepayment_refs, i),
                "Prepayment SO Number": _at(so_numbers, i),
                "Prepayment SO Line Item Number": _line_item(_at(record_indices, i)),
                "Prepayment SO Amount": _at(amounts, i),
                "Billing Document (Prepayment Tax Invoice)": _at(billing_numbers, i),
            }

        def delivery_side(i: int) -> Dict[str, str]:
            amount = _at(delivery_amounts, i)
            return {
                "Reference Number (Delivery SO)": _at(generated_refs, i),
                "Delivery SO Number": _at(delivery_orders, i),
                "Delivery SO Amount": amount,
                "Amount to Apply": amount,
            }

        if scenario == Relationship.ONE_TO_ONE.value:
            return [{**base, **prepayment_side(0), **delivery_side(0)}]

        if scenario == Relationship.ONE_TO_MANY.value:
            count = max(len(generated_refs), len(delivery_amounts), len(delivery_orders))
            return [{**base, **prepayment_side(0), **delivery_side(i)} for i in range(count)]

        if scenario == Relationship.MANY_TO_ONE.value:
            try:
                count = int(row.get("OneToMany Number") or 0)
            except (TypeError, ValueError):
                count = 0
            if count <= 0:
                count = max(
                    len(prepayment_refs),
                    len(so_numbers),
                    len(billing_numbers),
                    len(amounts),
                    len(record_indices),
                )
            rows = []
            for i in range(count):
                rows.append({
                    **base,
                    **prepayment_side(i),
                    **delivery_side(0),
                    "Number Of Case": str(count),
                })
            return rows

        logger.warning("Skipping row with unknown scenario %r", scenario)
        return []

    def transform(self, results: pd.DataFrame) -> pd.DataFrame:
        """Expand every row; rows without a company code are skipped."""
        rows: List[Dict[str, str]] = []
        for row in results.to_dict("records"):
            if not row.get("Company Code"):
                continue
            rows.extend(self.transform_row(row))
        return pd.DataFrame(rows, columns=WORKBOOK_COLUMNS).fillna("")


def write_workbook(rows: pd.DataFrame, path: Path) -> Path:
    """Write the transformed rows under the two header rows."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SHEET_TITLE
    sheet.append(WORKBOOK_COLUMNS)
    sheet.append(TECHNICAL_HEADERS)
    for record in rows.to_dict("records"):
        sheet.append([record.get(col, "") for col in WORKBOOK_COLUMNS])

    workbook.save(path)
    logger.info("Wrote %d workbook rows to %s", len(rows), path)
    return path


def scenario_breakdown(rows: pd.DataFrame) -> Dict[str, int]:
    """Row counts per scenario."""
    if rows.empty:
        return {}
    return rows["Assigned Scenario"].value_counts().to_dict()
