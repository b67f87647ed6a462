"""
CaseAssembler: Pair generated case labels with tracked prepayments.

Produces the per-company delivery input document:

    {company: {"Records": [{"case": label, "record": [<prepayment>, ...]}]}}
"""

import logging
from typing import Any, Dict, List

from .case_interpreter import CaseInterpreter
from .models import CaseInput, PrepaymentRecord, Relationship

logger = logging.getLogger(__name__)


def tracked_records(tracking: Dict[str, Any]) -> Dict[str, List[PrepaymentRecord]]:
    """Flatten the prepayment tracking document into records per company."""
    by_company: Dict[str, List[PrepaymentRecord]] = {}
    for company_code, entry in tracking.items():
        so_number = str(entry.get("SoNumber", "") or "")
        records = []
        for raw in entry.get("Records", []) or []:
            record = PrepaymentRecord.from_dict(raw)
            if not record.so_number:
                record.so_number = so_number
            records.append(record)
        by_company[company_code] = records
    return by_company


class CaseAssembler:
    """Assigns prepayment records to every case, round-robin per company."""

    def __init__(self, interpreter: CaseInterpreter, many_to_one_records: int = 2):
        self.interpreter = interpreter
        self.many_to_one_records = max(1, many_to_one_records)

    def records_needed(self, label: str) -> int:
        descriptor = self.interpreter.decode(label)
        if descriptor.scenario == Relationship.MANY_TO_ONE:
            return self.many_to_one_records
        return 1

    def assemble(
        self,
        labels: List[str],
        records_by_company: Dict[str, List[PrepaymentRecord]],
    ) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
        """Build the delivery input document."""
        document: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}

        for company_code, records in records_by_company.items():
            if not records:
                logger.warning("No tracked prepayments for %s, skipping", company_code)
                continue

            cursor = 0
            cases = []
            for label in labels:
                picked = []
                for _ in range(self.records_needed(label)):
                    picked.append(records[cursor % len(records)])
                    cursor += 1
                cases.append(CaseInput(label=label, records=picked).to_dict())

            document[company_code] = {"Records": cases}
            logger.info("Assembled %d cases for %s", len(cases), company_code)

        return document
