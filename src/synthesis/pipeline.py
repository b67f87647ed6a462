"""
DeliveryPipeline: Run every delivery case for every company.

Companies are independent units: a fatal error for one (missing
template, exhausted identifier space) is logged and the next company
proceeds. Cases it finished before the error are kept in the results.
Cases and their cycles run strictly one after another.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from ..integration.templates import TemplateProvider
from ..utils.errors import HarnessError
from .case_processor import CaseProcessor, CompanyContext
from .models import CaseInput, CaseResult

logger = logging.getLogger(__name__)


def load_delivery_input(path: Path) -> Dict[str, Any]:
    """Read the delivery input document ({company: {"Records": [...]}})."""
    with open(path, "r") as f:
        return json.load(f)


class DeliveryPipeline:
    """Drives CaseProcessor over the delivery input document."""

    def __init__(
        self,
        processor: CaseProcessor,
        templates: TemplateProvider,
        output_dir: Optional[Path] = None,
        show_progress: bool = True,
    ):
        self.processor = processor
        self.templates = templates
        self.output_dir = Path(output_dir) if output_dir else None
        self.show_progress = show_progress

        self.results: List[CaseResult] = []
        self.company_results: Dict[str, List[Dict[str, Any]]] = {}
        self.failed_companies: Dict[str, str] = {}

    def run(self, delivery_input: Dict[str, Any]) -> List[CaseResult]:
        """Process every company and return all case results in order."""
        logger.info("Processing delivery data for companies: %s", ", ".join(delivery_input))

        for company_code, company_data in delivery_input.items():
            case_results: List[CaseResult] = []
            try:
                self.run_company(company_code, company_data or {}, case_results)
            except HarnessError as exc:
                logger.error("Error processing company %s: %s", company_code, exc)
                self.failed_companies[company_code] = str(exc)

            # Cases finished before a fatal error were already submitted; keep them.
            if case_results:
                self.results.extend(case_results)
                self.company_results[company_code] = [r.to_summary() for r in case_results]
                self._write_payloads(company_code, case_results)

        return self.results

    def run_company(
        self,
        company_code: str,
        company_data: Dict[str, Any],
        results: Optional[List[CaseResult]] = None,
    ) -> List[CaseResult]:
        """Process one company's cases, appending each result to results as it finishes."""
        if results is None:
            results = []
        template = self.templates.load(company_code)
        company = CompanyContext(company_code=company_code, template=template)
        cases = [CaseInput.from_dict(c) for c in company_data.get("Records", []) or []]
        logger.info("%s: found %d test case(s)", company_code, len(cases))

        for case_input in tqdm(
            cases,
            desc=company_code,
            unit="case",
            disable=not self.show_progress,
        ):
            result = self.processor.process(case_input, company)
            logger.info(
                "Case %s: generated %d JSON(s), TransactionOrderNumbers: %s",
                case_input.label,
                len(result.payloads),
                ", ".join(result.correlation_markers),
            )
            results.append(result)
        return results

    def _write_payloads(self, company_code: str, results: List[CaseResult]) -> None:
        if self.output_dir is None:
            return
        self.output_dir.mkdir(parents=True, exist_ok=True)
        payloads = [p for r in results for p in r.payloads]
        path = self.output_dir / f"{company_code}_generated.json"
        with open(path, "w") as f:
            json.dump(payloads, f, indent=2)
        logger.info("%s: %d JSON payload(s) written to %s", company_code, len(payloads), path)

    def summary(self, total_companies: Optional[int] = None) -> Dict[str, Any]:
        """Overall run summary."""
        sent = sum(len(r.outcomes) for r in self.results)
        successful = sum(r.success_count for r in self.results)
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "totalCompaniesProcessed": (
                total_companies if total_companies is not None
                else len(set(self.company_results) | set(self.failed_companies))
            ),
            "totalJsonsCreated": sum(len(r.payloads) for r in self.results),
            "totalRequestsSent": sent,
            "totalSuccessfulRequests": successful,
            "totalFailedRequests": sent - successful,
            "failedCompanies": self.failed_companies,
            "companiesResults": self.company_results,
        }

    def write_summary(self, path: Path) -> Dict[str, Any]:
        summary = self.summary()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(summary, f, indent=2)
        return summary

    @property
    def all_failed(self) -> bool:
        return bool(self.failed_companies) and not self.company_results
