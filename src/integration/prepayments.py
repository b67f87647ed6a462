"""
PrepaymentRunner: Create the prepayment sales orders deliveries refer to.

Per company: one initial prepayment opens a sales order, then the
configured number of additional prepayments are posted on that same
sales order. Every successful response with a billing number is
tracked and the tracking file is rewritten immediately.
"""

import json
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..synthesis.identifier_mint import IdentifierMint
from ..utils.config import HarnessConfig, LOCAL_CURRENCY
from ..utils.errors import ConfigError, HarnessError, SubmissionError
from .responses import PrepaymentReceipt
from .templates import TemplateProvider, apply_sales_order_number, build_prepayment_payload

logger = logging.getLogger(__name__)


@dataclass
class PrepaymentOutcome:
    """One prepayment submission."""
    iteration: int  # 0 for the initial prepayment
    request_number: str
    sfid: str
    amount: int
    so_number: Optional[str] = None
    billing_number: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iteration": self.iteration,
            "uniqueString": self.request_number,
            "SFID": self.sfid,
            "amount": self.amount,
            "soNumber": self.so_number,
            "billingNumber": self.billing_number,
            "error": self.error,
        }


class PrepaymentTracker:
    """
    Sales order and billing numbers per company.

    Layout: {company: {"SoNumber": ..., "Records": [{"BillingNumber",
    "PrepaymentRequestnumber", "Amount"}]}}. Starts empty every run.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self.entries: Dict[str, Dict[str, Any]] = {}

    def record(
        self,
        company_code: str,
        receipt: PrepaymentReceipt,
        request_number: str,
        amount,
    ) -> None:
        if not receipt.so_number:
            return

        entry = self.entries.setdefault(
            company_code,
            {"SoNumber": receipt.so_number, "Records": []},
        )
        if receipt.billing_number:
            entry["Records"].append({
                "BillingNumber": receipt.billing_number,
                "PrepaymentRequestnumber": request_number,
                "Amount": amount,
            })
        self.save()

    def save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self.entries, f, indent=2)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return self.entries


class PrepaymentRunner:
    """Creates initial and additional prepayments for every configured company."""

    def __init__(
        self,
        config: HarnessConfig,
        templates: TemplateProvider,
        client: Any,
        mint: IdentifierMint,
        tracker: PrepaymentTracker,
        output_dir: Optional[Path] = None,
        random_seed: Optional[int] = None,
    ):
        """
        Args:
            config: Harness configuration
            templates: Prepayment template provider
            client: Object with submit(payload) -> PrepaymentReceipt
            mint: Identifier mint shared with the delivery step
            tracker: Where sales order / billing numbers are recorded
            output_dir: If set, submitted payloads are saved under it
            random_seed: Seed for net amounts
        """
        self.config = config
        self.templates = templates
        self.client = client
        self.mint = mint
        self.tracker = tracker
        self.output_dir = Path(output_dir) if output_dir else None
        self.rng = random.Random(random_seed)

    def random_net_amount(self) -> int:
        bounds = self.config.net_amount
        return self.rng.randint(bounds.min, bounds.max)

    def _new_identity(self, company_code: str) -> Tuple[str, str]:
        request_number = self.mint.mint(self.config.prepayment_id_length)
        return request_number, f"TEST{company_code}{request_number}"

    def _save_payload(self, company_code: str, currency_type: str, name: str, payload: Dict[str, Any]) -> None:
        if self.output_dir is None:
            return
        folder = self.output_dir / company_code / currency_type.lower()
        folder.mkdir(parents=True, exist_ok=True)
        with open(folder / f"{name}.json", "w") as f:
            json.dump(payload, f, indent=2)

    def create_initial(
        self,
        company_code: str,
        currency_type: str,
    ) -> Tuple[PrepaymentOutcome, Dict[str, Any]]:
        """
        Post the initial prepayment.

        Returns the outcome and the submitted document with the new sales
        order number propagated into it, which seeds the additional
        prepayments.

        Raises:
            TemplateNotFoundError: if the company has no template
            SubmissionError: if the submission fails
        """
        template = self.templates.load(company_code)
        request_number, sfid = self._new_identity(company_code)
        amount = self.random_net_amount()

        payload = build_prepayment_payload(
            template, company_code, request_number, amount, currency_type,
        )
        self._save_payload(company_code, currency_type, f"initial_{currency_type.lower()}", payload)

        receipt = self.client.submit(payload)
        logger.info("%s %s initial prepayment: SO=%s billing=%s",
                    company_code, currency_type, receipt.so_number, receipt.billing_number)
        self.tracker.record(company_code, receipt, request_number, amount)

        if receipt.so_number:
            apply_sales_order_number(payload, receipt.so_number)

        outcome = PrepaymentOutcome(
            iteration=0,
            request_number=request_number,
            sfid=sfid,
            amount=amount,
            so_number=receipt.so_number,
            billing_number=receipt.billing_number,
        )
        return outcome, payload

    def create_additional(
        self,
        company_code: str,
        base_document: Dict[str, Any],
        currency_type: str,
        count: int,
    ) -> List[PrepaymentOutcome]:
        """Post count more prepayments on the initial sales order; failures are recorded, not raised."""
        outcomes = []
        for i in range(count):
            request_number, sfid = self._new_identity(company_code)
            amount = self.random_net_amount()
            payload = build_prepayment_payload(
                base_document, company_code, request_number, amount, currency_type,
                include_billing_plan=False,
            )
            outcome = PrepaymentOutcome(
                iteration=i + 1,
                request_number=request_number,
                sfid=sfid,
                amount=amount,
            )
            try:
                receipt = self.client.submit(payload)
            except SubmissionError as exc:
                outcome.error = str(exc)
                logger.warning("%s %s prepayment %d failed: %s", company_code, currency_type, i + 1, exc)
                outcomes.append(outcome)
                continue

            logger.info("%s %s prepayment %d: SO=%s billing=%s",
                        company_code, currency_type, i + 1, receipt.so_number, receipt.billing_number)
            self.tracker.record(company_code, receipt, request_number, amount)
            outcome.so_number = receipt.so_number
            outcome.billing_number = receipt.billing_number
            self._save_payload(company_code, currency_type, str(i + 1), payload)
            outcomes.append(outcome)
        return outcomes

    def additional_count(self, company_code: str, currency_type: str) -> int:
        company = self.config.companies.get(company_code)
        count = company.prepayments.get(currency_type) if company else None
        if count is None:
            raise ConfigError(f"{currency_type} count not found for company code: {company_code}")
        return count

    def run(self, currency_type: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
        """
        Create prepayments for every configured company.

        A fatal error for one company (missing template, missing count,
        failed initial submission) is logged and the next company proceeds.
        """
        currency_type = currency_type or self.config.prepayment_currency or LOCAL_CURRENCY
        results: Dict[str, Dict[str, Any]] = {}

        for company_code in self.config.companies:
            try:
                count = self.additional_count(company_code, currency_type)
                initial, document = self.create_initial(company_code, currency_type)
                additional = self.create_additional(company_code, document, currency_type, count)
            except HarnessError as exc:
                logger.error("Error processing company %s: %s", company_code, exc)
                results[company_code] = {"error": str(exc)}
                continue

            results[company_code] = {
                "initial": initial.to_dict(),
                "multiple": [o.to_dict() for o in additional],
            }

        return results
