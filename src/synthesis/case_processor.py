"""
CaseProcessor: Run one delivery case end to end.

Resolve identifiers -> resolve amounts -> submit each cycle in order ->
aggregate. Cycles are strictly sequential; a failed cycle is recorded
and the remaining cycles still run.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from ..integration.templates import build_delivery_payload
from ..utils.errors import SubmissionError
from .amount_allocator import AmountAllocator, Number, total_of
from .case_interpreter import CaseInterpreter
from .identifier_mint import IdentifierMint
from .models import (
    CaseDescriptor,
    CaseInput,
    CaseResult,
    CycleOutcome,
    CycleStatus,
    FanoutPlan,
    IdentifierReuse,
    Relationship,
)

logger = logging.getLogger(__name__)

TEST_ID_PREFIX = "Delvr_"
DEFAULT_REQUEST_DELAY = 0.1


@dataclass
class CompanyContext:
    """Per-company data shared by all cases of that company."""
    company_code: str
    template: Dict[str, Any]


def make_test_id(descriptor: CaseDescriptor, identifier: str, index: int) -> str:
    """Test id stamped on a delivery; falls back to the relationship name when there is no identifier."""
    if descriptor.scenario == Relationship.ONE_TO_MANY:
        return f"{TEST_ID_PREFIX}{identifier or 'OneToMany'}_{index + 1}"
    if descriptor.scenario == Relationship.MANY_TO_ONE:
        return f"{TEST_ID_PREFIX}{identifier or 'ManyToOne'}"
    return f"{TEST_ID_PREFIX}{identifier or f'OneToOne_{index + 1}'}"


class CaseProcessor:
    """Expands a case into submission cycles and collects their outcomes."""

    def __init__(
        self,
        interpreter: CaseInterpreter,
        allocator: AmountAllocator,
        mint: IdentifierMint,
        submitter: Any,
        exact_equality: bool = False,
        identifier_length: int = 9,
        request_delay: float = DEFAULT_REQUEST_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the processor.

        Args:
            interpreter: Label decoder / fan-out planner
            allocator: Delivery amount allocator
            mint: Identifier mint for DiffPrepayment cases
            submitter: Object with submit(payload) -> SubmissionReceipt
            exact_equality: Under-delivery amounts must sum to the total
            identifier_length: Length of freshly minted request numbers
            request_delay: Pause after each submission, in seconds
            sleep: Sleep function (replaced in tests)
        """
        self.interpreter = interpreter
        self.allocator = allocator
        self.mint = mint
        self.submitter = submitter
        self.exact_equality = exact_equality
        self.identifier_length = identifier_length
        self.request_delay = request_delay
        self._sleep = sleep

    def resolve_identifiers(self, plan: FanoutPlan, original_identifiers: List[str]) -> List[str]:
        """One prepayment request number per cycle, following the reuse pattern."""
        if plan.reuse == IdentifierReuse.EMPTY_FOR_ALL:
            return [""] * plan.cycles
        if plan.reuse == IdentifierReuse.UNIQUE_PER_CYCLE:
            return self.mint.mint_many(plan.cycles, self.identifier_length)
        first = original_identifiers[0] if original_identifiers else ""
        return [first] * plan.cycles

    def resolve_amounts(self, descriptor: CaseDescriptor, plan: FanoutPlan, total: Number) -> List[Number]:
        amounts = self.allocator.allocate(
            direction=descriptor.direction,
            relationship=descriptor.relationship,
            total=total,
            cycles=plan.cycles,
            exact_equality=self.exact_equality,
        )
        # The fallback allocation is a single value; repeat it so every cycle has an amount.
        if len(amounts) < plan.cycles:
            amounts = amounts + [amounts[-1]] * (plan.cycles - len(amounts))
        return amounts[: plan.cycles]

    def process(self, case_input: CaseInput, company: CompanyContext) -> CaseResult:
        """
        Process one case.

        Args:
            case_input: Case label and the prepayment records it refers to
            company: Company code and delivery template

        Returns:
            CaseResult with exactly plan.cycles outcomes
        """
        descriptor, plan = self.interpreter.interpret(case_input.label, len(case_input.records))
        identifiers = self.resolve_identifiers(plan, case_input.original_identifiers)
        amounts = self.resolve_amounts(descriptor, plan, total_of(case_input.amounts))

        logger.info(
            "Case %s: scenario=%s type=%s cycles=%d amounts=%s",
            descriptor.label,
            descriptor.scenario_name,
            descriptor.case_type,
            plan.cycles,
            ", ".join(str(a) for a in amounts),
        )

        result = CaseResult(
            company_code=company.company_code,
            case_input=case_input,
            descriptor=descriptor,
            plan=plan,
            identifiers=identifiers,
            amounts=amounts,
        )

        for index in range(plan.cycles):
            identifier = identifiers[index]
            amount = amounts[index]
            test_id = make_test_id(descriptor, identifier, index)
            payload = build_delivery_payload(company.template, identifier, amount, test_id)
            result.payloads.append(payload)
            result.outcomes.append(self._submit_cycle(index, identifier, amount, test_id, payload))

        return result

    def _submit_cycle(
        self,
        index: int,
        identifier: str,
        amount: Number,
        test_id: str,
        payload: Dict[str, Any],
    ) -> CycleOutcome:
        outcome = CycleOutcome(
            index=index,
            identifier=identifier,
            amount=amount,
            test_id=test_id,
            status=CycleStatus.ERROR,
        )
        try:
            receipt = self.submitter.submit(payload)
        except SubmissionError as exc:
            outcome.error = str(exc)
            logger.warning("Failed: %s - %s", test_id, exc)
            return outcome

        if receipt is not None and receipt.correlation_id:
            outcome.status = CycleStatus.SUCCESS
            outcome.correlation_id = receipt.correlation_id
            outcome.line_correlation_id = receipt.line_correlation_id
            logger.info("Success: %s - TransactionOrderNumber: %s", test_id, receipt.correlation_id)
        else:
            outcome.status = CycleStatus.NO_CORRELATION_ID
            logger.warning("Success but no TransactionOrderNumber: %s", test_id)

        if self.request_delay > 0:
            self._sleep(self.request_delay)
        return outcome
