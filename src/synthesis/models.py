"""
Data models for delivery case synthesis.

A case label names a relationship shape, a sub-scenario and a delivery
direction. It decodes into a CaseDescriptor, expands into a FanoutPlan,
and ends up as a CaseResult holding one CycleOutcome per submission.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


NO_CORRELATION_MARKER = "NO_TRANSACTION_NUMBER"
ERROR_MARKER = "ERROR"


class Relationship(Enum):
    """Cardinality between prepayments and deliveries."""
    ONE_TO_ONE = "OneToOne"
    ONE_TO_MANY = "OneToMany"      # one prepayment, several deliveries
    MANY_TO_ONE = "ManyToOne"      # several prepayments, one delivery
    UNRECOGNIZED = "Unrecognized"  # behaves like an amount-preserving OneToOne


class SubScenario(Enum):
    """Controls which prepayment request number the deliveries carry."""
    HAPPY = "Happy"
    NO_PREPAYMENT = "NoPrepayment"
    DIFF_PREPAYMENT = "DiffPrepayment"


class Direction(Enum):
    """Whether delivered amounts fall below or above the prepaid total."""
    UNDER_DELIVERY = "UnderDelivery"
    OVER_DELIVERY = "OverDelivery"


class IdentifierReuse(Enum):
    """Identifier pattern applied across the cycles of one case."""
    SAME_FOR_ALL = "same_identifier_for_all"
    EMPTY_FOR_ALL = "empty_identifier_for_all"
    UNIQUE_PER_CYCLE = "unique_identifier_per_cycle"


class CycleStatus(Enum):
    """Outcome of a single submission."""
    SUCCESS = "success"
    NO_CORRELATION_ID = "no_correlation_id"
    ERROR = "error"


@dataclass(frozen=True)
class CaseDescriptor:
    """Structured decode of a case label."""
    label: str
    relationship: Relationship
    sub_scenario: SubScenario
    direction: Optional[Direction]

    @property
    def is_recognized(self) -> bool:
        return self.relationship != Relationship.UNRECOGNIZED and self.direction is not None

    @property
    def scenario(self) -> Relationship:
        """Relationship the case runs as; anything unrecognized runs as OneToOne."""
        if not self.is_recognized:
            return Relationship.ONE_TO_ONE
        return self.relationship

    @property
    def scenario_name(self) -> str:
        return self.scenario.value

    @property
    def case_type(self) -> str:
        """Direction-first case name, e.g. 'UnderDelivery-Happy'."""
        if self.direction is None:
            return self.sub_scenario.value
        return f"{self.direction.value}-{self.sub_scenario.value}"


@dataclass(frozen=True)
class FanoutPlan:
    """How many cycles a case expands into and how identifiers are reused."""
    cycles: int
    reuse: IdentifierReuse


@dataclass
class PrepaymentRecord:
    """A known prepayment line a delivery case refers to."""
    request_number: str
    amount: float
    billing_number: str = ""
    so_number: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrepaymentRecord":
        """Parse the tracking/input representation."""
        amount = data.get("Amount", 0)
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            amount = 0.0
        if amount.is_integer():
            amount = int(amount)
        return cls(
            request_number=str(data.get("PrepaymentRequestnumber", "") or ""),
            amount=amount,
            billing_number=str(data.get("BillingNumber", "") or ""),
            so_number=str(data.get("SoNumber", "") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "PrepaymentRequestnumber": self.request_number,
            "Amount": self.amount,
            "BillingNumber": self.billing_number,
            "SoNumber": self.so_number,
        }


@dataclass
class CaseInput:
    """A case label together with the prepayment records it was assigned."""
    label: str
    records: List[PrepaymentRecord] = field(default_factory=list)

    @property
    def amounts(self) -> List[float]:
        return [r.amount for r in self.records]

    @property
    def total_amount(self) -> float:
        return sum(self.amounts)

    @property
    def original_identifiers(self) -> List[str]:
        """Distinct request numbers in first-seen order."""
        seen: List[str] = []
        for record in self.records:
            if record.request_number not in seen:
                seen.append(record.request_number)
        return seen

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CaseInput":
        return cls(
            label=str(data.get("case", "")),
            records=[PrepaymentRecord.from_dict(r) for r in data.get("record", [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case": self.label,
            "record": [r.to_dict() for r in self.records],
        }


@dataclass
class CycleOutcome:
    """Result of one submission cycle."""
    index: int
    identifier: str
    amount: float
    test_id: str
    status: CycleStatus
    correlation_id: Optional[str] = None
    line_correlation_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def marker(self) -> str:
        """Correlation id, or the marker for a missing id / failed call."""
        if self.status == CycleStatus.SUCCESS:
            return str(self.correlation_id)
        if self.status == CycleStatus.NO_CORRELATION_ID:
            return NO_CORRELATION_MARKER
        return ERROR_MARKER


@dataclass
class CaseResult:
    """
    One processed case.

    The outcome list always has one entry per planned cycle, in
    submission order, so exported rows can be matched back to cycles.
    """
    company_code: str
    case_input: CaseInput
    descriptor: CaseDescriptor
    plan: FanoutPlan
    identifiers: List[str]
    amounts: List[float]
    outcomes: List[CycleOutcome] = field(default_factory=list)
    payloads: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def correlation_markers(self) -> List[str]:
        return [o.marker for o in self.outcomes]

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status == CycleStatus.SUCCESS)

    @property
    def failure_count(self) -> int:
        return len(self.outcomes) - self.success_count

    def to_summary(self) -> Dict[str, Any]:
        """Summary used in the overall run report."""
        return {
            "caseName": self.descriptor.label,
            "scenario": self.descriptor.scenario_name,
            "caseType": self.descriptor.case_type,
            "originalData": self.case_input.to_dict(),
            "generatedJsonCount": len(self.payloads),
            "transactionOrderNumbers": ", ".join(self.correlation_markers),
        }
