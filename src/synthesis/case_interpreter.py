"""
CaseInterpreter: Decode case labels and plan their fan-out.

Labels look like 'OneToMany-DiffPrepayment-OverDelivery' or, with the
default sub-scenario, 'OneToOne-UnderDelivery'. Parsing is lenient: a
label never fails to decode, unknown parts are ignored and an unknown
relationship yields the UNRECOGNIZED variant.
"""

import logging
from typing import Dict, Tuple

from .models import (
    CaseDescriptor,
    Direction,
    FanoutPlan,
    IdentifierReuse,
    Relationship,
    SubScenario,
)

logger = logging.getLogger(__name__)

LABEL_SEPARATOR = "-"

RELATIONSHIP_KEYWORDS: Dict[str, Relationship] = {
    r.value: r for r in Relationship if r != Relationship.UNRECOGNIZED
}
DIRECTION_KEYWORDS: Dict[str, Direction] = {d.value: d for d in Direction}
SUB_SCENARIO_KEYWORDS: Dict[str, SubScenario] = {s.value: s for s in SubScenario}

REUSE_BY_SUB_SCENARIO: Dict[SubScenario, IdentifierReuse] = {
    SubScenario.HAPPY: IdentifierReuse.SAME_FOR_ALL,
    SubScenario.NO_PREPAYMENT: IdentifierReuse.EMPTY_FOR_ALL,
    SubScenario.DIFF_PREPAYMENT: IdentifierReuse.UNIQUE_PER_CYCLE,
}

DEFAULT_MAX_ONE_TO_MANY = 3
MIN_ONE_TO_MANY = 2


def build_label(
    relationship: Relationship,
    sub_scenario: SubScenario,
    direction: Direction,
) -> str:
    """Inverse of decode for recognized cases."""
    return LABEL_SEPARATOR.join([relationship.value, sub_scenario.value, direction.value])


class CaseInterpreter:
    """Turns case labels into descriptors and fan-out plans."""

    def __init__(self, max_one_to_many: int = DEFAULT_MAX_ONE_TO_MANY):
        """
        Initialize the interpreter.

        Args:
            max_one_to_many: Upper bound on deliveries for a OneToMany case
        """
        self.max_one_to_many = max_one_to_many

    def decode(self, label: str) -> CaseDescriptor:
        """Decode a label into a descriptor. Never raises."""
        segments = [s.strip() for s in str(label or "").split(LABEL_SEPARATOR)]

        relationship = RELATIONSHIP_KEYWORDS.get(segments[0], Relationship.UNRECOGNIZED)
        sub_scenario = SubScenario.HAPPY
        direction = None

        for segment in segments[1:]:
            if segment in DIRECTION_KEYWORDS:
                direction = DIRECTION_KEYWORDS[segment]
            elif segment in SUB_SCENARIO_KEYWORDS:
                sub_scenario = SUB_SCENARIO_KEYWORDS[segment]

        descriptor = CaseDescriptor(
            label=str(label or ""),
            relationship=relationship,
            sub_scenario=sub_scenario,
            direction=direction,
        )
        if not descriptor.is_recognized:
            logger.warning("Unrecognized case label %r, treating as amount-preserving OneToOne", label)
        return descriptor

    def fanout_count(self, relationship: Relationship, amount_count: int) -> int:
        """Number of submission cycles for a relationship."""
        if relationship == Relationship.ONE_TO_MANY:
            return max(MIN_ONE_TO_MANY, min(self.max_one_to_many, amount_count))
        return 1

    def plan(self, descriptor: CaseDescriptor, amount_count: int) -> FanoutPlan:
        """Build the fan-out plan for a decoded case."""
        return FanoutPlan(
            cycles=self.fanout_count(descriptor.scenario, amount_count),
            reuse=REUSE_BY_SUB_SCENARIO[descriptor.sub_scenario],
        )

    def interpret(self, label: str, amount_count: int) -> Tuple[CaseDescriptor, FanoutPlan]:
        """Decode a label and plan its cycles."""
        descriptor = self.decode(label)
        return descriptor, self.plan(descriptor, amount_count)
