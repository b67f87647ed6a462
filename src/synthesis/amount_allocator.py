"""
AmountAllocator: Derive delivery amounts from the prepaid total.

Each (direction, relationship) pair has its own rule so that the
aggregate of a case's deliveries lands strictly under, strictly over,
or exactly on the total:

    UnderDelivery/OneToOne   [total] if exact, else one value in [1, total-1]
    OverDelivery/OneToOne    one value in [total+1, total+1000]
    OverDelivery/OneToMany   cycles-1 bounded values, last one pushes the sum past total
    UnderDelivery/OneToMany  greedy partition of total (exact) or of a smaller target
    */ManyToOne              [total] under, one value above total over
    anything else            [total]

Nothing here raises. Random draws never go below 1.
"""

import math
import random
from typing import List, Optional, Sequence, Union

from .models import Direction, Relationship

Number = Union[int, float]

OVER_DELIVERY_SLACK = 1000
ONE_TO_MANY_STEP_SLACK = 100
ONE_TO_MANY_FINAL_SLACK = 500


def total_of(amounts: Union[Number, Sequence[Number], None]) -> Number:
    """Sum known amounts, treating unparseable entries as zero."""
    if amounts is None:
        return 0
    if isinstance(amounts, (int, float)):
        return amounts

    total: Number = 0
    for amount in amounts:
        try:
            total += float(amount) if not isinstance(amount, (int, float)) else amount
        except (TypeError, ValueError):
            continue
    if isinstance(total, float) and total.is_integer():
        return int(total)
    return total


def _floor(value: Number) -> int:
    return int(math.floor(value))


class AmountAllocator:
    """Produces the per-cycle delivery amounts for a case."""

    def __init__(
        self,
        random_seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.rng = rng or random.Random(random_seed)

    def _between(self, low: Number, high: Number) -> int:
        """Uniform integer in [low, high], never below 1."""
        low = max(1, _floor(low))
        high = max(low, _floor(high))
        return self.rng.randint(low, high)

    def allocate(
        self,
        direction: Optional[Direction],
        relationship: Relationship,
        total: Number,
        cycles: int,
        exact_equality: bool,
    ) -> List[Number]:
        """
        Allocate delivery amounts.

        Args:
            direction: Under- or over-delivery (None for unrecognized labels)
            relationship: Relationship shape of the case
            total: Sum of the known prepayment amounts
            cycles: Planned number of submissions
            exact_equality: Whether under-delivery must match the total exactly

        Returns:
            One amount per cycle for recognized pairs, [total] otherwise
        """
        cycles = max(1, int(cycles))

        if relationship == Relationship.ONE_TO_ONE:
            if direction == Direction.UNDER_DELIVERY:
                if exact_equality:
                    return [total]
                return [self._between(1, total - 1)]
            if direction == Direction.OVER_DELIVERY:
                return [self._over(total)]

        elif relationship == Relationship.ONE_TO_MANY:
            if direction == Direction.OVER_DELIVERY:
                return self._spread_over(total, cycles)
            if direction == Direction.UNDER_DELIVERY:
                if exact_equality:
                    return self._partition(total, cycles)
                target = self._between(1, total - 1)
                return self._partition(target, cycles)

        elif relationship == Relationship.MANY_TO_ONE:
            # Equality flag deliberately ignored: the delivery settles every prepayment.
            if direction == Direction.UNDER_DELIVERY:
                return [total]
            if direction == Direction.OVER_DELIVERY:
                return [self._over(total)]

        return [total]

    def _over(self, total: Number) -> int:
        """One value strictly above total (slack is bounded)."""
        base = _floor(total)
        return self._between(base + 1, base + OVER_DELIVERY_SLACK)

    def _spread_over(self, total: Number, cycles: int) -> List[Number]:
        """cycles values whose sum exceeds total by a bounded margin."""
        step_cap = _floor(total / cycles) + ONE_TO_MANY_STEP_SLACK
        numbers: List[Number] = []
        running = 0
        for _ in range(cycles - 1):
            value = self._between(1, step_cap)
            numbers.append(value)
            running += value

        remaining = _floor(total - running)
        numbers.append(self._between(remaining + 1, remaining + ONE_TO_MANY_FINAL_SLACK))
        return numbers

    def _partition(self, target: Number, cycles: int) -> List[Number]:
        """
        Greedy partition of target into cycles positive values.

        Each value is drawn from [1, remaining / slots_left] and the last
        absorbs whatever is left, so the sum equals target whenever
        target >= cycles.
        """
        numbers: List[Number] = []
        running: Number = 0
        for i in range(cycles - 1):
            cap = _floor((target - running) / (cycles - i))
            value = self._between(1, max(1, cap))
            numbers.append(value)
            running += value

        last = target - running
        numbers.append(last if last >= 1 else 1)
        return numbers
