"""
CaseRecordSynthesizer: Draw a population of case labels.

Weights are counts, not probabilities: each option is repeated that many
times in a pool and draws are uniform over the pool.
"""

from typing import Dict, List, Optional, Tuple

import numpy as np

from ..utils.config import CaseWeights, ScenarioWeights
from ..utils.errors import ConfigError
from .case_interpreter import build_label
from .models import Direction, Relationship, SubScenario


def _scenario_entries(direction: Direction, weights: ScenarioWeights) -> List[Tuple[Tuple[SubScenario, Direction], int]]:
    return [
        ((SubScenario.HAPPY, direction), weights.happy),
        ((SubScenario.NO_PREPAYMENT, direction), weights.no_prepayment),
        ((SubScenario.DIFF_PREPAYMENT, direction), weights.diff_prepayment),
    ]


def relationship_pool(weights: Dict[str, int]) -> List[Relationship]:
    """Repeated-entry pool of relationships; unknown names are skipped."""
    pool: List[Relationship] = []
    for relationship in (Relationship.ONE_TO_ONE, Relationship.ONE_TO_MANY, Relationship.MANY_TO_ONE):
        pool.extend([relationship] * max(0, int(weights.get(relationship.value, 0))))
    return pool


def scenario_pool(
    under_delivery: ScenarioWeights,
    over_delivery: ScenarioWeights,
) -> List[Tuple[SubScenario, Direction]]:
    """Repeated-entry pool of (sub-scenario, direction) pairs."""
    pool: List[Tuple[SubScenario, Direction]] = []
    entries = (
        _scenario_entries(Direction.UNDER_DELIVERY, under_delivery)
        + _scenario_entries(Direction.OVER_DELIVERY, over_delivery)
    )
    for pair, count in entries:
        pool.extend([pair] * max(0, int(count)))
    return pool


class CaseRecordSynthesizer:
    """Generates case labels from weighted pools."""

    def __init__(
        self,
        random_seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.rng = rng or np.random.default_rng(random_seed)

    def generate(
        self,
        total_cases: int,
        relationships: List[Relationship],
        scenarios: List[Tuple[SubScenario, Direction]],
    ) -> List[str]:
        """
        Draw total_cases labels.

        Args:
            total_cases: Number of labels to produce
            relationships: Repeated-entry relationship pool
            scenarios: Repeated-entry (sub-scenario, direction) pool

        Returns:
            Labels like 'OneToMany-Happy-OverDelivery'; duplicates are expected.
            Empty if either pool is empty.
        """
        if total_cases <= 0 or not relationships or not scenarios:
            return []

        rel_picks = self.rng.integers(0, len(relationships), size=total_cases)
        scen_picks = self.rng.integers(0, len(scenarios), size=total_cases)

        labels = []
        for r, s in zip(rel_picks, scen_picks):
            sub_scenario, direction = scenarios[int(s)]
            labels.append(build_label(relationships[int(r)], sub_scenario, direction))
        return labels

    def generate_from_config(self, weights: CaseWeights) -> List[str]:
        """
        Draw weights.total labels from the configured pools.

        Raises:
            ConfigError: if cases are requested but every relationship or
                every scenario weight is zero
        """
        relationships = relationship_pool(weights.relationships)
        scenarios = scenario_pool(weights.under_delivery, weights.over_delivery)
        if weights.total > 0:
            if not relationships:
                raise ConfigError("cases.relationships: at least one relationship weight must be positive")
            if not scenarios:
                raise ConfigError("cases: at least one UnderDelivery/OverDelivery weight must be positive")
        return self.generate(
            total_cases=weights.total,
            relationships=relationships,
            scenarios=scenarios,
        )

    @staticmethod
    def to_document(labels: List[str]) -> Dict[str, List[Dict[str, str]]]:
        """case_records.json layout."""
        return {"record": [{"case": label} for label in labels]}
