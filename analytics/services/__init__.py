"""Analytics services for business logic and data processing."""

from analytics.services.eco_scoring import (
    DEFAULT_POLICY,
    BehaviorScorer,
    EcoAccumulator,
    EcoPolicy,
    EcoReport,
)

__all__ = [
    "DEFAULT_POLICY",
    "BehaviorScorer",
    "EcoAccumulator",
    "EcoPolicy",
    "EcoReport",
]
