"""
Picking one provider out of an eligible set.

The pick is deliberately unranked: rating, load and distance play no part.
Production uses a uniform random pick; the deterministic selector exists for
tests and reproducible environments.
"""

import random
from typing import Optional, Protocol, Sequence

from ..core.config import settings
from ..core.exceptions import NoProviderAvailableException
from ..models.provider import ServiceProvider


class ProviderSelector(Protocol):
    def choose(self, candidates: Sequence[ServiceProvider]) -> ServiceProvider:
        """Return one element of a non-empty ``candidates``."""


class RandomProviderSelector:
    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.SystemRandom()

    def choose(self, candidates: Sequence[ServiceProvider]) -> ServiceProvider:
        return self._rng.choice(list(candidates))


class FirstProviderSelector:
    """Lowest provider id wins."""

    def choose(self, candidates: Sequence[ServiceProvider]) -> ServiceProvider:
        return min(candidates, key=lambda provider: provider.user_id)


def select_one(candidates: Sequence[ServiceProvider], selector: ProviderSelector) -> ServiceProvider:
    if not candidates:
        raise NoProviderAvailableException()
    return selector.choose(candidates)


def get_default_selector() -> ProviderSelector:
    if settings.provider_selection_strategy == "first":
        return FirstProviderSelector()
    return RandomProviderSelector()
