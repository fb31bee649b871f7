"""
Gateway Registry
Declares which payment methods are eligible in which country or region,
and in what order they should be offered.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Set

from . import regions
from .exceptions import GatewayNotEligibleException

logger = logging.getLogger(__name__)

SCOPE_COUNTRY = 'country'
SCOPE_REGION = 'region'
SCOPE_GLOBAL = 'global'

# Used for ranking methods that were never registered
DEFAULT_PRIORITY = 999

# How many entries may be emitted before region-scope entries stop being
# flagged as recommended. Tunable, pending product confirmation.
DEFAULT_RECOMMENDED_LIMIT = 5

_SCOPE_RANK = {SCOPE_COUNTRY: 0, SCOPE_REGION: 1, SCOPE_GLOBAL: 2}


@dataclass(frozen=True)
class Recommendation:
    """A scope-annotated suggestion of a method for a country."""
    method: str
    priority: int
    scope: str
    available: bool = True
    recommended: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            'method': self.method,
            'priority': self.priority,
            'scope': self.scope,
            'available': self.available,
            'recommended': self.recommended,
        }


class GatewayRegistry:
    """
    Holds method eligibility at three scopes (global, region, country) and
    one priority per method. Lower priority numbers rank first; equal
    priorities are ordered by method name.

    Registrations are additive only. All access is serialized by an
    internal lock, so reads never observe a partially applied registration.
    """

    def __init__(self, recommended_limit: int = DEFAULT_RECOMMENDED_LIMIT):
        self.recommended_limit = recommended_limit
        self._global: Set[str] = set()
        self._by_region: Dict[str, Set[str]] = {}
        self._by_country: Dict[str, Set[str]] = {}
        self._priority: Dict[str, int] = {}
        self._lock = threading.Lock()

    def register_global_gateway(self, method: str, priority: int) -> None:
        """Make a method eligible everywhere."""
        with self._lock:
            self._global.add(method)
            self._priority[method] = priority
        logger.debug("Registered global gateway %s (priority %s)", method, priority)

    def register_region_gateway(self, region: str, method: str, priority: int) -> None:
        """Make a method eligible for every country in a region."""
        with self._lock:
            self._by_region.setdefault(region, set()).add(method)
            self._priority[method] = priority
        logger.debug("Registered gateway %s for region %s (priority %s)", method, region, priority)

    def register_country_gateway(self, country: str, method: str, priority: int) -> None:
        """Make a method eligible for a single country."""
        with self._lock:
            self._by_country.setdefault(country, set()).add(method)
            self._priority[method] = priority
        logger.debug("Registered gateway %s for country %s (priority %s)", method, country, priority)

    def is_gateway_available(self, country: str, method: str) -> bool:
        """
        Check whether a method is eligible in a country through any scope.

        Args:
            country: Country code
            method: Payment method name

        Returns:
            True if the method is granted globally, for the country's region,
            or for the country itself
        """
        region = regions.get_region(country)
        with self._lock:
            return (
                method in self._global
                or method in self._by_region.get(region, ())
                or method in self._by_country.get(country, ())
            )

    def get_available_gateways(self, country: str) -> List[str]:
        """
        Get the deduplicated union of eligible methods for a country.

        Args:
            country: Country code

        Returns:
            Method names sorted by priority, then by name
        """
        region = regions.get_region(country)
        with self._lock:
            methods = set(self._global)
            methods.update(self._by_region.get(region, ()))
            methods.update(self._by_country.get(country, ()))
            return sorted(methods, key=self._sort_key)

    def get_gateway_priority(self, method: str) -> int:
        with self._lock:
            return self._priority.get(method, DEFAULT_PRIORITY)

    def get_recommendations(self, country: str) -> List[Recommendation]:
        """
        Get scope-annotated recommendations for a country.

        A method granted in several scopes is reported once per granting
        scope. Country entries are always recommended, region entries only
        while fewer than ``recommended_limit`` entries have been emitted,
        global entries never. The result is ordered by priority, then scope
        (country before region before global), then method name.

        Args:
            country: Country code

        Returns:
            List of Recommendation
        """
        region = regions.get_region(country)
        recommendations: List[Recommendation] = []

        with self._lock:
            for method in sorted(self._by_country.get(country, ()), key=self._sort_key):
                recommendations.append(Recommendation(
                    method=method,
                    priority=self._priority.get(method, DEFAULT_PRIORITY),
                    scope=SCOPE_COUNTRY,
                    available=True,
                    recommended=True,
                ))

            for method in sorted(self._by_region.get(region, ()), key=self._sort_key):
                recommendations.append(Recommendation(
                    method=method,
                    priority=self._priority.get(method, DEFAULT_PRIORITY),
                    scope=SCOPE_REGION,
                    available=True,
                    recommended=len(recommendations) < self.recommended_limit,
                ))

            for method in sorted(self._global, key=self._sort_key):
                recommendations.append(Recommendation(
                    method=method,
                    priority=self._priority.get(method, DEFAULT_PRIORITY),
                    scope=SCOPE_GLOBAL,
                    available=True,
                    recommended=False,
                ))

        recommendations.sort(key=lambda rec: (rec.priority, _SCOPE_RANK[rec.scope], rec.method))
        return recommendations

    def validate_gateway_for_country(self, country: str, method: str) -> None:
        """
        Validate that a method may be used in a country.

        Raises:
            GatewayNotEligibleException: If no scope grants the method
        """
        if not self.is_gateway_available(country, method):
            raise GatewayNotEligibleException(country, method)

    def _sort_key(self, method: str):
        # Caller holds the lock
        return (self._priority.get(method, DEFAULT_PRIORITY), method)


def default_registry() -> GatewayRegistry:
    """
    Build a registry with the production country and region mapping.

    Stripe and PayPal cannot receive payments in Nepal, so they are
    granted per country and per region rather than globally.
    """
    registry = GatewayRegistry()

    registry.register_country_gateway(regions.COUNTRY_NEPAL, 'esewa', 1)
    registry.register_country_gateway(regions.COUNTRY_NEPAL, 'khalti', 2)
    registry.register_country_gateway(regions.COUNTRY_NEPAL, 'imepay', 3)
    registry.register_country_gateway(regions.COUNTRY_NEPAL, 'connectips', 4)

    registry.register_country_gateway(regions.COUNTRY_INDIA, 'razorpay', 1)
    registry.register_country_gateway(regions.COUNTRY_INDIA, 'paytm', 2)

    for country in (regions.COUNTRY_USA, regions.COUNTRY_CANADA, regions.COUNTRY_UK):
        registry.register_country_gateway(country, 'stripe', 1)
        registry.register_country_gateway(country, 'paypal', 2)

    for region in (regions.REGION_NORTH_AMERICA, regions.REGION_EUROPE, regions.REGION_OCEANIA):
        registry.register_region_gateway(region, 'stripe', 1)
        registry.register_region_gateway(region, 'paypal', 2)

    return registry
