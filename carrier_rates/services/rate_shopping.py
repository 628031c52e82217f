"""
Rate Shopping Service

Fans one rate request out to several carriers at once:
- Each carrier runs as its own task; one failing never affects the others
- Results are keyed by carrier name, success or error per entry
- An optional deadline turns unfinished carriers into TIMEOUT entries

Usage:
    aggregator = RateShoppingAggregator(registry)
    results = await aggregator.shop(["ups", "fedex"], request, timeout=10)
"""
import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from carrier_rates.core.exceptions import CarrierIntegrationError, ConfigurationError, ErrorCode
from carrier_rates.models.rates import RateQuote, RateRequest, RateResponse
from carrier_rates.modules.shipping.carriers import CarrierRegistry

logger = logging.getLogger(__name__)

ShopResult = Union[RateResponse, Exception]


class RateShoppingAggregator:
    """Concurrent multi-carrier rate lookup."""

    def __init__(self, registry: CarrierRegistry):
        self._registry = registry

    async def _get_carrier_rates(
        self,
        carrier_name: str,
        request: Union[RateRequest, Mapping[str, Any]],
    ) -> RateResponse:
        carrier = self._registry.create(carrier_name)
        logger.info(f"[SHOP] Fetching rates from {carrier_name}")
        return await carrier.get_rates(request)

    async def shop(
        self,
        carrier_names: Sequence[str],
        request: Union[RateRequest, Mapping[str, Any]],
        timeout: Optional[float] = None,
    ) -> Dict[str, ShopResult]:
        """
        Get rates from every named carrier concurrently.

        Args:
            carrier_names: Carriers to query; exact duplicates are queried once
            request: Normalized rate request
            timeout: Overall deadline in seconds; None waits for every carrier

        Returns:
            Dict of carrier name (as given) -> RateResponse or the exception
            that carrier failed with. Never raises for a carrier's failure.
        """
        names = list(dict.fromkeys(carrier_names))
        if not names:
            logger.warning("[SHOP] No carriers requested for rate lookup")
            return {}

        tasks: Dict[str, asyncio.Task] = {
            name: asyncio.create_task(self._get_carrier_rates(name, request), name=f"rates:{name}")
            for name in names
        }

        try:
            _, pending = await asyncio.wait(tasks.values(), timeout=timeout)
        except asyncio.CancelledError:
            for task in tasks.values():
                task.cancel()
            raise

        for task in pending:
            task.cancel()
        if pending:
            # Let cancellations settle before reporting
            await asyncio.gather(*pending, return_exceptions=True)

        results: Dict[str, ShopResult] = {}
        for name, task in tasks.items():
            if task in pending:
                logger.warning(f"[SHOP] {name} did not respond within {timeout}s")
                results[name] = CarrierIntegrationError.create(
                    ErrorCode.TIMEOUT,
                    f"Carrier {name} did not respond within {timeout}s",
                    details={"carrier": name, "timeout_seconds": timeout},
                )
                continue

            exc = task.exception()
            if exc is None:
                results[name] = task.result()
            elif isinstance(exc, (CarrierIntegrationError, ConfigurationError)):
                logger.error(f"[SHOP] Error getting rates from {name}: {exc}")
                results[name] = exc
            elif isinstance(exc, Exception):
                logger.error(f"[SHOP] Unexpected error from {name}: {exc!r}")
                results[name] = CarrierIntegrationError.create(
                    ErrorCode.UNKNOWN_ERROR,
                    f"Unexpected error from carrier {name}",
                    details={"carrier": name, "original_error": repr(exc)},
                    cause=exc,
                )
            else:
                raise exc

        succeeded = sum(1 for r in results.values() if isinstance(r, RateResponse))
        logger.info(f"[SHOP] {succeeded}/{len(results)} carriers returned rates")
        return results


def cheapest_quotes(results: Mapping[str, ShopResult]) -> List[RateQuote]:
    """All successful quotes, lowest total charge first."""
    quotes = [
        quote
        for result in results.values()
        if isinstance(result, RateResponse)
        for quote in result.quotes
    ]
    quotes.sort(key=lambda q: q.total_charge.amount)
    return quotes
