"""Fill phone and website on search stubs from the Places details endpoint."""

import asyncio
import logging
from typing import Any, Dict, List

from leadgen.core.config import EnrichmentMode
from leadgen.core.retry import batch_count, chunked, pause, retry_with_backoff
from leadgen.vendors.google_places import PlacesClient

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY = 0.25


class DetailEnhancer:
    def __init__(
        self,
        places: PlacesClient,
        *,
        mode: EnrichmentMode = EnrichmentMode.COMPREHENSIVE,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
    ) -> None:
        self._places = places
        self.mode = mode
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def _enhance_one(self, stub: Dict[str, Any]) -> Dict[str, Any]:
        place_id = stub.get("place_id")
        try:
            details = await retry_with_backoff(
                lambda: self._places.place_details(place_id),
                max_retries=self._places.max_retries,
                base_delay_ms=self._places.base_delay_ms,
                label=f"place_details({place_id})",
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to get details for place %s: %s", place_id, exc)
            return stub

        merged = {**stub, **{key: value for key, value in details.items() if value not in (None, "", [])}}
        merged["website"] = details.get("website") or stub.get("website")
        merged["formatted_phone_number"] = details.get("formatted_phone_number") or stub.get("formatted_phone_number")
        return merged

    async def enhance(self, stubs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Return stubs with detail fields merged in, in the same order.

        Fast mode returns the stubs untouched without any network call.
        """
        if self.mode is EnrichmentMode.FAST or not stubs:
            return list(stubs)

        total_batches = batch_count(len(stubs), self.batch_size)
        enhanced: List[Dict[str, Any]] = []
        for index, batch in enumerate(chunked(stubs, self.batch_size), start=1):
            logger.info("Enhancing batch %d/%d (%d places)", index, total_batches, len(batch))
            enhanced.extend(await asyncio.gather(*(self._enhance_one(stub) for stub in batch)))
            if index < total_batches:
                await pause(self.batch_delay)
        return enhanced
