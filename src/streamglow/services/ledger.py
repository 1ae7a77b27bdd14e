"""Client for the external prize pool ledger."""

import logging
from typing import Any, Dict, Optional

import httpx

from ..common.exceptions import CommunicationError

logger = logging.getLogger(__name__)

PRIZE_SLOTS = ("first", "second", "third")


class PrizeLedger:
    """Reads and writes the three prize pool slots held by the ledger

    The ledger answers ``GET /prizepool`` with ``[{"prize": {...}}]`` and
    accepts ``POST /prizepool`` with ``{"data": {...}}``.
    """

    def __init__(
        self,
        base_url: str,
        auth_token: str = "",
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": auth_token} if auth_token else {}
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url, headers=headers, timeout=timeout
        )

    async def fetch(self) -> Dict[str, float]:
        """Current prize pool per slot"""
        try:
            response = await self._client.get("/prizepool")
            response.raise_for_status()
            body = response.json()
            prize = body[0]["prize"]
        except httpx.HTTPError as e:
            raise CommunicationError(f"Prize pool fetch failed: {e}") from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CommunicationError(f"Unexpected prize pool response: {e}") from e
        return {slot: float(prize.get(slot) or 0) for slot in PRIZE_SLOTS}

    async def add(self, place: str, amount: float) -> Dict[str, str]:
        """Add a donation to one slot and write the pool back"""
        if place not in PRIZE_SLOTS:
            raise ValueError(f"Unknown prize slot: {place}")
        pool = await self.fetch()
        pool[place] += amount
        new_state = {slot: f"{value:.2f}" for slot, value in pool.items()}
        try:
            response = await self._client.post("/prizepool", json={"data": new_state})
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CommunicationError(f"Prize pool update failed: {e}") from e
        logger.info(f"Donation of {amount:.2f} sent to prize pool '{place}'")
        return new_state

    async def close(self) -> None:
        await self._client.aclose()

    def get_state(self) -> Dict[str, Any]:
        return {"url": self.base_url}
