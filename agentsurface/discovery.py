"""Agent card discovery with a process-lifetime cache."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from agentsurface.config import DISCOVERY_TIMEOUT
from agentsurface.schemas import AgentCard

logger = logging.getLogger(__name__)

AGENT_CARD_PATH = "/.well-known/agent-card.json"


class DiscoveryError(Exception):
    """Raised when an agent card is unreachable or malformed."""

    def __init__(self, base_url: str, message: str, status_code: int | None = None):
        self.base_url = base_url
        self.status_code = status_code
        detail = f"AgentCard fetch failed: {base_url}{AGENT_CARD_PATH}"
        if status_code is not None:
            detail += f" {status_code}"
        super().__init__(f"{detail} ({message})")


def _normalize_base_url(base_url: str) -> str:
    return base_url.rstrip("/")


class AgentDiscovery:
    """Fetches and caches one agent card per base address.

    Cards are treated as immutable per address: a successful fetch is cached
    for the lifetime of this object and never refreshed.
    """

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = DISCOVERY_TIMEOUT):
        self._http = http_client
        self._timeout = timeout
        self._cards: dict[str, AgentCard] = {}

    def cached(self, base_url: str) -> AgentCard | None:
        """Return the cached card for an address, if any."""
        return self._cards.get(_normalize_base_url(base_url))

    async def get_descriptor(self, base_url: str) -> AgentCard:
        """Return the agent card for ``base_url``, fetching it on first use.

        Args:
            base_url: Agent base address (e.g. "http://localhost:3001")

        Returns:
            AgentCard with the streaming endpoint

        Raises:
            DiscoveryError: If the card cannot be fetched or lacks sendSubscribe
        """
        key = _normalize_base_url(base_url)
        card = self._cards.get(key)
        if card is not None:
            return card

        url = f"{key}{AGENT_CARD_PATH}"
        try:
            response = await self._http.get(url, timeout=self._timeout)
        except httpx.HTTPError as e:
            logger.error(f"Agent card request failed for {key}: {e}")
            raise DiscoveryError(key, f"request failed: {e}") from e

        if not response.is_success:
            raise DiscoveryError(key, "non-success response", response.status_code)

        try:
            card = AgentCard.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DiscoveryError(
                key, "missing sendSubscribe endpoint", response.status_code
            ) from e

        self._cards[key] = card
        logger.info(f"Discovered agent '{card.name}' v{card.version} at {key}")
        return card
