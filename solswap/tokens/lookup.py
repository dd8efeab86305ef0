"""Token metadata lookup via the Jupiter token search API.

Docs:
  - Search (lite, keyless): https://lite-api.jup.ag/ultra/v1/search?query=...
    ``query`` is a symbol, name or mint; up to 100 comma-separated mints
    may be passed for a multi-mint lookup. The search is fuzzy, so results
    are always pinned to an exact ``id`` match afterwards.
"""

from typing import Any

import httpx
import structlog

from ..core.errors import (
    InvalidAddressError,
    NetworkError,
    ServiceError,
    SolswapError,
    TokenNotFoundError,
)
from ..core.interfaces import TokenLookup
from ..core.types import CustomToken

logger = structlog.get_logger(__name__)

DEFAULT_SEARCH_URL = "https://lite-api.jup.ag/ultra/v1/search"
MAX_BATCH = 100

PLACEHOLDER_PALETTE = (
    "#9945FF",
    "#14F195",
    "#2775CA",
    "#F7931A",
    "#E0B354",
    "#26A17B",
    "#EF4444",
    "#60A5FA",
)


def placeholder_color(mint: str) -> str:
    """Stable palette color for a mint (31-multiplier string hash, 32-bit)."""
    h = 0
    for ch in mint:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return PLACEHOLDER_PALETTE[h % len(PLACEHOLDER_PALETTE)]


def is_valid_address(text: str) -> bool:
    """Base58 address shape: 32-44 characters, no whitespace."""
    return 32 <= len(text) <= 44 and not any(ch.isspace() for ch in text)


def validate_address(text: str) -> str:
    """Trim and validate an address, raising InvalidAddressError."""
    trimmed = text.strip()
    if not is_valid_address(trimmed):
        raise InvalidAddressError(trimmed)
    return trimmed


def map_mint_information(item: dict[str, Any]) -> CustomToken | None:
    """Map one search result to a custom token record."""
    try:
        mint = item.get("id")
        if not isinstance(mint, str):
            return None
        symbol = str(item.get("symbol") or "").strip() or mint[:4]
        icon = item.get("icon")
        return CustomToken(
            mint=mint,
            symbol=symbol,
            display_name=str(item.get("name") or symbol),
            decimals=int(item["decimals"]),
            logo_ref=icon if isinstance(icon, str) and icon else None,
            display_color=placeholder_color(mint),
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Failed to map token search result", error=str(e))
        return None


class TokenLookupClient(TokenLookup):
    """Resolve mint addresses to custom token metadata."""

    def __init__(
        self,
        *,
        search_url: str = DEFAULT_SEARCH_URL,
        batch_limit: int = MAX_BATCH,
        session: httpx.AsyncClient | None = None,
        timeout: float = 20.0,
    ) -> None:
        self.search_url = search_url.rstrip("/")
        self.batch_limit = max(1, min(MAX_BATCH, int(batch_limit)))

        self._session = session or httpx.AsyncClient(timeout=timeout)
        self._owns_session = session is None

    async def close(self) -> None:
        if self._owns_session:
            await self._session.aclose()

    async def _search(self, query: str) -> list[dict[str, Any]]:
        try:
            r = await self._session.get(self.search_url, params={"query": query})
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Token search error",
                status_code=e.response.status_code,
                response_text=e.response.text[:200],
            )
            raise ServiceError(
                e.response.status_code, e.response.text, service="Token search"
            ) from e
        except httpx.RequestError as e:
            logger.error("Token search request failed", error=str(e))
            raise NetworkError() from e

        try:
            data = r.json()
        except ValueError as e:
            raise ServiceError(r.status_code, r.text, service="Token search") from e
        if not isinstance(data, list):
            logger.warning("Unexpected token search response (expected list)")
            return []
        return [x for x in data if isinstance(x, dict)]

    async def lookup_one(self, address: str) -> CustomToken:
        """Look up a single token by mint address.

        Raises:
            InvalidAddressError: Text is not address-shaped (no request made)
            TokenNotFoundError: No exact mint match in the results
            NetworkError: Transport failure
            ServiceError: Non-2xx response
        """
        mint = validate_address(address)
        results = await self._search(mint)

        wanted = mint.lower()
        match = next(
            (x for x in results if str(x.get("id", "")).lower() == wanted), None
        )
        token = map_mint_information(match) if match else None
        if token is None:
            raise TokenNotFoundError(mint)

        logger.info("Token looked up", mint=token.mint, symbol=token.symbol)
        return token

    async def lookup_batch(self, addresses: list[str]) -> list[CustomToken]:
        """Look up up to ``batch_limit`` mints in one round trip.

        Best effort: invalid addresses, unmatched mints and a failed request
        all yield fewer results rather than an error.
        """
        mints: list[str] = []
        for address in addresses:
            trimmed = address.strip()
            if is_valid_address(trimmed) and trimmed not in mints:
                mints.append(trimmed)
        mints = mints[: self.batch_limit]
        if not mints:
            return []

        try:
            results = await self._search(",".join(mints))
        except SolswapError as e:
            logger.warning("Batch token lookup failed", count=len(mints), error=str(e))
            return []

        wanted = {m.lower() for m in mints}
        tokens: list[CustomToken] = []
        for item in results:
            if str(item.get("id", "")).lower() not in wanted:
                continue
            token = map_mint_information(item)
            if token is not None:
                tokens.append(token)

        logger.info("Batch token lookup", requested=len(mints), found=len(tokens))
        return tokens
