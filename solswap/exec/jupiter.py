"""Jupiter aggregator client: quotes and swap transaction building."""

from typing import Any

import httpx
import structlog

from ..core.errors import (
    BuildFailedError,
    NetworkError,
    NoRouteError,
    ServiceError,
)
from ..core.interfaces import QuoteProvider
from ..core.types import SwapQuote

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://quote-api.jup.ag/v6"
DEFAULT_SLIPPAGE_BPS = 50

# errorCode values Jupiter uses for "no path between these mints"
NO_ROUTE_ERROR_CODES = {
    "COULD_NOT_FIND_ANY_ROUTE",
    "NO_ROUTES_FOUND",
    "TOKEN_NOT_TRADABLE",
}


def build_quote_params(
    input_mint: str,
    output_mint: str,
    amount: int,
    slippage_bps: int,
) -> dict[str, Any]:
    """Build query parameters for the quote endpoint.

    Args:
        input_mint: Input token mint address
        output_mint: Output token mint address
        amount: Amount in smallest units
        slippage_bps: Slippage tolerance in basis points

    Returns:
        Dictionary of query parameters
    """
    return {
        "inputMint": input_mint,
        "outputMint": output_mint,
        "amount": str(amount),
        "slippageBps": slippage_bps,
    }


def build_swap_request(
    quote: SwapQuote,
    user_public_key: str,
    wrap_and_unwrap_sol: bool = True,
    dynamic_compute_unit_limit: bool = True,
    prioritization_fee_lamports: int | str = "auto",
) -> dict[str, Any]:
    """Build the JSON body for the swap endpoint.

    The quote is sent back exactly as the aggregator returned it.
    """
    return {
        "quoteResponse": quote.raw,
        "userPublicKey": user_public_key,
        "wrapAndUnwrapSol": wrap_and_unwrap_sol,
        "dynamicComputeUnitLimit": dynamic_compute_unit_limit,
        "prioritizationFeeLamports": prioritization_fee_lamports,
    }


def parse_quote(data: dict[str, Any]) -> SwapQuote:
    """Map an aggregator quote object to a SwapQuote.

    Raises:
        NoRouteError: The quote has an empty route plan
        ServiceError: The payload is missing required fields
    """
    if not isinstance(data, dict):
        raise ServiceError(200, str(data)[:200], service="Jupiter")

    route_plan = data.get("routePlan") or []
    if not route_plan:
        raise NoRouteError()

    try:
        out_amount = int(data["outAmount"])
        return SwapQuote(
            input_mint=data["inputMint"],
            output_mint=data["outputMint"],
            input_amount=int(data["inAmount"]),
            output_amount=out_amount,
            price_impact_fraction=float(data.get("priceImpactPct") or 0.0),
            route_hop_count=len(route_plan),
            slippage_tolerance_bps=int(data.get("slippageBps") or 0),
            minimum_received=int(data.get("otherAmountThreshold") or out_amount),
            swap_mode=data.get("swapMode") or "ExactIn",
            raw=data,
        )
    except (KeyError, TypeError, ValueError) as e:
        logger.error("Malformed Jupiter quote", error=str(e))
        raise ServiceError(200, str(data)[:200], service="Jupiter") from e


def _error_code(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        code = body.get("errorCode")
        return code if isinstance(code, str) else None
    return None


class JupiterClient(QuoteProvider):
    """Jupiter v6 swap API client."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        wrap_and_unwrap_sol: bool = True,
        dynamic_compute_unit_limit: bool = True,
        prioritization_fee_lamports: int | str = "auto",
        session: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize Jupiter client.

        Args:
            base_url: Jupiter API base URL
            slippage_bps: Default slippage tolerance in basis points
            wrap_and_unwrap_sol: Wrap/unwrap native SOL in swap transactions
            dynamic_compute_unit_limit: Let Jupiter size the compute budget
            prioritization_fee_lamports: Priority fee, or "auto"
            session: Optional HTTP session
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.slippage_bps = slippage_bps
        self.wrap_and_unwrap_sol = wrap_and_unwrap_sol
        self.dynamic_compute_unit_limit = dynamic_compute_unit_limit
        self.prioritization_fee_lamports = prioritization_fee_lamports
        self.timeout = timeout
        self.session = session or httpx.AsyncClient(timeout=timeout)
        self._owns_session = session is None

    async def close(self) -> None:
        if self._owns_session:
            await self.session.aclose()

    async def _make_request(
        self,
        endpoint: str,
        data: dict[str, Any] | None = None,
        method: str = "GET",
    ) -> dict[str, Any]:
        """Make HTTP request to Jupiter API.

        Args:
            endpoint: API endpoint path
            data: Query parameters (GET) or JSON body (POST)
            method: HTTP method

        Returns:
            API response data

        Raises:
            httpx.HTTPError: On HTTP errors
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        try:
            if method == "POST":
                response = await self.session.post(
                    url, json=data, timeout=self.timeout
                )
            else:
                response = await self.session.get(
                    url, params=data, timeout=self.timeout
                )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Jupiter API error",
                endpoint=endpoint,
                status_code=e.response.status_code,
                response_text=e.response.text[:500],
            )
            raise
        except httpx.RequestError as e:
            logger.error("Jupiter API request failed", endpoint=endpoint, error=str(e))
            raise

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int | None = None,
    ) -> SwapQuote:
        """Get a quote for an exact input amount.

        Raises:
            NoRouteError: No route between the mints
            NetworkError: Transport failure
            ServiceError: Any other non-2xx response
        """
        if slippage_bps is None:
            slippage_bps = self.slippage_bps

        params = build_quote_params(
            input_mint=input_mint,
            output_mint=output_mint,
            amount=amount,
            slippage_bps=slippage_bps,
        )

        logger.info(
            "Requesting Jupiter quote",
            input_mint=input_mint,
            output_mint=output_mint,
            amount=amount,
            slippage_bps=slippage_bps,
        )

        try:
            data = await self._make_request("quote", params)
        except httpx.HTTPStatusError as e:
            if _error_code(e.response) in NO_ROUTE_ERROR_CODES:
                raise NoRouteError() from e
            raise ServiceError(
                e.response.status_code, e.response.text, service="Jupiter"
            ) from e
        except httpx.RequestError as e:
            raise NetworkError() from e
        except ValueError as e:
            raise ServiceError(200, "invalid JSON", service="Jupiter") from e

        quote = parse_quote(data)
        logger.info(
            "Jupiter quote received",
            input_amount=quote.input_amount,
            output_amount=quote.output_amount,
            price_impact=quote.price_impact_fraction,
            hops=quote.route_hop_count,
        )
        return quote

    async def build_swap_transaction(
        self, quote: SwapQuote, user_public_key: str
    ) -> str:
        """Build a serialized swap transaction for the quote.

        Args:
            quote: Quote previously returned by ``get_quote``
            user_public_key: Signer's public key (base58)

        Returns:
            Base64-encoded versioned transaction

        Raises:
            BuildFailedError: Jupiter could not build a transaction
            NetworkError: Transport failure
        """
        swap_request = build_swap_request(
            quote,
            user_public_key,
            wrap_and_unwrap_sol=self.wrap_and_unwrap_sol,
            dynamic_compute_unit_limit=self.dynamic_compute_unit_limit,
            prioritization_fee_lamports=self.prioritization_fee_lamports,
        )

        logger.info(
            "Building swap transaction",
            user_public_key=user_public_key,
            input_mint=quote.input_mint,
            output_mint=quote.output_mint,
            input_amount=quote.input_amount,
        )

        try:
            data = await self._make_request("swap", swap_request, method="POST")
        except httpx.HTTPStatusError as e:
            raise BuildFailedError(
                f"Failed to build swap transaction (HTTP {e.response.status_code})"
            ) from e
        except httpx.RequestError as e:
            raise NetworkError() from e
        except ValueError as e:
            raise BuildFailedError("Failed to build swap transaction") from e

        tx = data.get("swapTransaction") if isinstance(data, dict) else None
        if not isinstance(tx, str) or not tx:
            raise BuildFailedError("Failed to build swap transaction")
        return tx

    def get_config_summary(self) -> dict[str, Any]:
        """Get configuration summary."""
        return {
            "base_url": self.base_url,
            "slippage_bps": self.slippage_bps,
            "wrap_and_unwrap_sol": self.wrap_and_unwrap_sol,
            "dynamic_compute_unit_limit": self.dynamic_compute_unit_limit,
            "prioritization_fee_lamports": self.prioritization_fee_lamports,
        }
