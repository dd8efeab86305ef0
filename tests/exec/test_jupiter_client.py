"""Tests for the Jupiter aggregator client."""

import json

import httpx
import pytest
import respx

from solswap.core.errors import (
    BuildFailedError,
    NetworkError,
    NoRouteError,
    ServiceError,
)
from solswap.exec.jupiter import (
    JupiterClient,
    build_quote_params,
    build_swap_request,
    parse_quote,
)
from solswap.tokens.registry import SOL_MINT, USDC_MINT

QUOTE_URL = "https://quote-api.jup.ag/v6/quote"
SWAP_URL = "https://quote-api.jup.ag/v6/swap"
USER = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


def quote_payload(**overrides) -> dict:
    payload = {
        "inputMint": SOL_MINT,
        "inAmount": "1500000000",
        "outputMint": USDC_MINT,
        "outAmount": "225000000",
        "otherAmountThreshold": "223875000",
        "swapMode": "ExactIn",
        "slippageBps": 50,
        "priceImpactPct": "0.0012",
        "routePlan": [{"swapInfo": {"label": "Orca"}}, {"swapInfo": {"label": "Raydium"}}],
        "contextSlot": 123,
    }
    payload.update(overrides)
    return payload


class TestJupiterHelperFunctions:
    """Test request builders and response parsing."""

    def test_build_quote_params(self):
        """Amount is sent as a string with the slippage."""
        params = build_quote_params(
            input_mint=SOL_MINT, output_mint=USDC_MINT, amount=1_000_000, slippage_bps=50
        )

        assert params == {
            "inputMint": SOL_MINT,
            "outputMint": USDC_MINT,
            "amount": "1000000",
            "slippageBps": 50,
        }

    def test_parse_quote(self):
        """Quote fields map to the SwapQuote model."""
        quote = parse_quote(quote_payload())

        assert quote.input_mint == SOL_MINT
        assert quote.output_mint == USDC_MINT
        assert quote.input_amount == 1_500_000_000
        assert quote.output_amount == 225_000_000
        assert quote.minimum_received == 223_875_000
        assert quote.price_impact_fraction == pytest.approx(0.0012)
        assert quote.route_hop_count == 2
        assert quote.slippage_tolerance_bps == 50
        assert quote.raw["contextSlot"] == 123

    def test_parse_quote_empty_route(self):
        """An empty route plan means no route."""
        with pytest.raises(NoRouteError):
            parse_quote(quote_payload(routePlan=[]))

    def test_parse_quote_malformed(self):
        """Missing amounts are a service error."""
        payload = quote_payload()
        del payload["outAmount"]
        with pytest.raises(ServiceError):
            parse_quote(payload)

    def test_build_swap_request_echoes_raw_quote(self):
        """The swap request carries the quote exactly as received."""
        quote = parse_quote(quote_payload())

        body = build_swap_request(quote, USER, prioritization_fee_lamports=5000)

        assert body["quoteResponse"] == quote_payload()
        assert body["userPublicKey"] == USER
        assert body["wrapAndUnwrapSol"] is True
        assert body["dynamicComputeUnitLimit"] is True
        assert body["prioritizationFeeLamports"] == 5000


class TestJupiterClientQuote:
    """Test quote requests."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_quote(self):
        """A successful quote is parsed and uses the default slippage."""
        route = respx.get(QUOTE_URL).mock(
            return_value=httpx.Response(200, json=quote_payload())
        )
        client = JupiterClient(slippage_bps=75)

        quote = await client.get_quote(SOL_MINT, USDC_MINT, 1_500_000_000)

        params = route.calls.last.request.url.params
        assert params["amount"] == "1500000000"
        assert params["slippageBps"] == "75"
        assert quote.output_amount == 225_000_000
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_slippage_override(self):
        """An explicit slippage overrides the client default."""
        route = respx.get(QUOTE_URL).mock(
            return_value=httpx.Response(200, json=quote_payload())
        )
        client = JupiterClient()

        await client.get_quote(SOL_MINT, USDC_MINT, 1_500_000_000, slippage_bps=10)

        assert route.calls.last.request.url.params["slippageBps"] == "10"
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_route_error_code(self):
        """Aggregator no-route error codes map to NoRouteError."""
        respx.get(QUOTE_URL).mock(
            return_value=httpx.Response(
                400,
                json={"error": "Could not find any route", "errorCode": "COULD_NOT_FIND_ANY_ROUTE"},
            )
        )
        client = JupiterClient()

        with pytest.raises(NoRouteError) as exc_info:
            await client.get_quote(SOL_MINT, USDC_MINT, 1)

        assert str(exc_info.value) == "No route found"
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_other_http_error(self):
        """Other non-2xx responses map to ServiceError."""
        respx.get(QUOTE_URL).mock(return_value=httpx.Response(500, text="oops"))
        client = JupiterClient()

        with pytest.raises(ServiceError) as exc_info:
            await client.get_quote(SOL_MINT, USDC_MINT, 1)

        assert exc_info.value.status_code == 500
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout(self):
        """Timeouts map to NetworkError."""
        respx.get(QUOTE_URL).mock(side_effect=httpx.ReadTimeout("slow"))
        client = JupiterClient()

        with pytest.raises(NetworkError):
            await client.get_quote(SOL_MINT, USDC_MINT, 1)

        await client.close()


class TestJupiterClientSwap:
    """Test swap transaction building."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_build_swap_transaction(self):
        """The swap endpoint receives the raw quote and returns a transaction."""
        route = respx.post(SWAP_URL).mock(
            return_value=httpx.Response(200, json={"swapTransaction": "AQID"})
        )
        client = JupiterClient(prioritization_fee_lamports="auto")
        quote = parse_quote(quote_payload())

        tx = await client.build_swap_transaction(quote, USER)

        assert tx == "AQID"
        body = json.loads(route.calls.last.request.content)
        assert body["quoteResponse"] == quote_payload()
        assert body["userPublicKey"] == USER
        assert body["prioritizationFeeLamports"] == "auto"
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_build_failed_status(self):
        """A non-2xx swap response is a build failure."""
        respx.post(SWAP_URL).mock(return_value=httpx.Response(422, json={"error": "x"}))
        client = JupiterClient()

        with pytest.raises(BuildFailedError) as exc_info:
            await client.build_swap_transaction(parse_quote(quote_payload()), USER)

        assert "HTTP 422" in str(exc_info.value)
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_transaction(self):
        """A response without a transaction is a build failure."""
        respx.post(SWAP_URL).mock(return_value=httpx.Response(200, json={}))
        client = JupiterClient()

        with pytest.raises(BuildFailedError):
            await client.build_swap_transaction(parse_quote(quote_payload()), USER)

        await client.close()

    def test_config_summary(self):
        """The summary reflects constructor settings."""
        client = JupiterClient(base_url="https://example.com/v6/", slippage_bps=30)

        summary = client.get_config_summary()

        assert summary["base_url"] == "https://example.com/v6"
        assert summary["slippage_bps"] == 30
