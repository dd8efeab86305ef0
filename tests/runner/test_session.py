"""Tests for swap session assembly."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
import respx

from solswap.config.settings import AppSettings
from solswap.core.errors import ValidationError
from solswap.core.types import CustomToken, QuoteStatus
from solswap.persist.storage import MemoryKeyValueStore
from solswap.persist.wallet_state import STORAGE_KEY
from solswap.runner.session import SwapSession
from solswap.tokens.registry import SOL_MINT, USDC_MINT

QUOTE_URL = "https://quote-api.jup.ag/v6/quote"
SWAP_URL = "https://quote-api.jup.ag/v6/swap"
SEARCH_URL = "https://lite-api.jup.ag/ultra/v1/search"
USER = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
POPCAT_MINT = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"


def popcat() -> CustomToken:
    return CustomToken(
        symbol="POPCAT",
        mint=POPCAT_MINT,
        decimals=9,
        display_color="#EF4444",
        display_name="Popcat",
    )


def quote_payload(input_mint=SOL_MINT, output_mint=USDC_MINT, in_amount="1500000000"):
    return {
        "inputMint": input_mint,
        "inAmount": in_amount,
        "outputMint": output_mint,
        "outAmount": "225000000",
        "otherAmountThreshold": "223875000",
        "swapMode": "ExactIn",
        "slippageBps": 50,
        "priceImpactPct": "0.001",
        "routePlan": [{"swapInfo": {}}],
    }


@pytest.fixture
def settings():
    return AppSettings(quote_debounce_ms=0)


@pytest_asyncio.fixture
async def session(settings):
    """Session over an in-memory store and a shared HTTP client."""
    async with httpx.AsyncClient() as http:
        session = SwapSession(
            settings, store=MemoryKeyValueStore(), signer=AsyncMock(), http=http
        )
        await session.start()

        yield session

        await session.aclose()


class TestSwapSession:
    """Test the assembled session."""

    @pytest.mark.asyncio
    async def test_hydration_feeds_engine(self, settings):
        """Stored custom tokens reach the quote engine on start."""
        record = {
            "favorites": [],
            "searchHistory": [],
            "isDevnet": False,
            "customTokens": [popcat().to_record()],
        }
        store = MemoryKeyValueStore({STORAGE_KEY: json.dumps(record)})
        session = SwapSession(settings, store=store)
        session.engine.set_input_token(popcat())
        assert session.engine.view.input_token_detached is True

        async with session:
            assert session.engine.view.input_token_detached is False
            assert [t.symbol for t in session.tokens("pop")] == ["POPCAT"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_quote(self, session):
        """A quote runs through the engine without waiting for the debounce."""
        respx.get(QUOTE_URL).mock(return_value=httpx.Response(200, json=quote_payload()))

        view = await session.quote("sol", "USDC", "1.5")

        assert view.status is QuoteStatus.READY
        assert view.output_amount_display == "225"
        assert view.exchange_rate == "150"

    @pytest.mark.asyncio
    @respx.mock
    async def test_unknown_mint_is_looked_up_and_saved(self, session):
        """An unknown mint is looked up and added as a custom token."""
        respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(
                200,
                json=[{"id": POPCAT_MINT, "symbol": "POPCAT", "name": "Popcat", "decimals": 9}],
            )
        )

        token = await session.resolve_token(POPCAT_MINT)

        assert token.symbol == "POPCAT"
        assert session.state.snapshot.custom_tokens[0].mint == POPCAT_MINT
        assert (await session.resolve_token("popcat")).mint == POPCAT_MINT

    @pytest.mark.asyncio
    async def test_unknown_symbol(self, session):
        """An unknown symbol that is not an address fails validation."""
        with pytest.raises(ValidationError, match="Unknown token"):
            await session.resolve_token("NOTATOKEN")

    @pytest.mark.asyncio
    @respx.mock
    async def test_swap(self, session):
        """A ready quote is built, signed and the form reset."""
        respx.get(QUOTE_URL).mock(return_value=httpx.Response(200, json=quote_payload()))
        respx.post(SWAP_URL).mock(
            return_value=httpx.Response(200, json={"swapTransaction": "AQID"})
        )
        session.signer.sign_and_submit.return_value = "sig"

        await session.quote("SOL", "USDC", "1.5")
        signature = await session.swap(USER)

        assert signature == "sig"
        session.signer.sign_and_submit.assert_awaited_once_with("AQID")
        assert session.engine.status is QuoteStatus.IDLE

    @pytest.mark.asyncio
    async def test_removed_custom_token_detaches_selection(self, session):
        """Removing a selected custom token keeps it selected but detached."""
        await session.state.add_custom_token(popcat())
        session.engine.set_input_token(popcat())
        assert session.engine.view.input_token_detached is False

        await session.state.remove_custom_token(POPCAT_MINT)

        assert session.engine.input_token.mint == POPCAT_MINT
        assert session.engine.view.input_token_detached is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_explorer_uses_selected_network(self, session, settings):
        """Explorer reads go to the devnet RPC once toggled."""
        devnet = respx.post(settings.rpc_url_devnet).mock(
            return_value=httpx.Response(
                200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": {"uiAmount": 5.0, "decimals": 6}}}
            )
        )

        await session.state.toggle_network()
        supply = await session.explorer.token_detail(USDC_MINT)

        assert devnet.called
        assert supply.supply == 5.0
