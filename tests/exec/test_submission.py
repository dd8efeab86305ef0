"""Tests for the swap submission flow."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from solswap.core.errors import (
    BuildFailedError,
    NoQuoteError,
    NotConnectedError,
    SigningError,
    SigningRejectedError,
    SwapInProgressError,
)
from solswap.core.types import QuoteStatus, SwapQuote
from solswap.exec.quote_engine import QuoteEngine
from solswap.exec.submission import SwapSubmitter, short_signature
from solswap.tokens.registry import SOL_MINT, USDC_MINT

USER = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
SIGNATURE = "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW"


def make_quote() -> SwapQuote:
    return SwapQuote(
        input_mint=SOL_MINT,
        output_mint=USDC_MINT,
        input_amount=1_500_000_000,
        output_amount=225_000_000,
        price_impact_fraction=0.001,
        route_hop_count=1,
        slippage_tolerance_bps=50,
        minimum_received=223_875_000,
        raw={"inAmount": "1500000000"},
    )


def make_provider(quote: SwapQuote | None = None) -> AsyncMock:
    provider = AsyncMock()
    provider.get_quote.return_value = quote or make_quote()
    provider.build_swap_transaction.return_value = "AQID"
    return provider


async def ready_engine(provider) -> QuoteEngine:
    engine = QuoteEngine(provider, debounce_seconds=0)
    engine.set_amount("1.5")
    await engine.drain()
    assert engine.status is QuoteStatus.READY
    return engine


class TestShortSignature:
    """Test signature shortening."""

    def test_shortens_long_signature(self):
        """Long signatures keep the first and last characters."""
        assert short_signature(SIGNATURE) == f"{SIGNATURE[:8]}...{SIGNATURE[-8:]}"

    def test_short_signature_unchanged(self):
        """Short values are returned as-is."""
        assert short_signature("abc") == "abc"


class TestSwapSubmitter:
    """Test submission preconditions and outcomes."""

    @pytest.mark.asyncio
    async def test_success_resets_engine(self):
        """A confirmed submission returns the signature and resets the form."""
        provider = make_provider()
        signer = AsyncMock()
        signer.sign_and_submit.return_value = SIGNATURE
        engine = await ready_engine(provider)
        submitter = SwapSubmitter(provider, signer, engine)

        signature = await submitter.submit(USER)

        assert signature == SIGNATURE
        provider.build_swap_transaction.assert_awaited_once_with(make_quote(), USER)
        signer.sign_and_submit.assert_awaited_once_with("AQID")
        assert engine.status is QuoteStatus.IDLE
        assert engine.amount_text == ""
        assert submitter.is_submitting is False

    @pytest.mark.asyncio
    async def test_no_quote_makes_no_aggregator_call(self):
        """Without a ready quote nothing is built or signed."""
        provider = make_provider()
        signer = AsyncMock()
        engine = QuoteEngine(provider, debounce_seconds=0)
        submitter = SwapSubmitter(provider, signer, engine)

        with pytest.raises(NoQuoteError):
            await submitter.submit(USER)

        provider.build_swap_transaction.assert_not_awaited()
        signer.sign_and_submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_connected(self):
        """A missing signer address is refused before anything else."""
        provider = make_provider()
        submitter = SwapSubmitter(provider, AsyncMock(), await ready_engine(provider))

        with pytest.raises(NotConnectedError):
            await submitter.submit(None)
        with pytest.raises(NotConnectedError):
            await submitter.submit("")

        provider.build_swap_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_signer(self):
        """A session without a signer cannot submit."""
        provider = make_provider()
        submitter = SwapSubmitter(provider, None)

        with pytest.raises(NotConnectedError):
            await submitter.submit_quote(make_quote(), USER)

    @pytest.mark.asyncio
    async def test_build_failure_keeps_inputs(self):
        """A failed build propagates and leaves the form untouched."""
        provider = make_provider()
        provider.build_swap_transaction.side_effect = BuildFailedError(
            "Failed to build swap transaction (HTTP 422)"
        )
        signer = AsyncMock()
        engine = await ready_engine(provider)
        submitter = SwapSubmitter(provider, signer, engine)

        with pytest.raises(BuildFailedError):
            await submitter.submit(USER)

        signer.sign_and_submit.assert_not_awaited()
        assert engine.amount_text == "1.5"
        assert engine.status is QuoteStatus.READY
        assert submitter.is_submitting is False

    @pytest.mark.asyncio
    async def test_rejection_propagates(self):
        """A user rejection surfaces as SigningRejectedError."""
        provider = make_provider()
        signer = AsyncMock()
        signer.sign_and_submit.side_effect = SigningRejectedError("User rejected")
        engine = await ready_engine(provider)
        submitter = SwapSubmitter(provider, signer, engine)

        with pytest.raises(SigningRejectedError):
            await submitter.submit(USER)

        assert engine.amount_text == "1.5"

    @pytest.mark.asyncio
    async def test_unexpected_signer_error_is_wrapped(self):
        """Foreign signer exceptions become SigningError."""
        provider = make_provider()
        signer = AsyncMock()
        signer.sign_and_submit.side_effect = RuntimeError("bridge crashed")
        submitter = SwapSubmitter(provider, signer)

        with pytest.raises(SigningError) as exc_info:
            await submitter.submit_quote(make_quote(), USER)

        assert "bridge crashed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_concurrent_submission_refused(self):
        """A second submission while one is running is refused."""
        provider = make_provider()
        gate = asyncio.Event()

        async def slow_sign(tx_base64):
            await gate.wait()
            return SIGNATURE

        signer = AsyncMock()
        signer.sign_and_submit.side_effect = slow_sign
        submitter = SwapSubmitter(provider, signer)

        first = asyncio.create_task(submitter.submit_quote(make_quote(), USER))
        await asyncio.sleep(0)
        assert submitter.is_submitting is True

        with pytest.raises(SwapInProgressError):
            await submitter.submit_quote(make_quote(), USER)

        gate.set()
        assert await first == SIGNATURE
        assert submitter.is_submitting is False
