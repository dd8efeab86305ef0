"""Swap submission: build the transaction for a quote and hand it to the signer."""

import structlog

from ..core.errors import (
    NoQuoteError,
    NotConnectedError,
    SigningError,
    SolswapError,
    SwapInProgressError,
)
from ..core.interfaces import QuoteProvider, WalletSigner
from ..core.types import SwapQuote
from .quote_engine import QuoteEngine

logger = structlog.get_logger(__name__)


def short_signature(signature: str, n: int = 8) -> str:
    if len(signature) <= 2 * n:
        return signature
    return f"{signature[:n]}...{signature[-n:]}"


class SwapSubmitter:
    """Submit the quote engine's current quote through an external wallet."""

    def __init__(
        self,
        provider: QuoteProvider,
        signer: WalletSigner | None,
        engine: QuoteEngine | None = None,
    ) -> None:
        """Initialize swap submitter.

        Args:
            provider: Aggregator that builds the swap transaction
            signer: Wallet that signs and broadcasts, None when disconnected
            engine: Quote engine to take the quote from and reset on success
        """
        self.provider = provider
        self.signer = signer
        self.engine = engine
        self._submitting = False

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    async def submit(self, signer_address: str | None) -> str:
        """Submit the engine's current quote.

        On success the engine is reset to IDLE. On failure the engine's
        inputs are left untouched so the user can retry.

        Returns:
            Transaction signature
        """
        if not signer_address:
            raise NotConnectedError()
        quote = self.engine.current_quote if self.engine is not None else None
        signature = await self.submit_quote(quote, signer_address)
        if self.engine is not None:
            self.engine.reset()
        return signature

    async def submit_quote(self, quote: SwapQuote | None, signer_address: str | None) -> str:
        """Build, sign and broadcast a transaction for an explicit quote.

        Raises:
            NotConnectedError: No signer address or no signer
            NoQuoteError: No ready quote
            SwapInProgressError: Another submission is running
            BuildFailedError: Aggregator could not build the transaction
            NetworkError: Transport failure while building
            SigningRejectedError: User or wallet declined
            SigningError: Signer failed for another reason
        """
        if not signer_address or self.signer is None:
            raise NotConnectedError()
        if quote is None:
            raise NoQuoteError()
        if self._submitting:
            raise SwapInProgressError()

        self._submitting = True
        try:
            tx_base64 = await self.provider.build_swap_transaction(quote, signer_address)
            try:
                signature = await self.signer.sign_and_submit(tx_base64)
            except SolswapError:
                raise
            except Exception as e:
                raise SigningError(f"Signing failed: {e}") from e
        except SolswapError as e:
            logger.error(
                "Swap submission failed",
                input_mint=quote.input_mint,
                output_mint=quote.output_mint,
                input_amount=quote.input_amount,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        finally:
            self._submitting = False

        logger.info(
            "Swap submitted",
            signature=short_signature(signature),
            input_mint=quote.input_mint,
            output_mint=quote.output_mint,
            input_amount=quote.input_amount,
        )
        return signature
