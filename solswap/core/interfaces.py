"""Collaborator protocols for the swap pipeline."""

from typing import Protocol, runtime_checkable

from .types import CustomToken, SwapQuote


class QuoteProvider(Protocol):
    """Swap aggregator protocol."""

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int | None = None,
    ) -> SwapQuote:
        """Fetch a quote for an exact input amount in smallest units."""
        ...

    async def build_swap_transaction(
        self, quote: SwapQuote, user_public_key: str
    ) -> str:
        """Build a serialized base64 transaction for the quote."""
        ...


class TokenLookup(Protocol):
    """Token metadata lookup protocol."""

    async def lookup_one(self, address: str) -> CustomToken:
        """Look up a single mint."""
        ...

    async def lookup_batch(self, addresses: list[str]) -> list[CustomToken]:
        """Look up many mints, best effort."""
        ...


@runtime_checkable
class WalletSigner(Protocol):
    """External wallet that signs and broadcasts transactions."""

    async def sign_and_submit(self, tx_base64: str) -> str:
        """Sign and submit a base64 transaction.

        Args:
            tx_base64: Base64-encoded serialized transaction

        Returns:
            Transaction signature
        """
        ...


class KeyValueStore(Protocol):
    """String key-value persistence protocol."""

    async def load_state(self, key: str) -> str | None:
        """Load value by key."""
        ...

    async def save_state(self, key: str, value: str) -> None:
        """Save value by key."""
        ...

    async def delete_state(self, key: str) -> None:
        """Delete value by key."""
        ...
