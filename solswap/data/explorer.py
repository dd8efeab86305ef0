"""Wallet explorer reads: overview, watchlist balances, token detail."""

import asyncio
from collections.abc import Callable

import structlog

from ..core.errors import SolswapError
from ..core.types import TokenSupply, WalletOverview, WatchlistItem
from ..persist.wallet_state import WalletState
from ..tokens.lookup import validate_address
from .rpc import LAMPORTS_PER_SOL, SolanaRpcClient

logger = structlog.get_logger(__name__)

RpcFactory = Callable[[bool], SolanaRpcClient]


class WalletExplorer:
    """Explorer queries against the network selected in wallet state."""

    def __init__(self, rpc_factory: RpcFactory, state: WalletState) -> None:
        """Initialize wallet explorer.

        Args:
            rpc_factory: Returns the RPC client for ``is_devnet``
            state: Persisted wallet state (network toggle, favorites, history)
        """
        self.rpc_factory = rpc_factory
        self.state = state

    @property
    def rpc(self) -> SolanaRpcClient:
        return self.rpc_factory(self.state.snapshot.is_devnet)

    async def overview(self, address: str, signature_limit: int = 10) -> WalletOverview:
        """Balance, token holdings and recent signatures of one address.

        The address is validated before any request and recorded in search
        history once the lookup succeeds.
        """
        address = validate_address(address)
        rpc = self.rpc
        lamports, tokens, signatures = await asyncio.gather(
            rpc.get_balance(address),
            rpc.get_token_accounts_by_owner(address),
            rpc.get_signatures_for_address(address, limit=signature_limit),
        )
        await self.state.add_to_history(address)

        logger.info(
            "Wallet overview loaded",
            address=address,
            tokens=len(tokens),
            signatures=len(signatures),
        )
        return WalletOverview(
            address=address,
            lamports=lamports,
            sol=lamports / LAMPORTS_PER_SOL,
            tokens=tokens,
            signatures=signatures,
        )

    async def watchlist(self) -> list[WatchlistItem]:
        """SOL balance of every favorite; failed lookups report None."""
        rpc = self.rpc

        async def fetch(address: str) -> WatchlistItem:
            try:
                lamports = await rpc.get_balance(address)
            except SolswapError as e:
                logger.warning("Watchlist balance failed", address=address, error=str(e))
                return WatchlistItem(address=address, balance=None)
            return WatchlistItem(address=address, balance=lamports / LAMPORTS_PER_SOL)

        return list(
            await asyncio.gather(*(fetch(a) for a in self.state.snapshot.favorites))
        )

    async def token_detail(self, mint: str) -> TokenSupply:
        """Supply and decimals of a mint."""
        return await self.rpc.get_token_supply(validate_address(mint))
