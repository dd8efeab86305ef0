"""Assembly of the swap and explorer components for one user session."""

import asyncio

import httpx
import structlog

from ..config.settings import AppSettings
from ..core.errors import ValidationError
from ..core.interfaces import KeyValueStore, WalletSigner
from ..core.types import CustomToken, QuoteView, TokenDescriptor
from ..data.explorer import WalletExplorer
from ..data.rpc import SolanaRpcClient
from ..exec.jupiter import JupiterClient
from ..exec.quote_engine import QuoteEngine
from ..exec.signers import ExternalCommandSigner
from ..exec.submission import SwapSubmitter
from ..persist.storage import SQLiteKeyValueStore
from ..persist.wallet_state import WalletSnapshot, WalletState
from ..tokens.catalog import DEFAULT_CATALOG, TokenCatalog
from ..tokens.lookup import TokenLookupClient, is_valid_address

logger = structlog.get_logger(__name__)


class SwapSession:
    """Owns the HTTP session, persisted state, quote engine and submitter."""

    def __init__(
        self,
        settings: AppSettings,
        store: KeyValueStore | None = None,
        signer: WalletSigner | None = None,
        http: httpx.AsyncClient | None = None,
        catalog: TokenCatalog = DEFAULT_CATALOG,
    ) -> None:
        """Assemble all components from settings.

        Args:
            settings: Application settings
            store: Key-value backend, SQLite at ``database_path`` by default
            signer: Wallet signer, the configured signer command by default
            http: Shared HTTP session, created and owned when None
            catalog: Token catalog
        """
        self.settings = settings
        self.catalog = catalog
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

        self.store = store or SQLiteKeyValueStore(settings.database_path)
        self.state = WalletState(
            self.store,
            history_limit=settings.search_history_limit,
            default_is_devnet=settings.is_devnet,
        )

        self.jupiter = JupiterClient(
            base_url=settings.jupiter_base,
            slippage_bps=settings.slippage_bps,
            wrap_and_unwrap_sol=settings.wrap_and_unwrap_sol,
            dynamic_compute_unit_limit=settings.dynamic_compute_unit_limit,
            prioritization_fee_lamports=settings.prioritization_fee_lamports,
            session=self.http,
            timeout=settings.http_timeout_seconds,
        )
        self.lookup = TokenLookupClient(
            search_url=settings.token_search_url,
            batch_limit=settings.lookup_batch_limit,
            session=self.http,
            timeout=settings.http_timeout_seconds,
        )
        self.engine = QuoteEngine(
            self.jupiter,
            catalog=catalog,
            debounce_seconds=settings.quote_debounce_seconds,
            slippage_bps=settings.slippage_bps,
        )

        if signer is None and settings.signer_command:
            signer = ExternalCommandSigner(settings.signer_command)
        self.signer = signer
        self.submitter = SwapSubmitter(self.jupiter, signer, self.engine)

        self._rpc_clients: dict[bool, SolanaRpcClient] = {}
        self.explorer = WalletExplorer(self._rpc_for, self.state)

        self._unsubscribe = self.state.subscribe(self._on_state_change)
        logger.info(
            "Swap session assembled",
            profile=settings.profile,
            jupiter=self.jupiter.get_config_summary(),
            signer=type(signer).__name__ if signer else None,
        )

    async def start(self) -> WalletSnapshot:
        """Load persisted state; the engine picks up custom tokens via the listener."""
        return await self.state.hydrate()

    async def aclose(self) -> None:
        self._unsubscribe()
        await self.engine.aclose()
        if self._owns_http:
            await self.http.aclose()
        if isinstance(self.store, SQLiteKeyValueStore):
            await self.store.close()
        logger.info("Swap session closed")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    # -------------------------
    # Tokens
    # -------------------------
    def tokens(self, query: str = "") -> list[TokenDescriptor]:
        merged = self.catalog.merge(self.state.snapshot.custom_tokens)
        return self.catalog.filter(query, merged)

    async def add_custom_tokens(self, addresses: list[str]) -> list[CustomToken]:
        """Look up tokens and save them to the custom collection.

        A single address uses the strict lookup so the user sees why it
        failed; several addresses use the best-effort batch lookup.
        """
        if len(addresses) == 1:
            found = [await self.lookup.lookup_one(addresses[0])]
        else:
            found = await self.lookup.lookup_batch(addresses)
        for token in reversed(found):
            await self.state.add_custom_token(token)
        return found

    async def resolve_token(self, text: str) -> TokenDescriptor:
        """Resolve a symbol or mint, looking unknown mints up and saving them."""
        custom = self.state.snapshot.custom_tokens
        token = self.catalog.resolve_symbol(text, custom)
        if token is not None:
            return token
        if not is_valid_address(text.strip()):
            raise ValidationError(f"Unknown token: {text}")
        (token,) = await self.add_custom_tokens([text.strip()])
        return token

    # -------------------------
    # Swap
    # -------------------------
    async def quote(self, from_token: str, to_token: str, amount_text: str) -> QuoteView:
        """Run one quote for the given pair and amount, skipping the debounce."""
        input_token = await self.resolve_token(from_token)
        output_token = await self.resolve_token(to_token)
        self.engine.set_pair(input_token, output_token)
        self.engine.set_amount(amount_text)
        task = self.engine.refresh()
        if task is not None:
            await task
        return self.engine.view

    async def swap(self, signer_address: str | None = None) -> str:
        """Submit the engine's current quote.

        Args:
            signer_address: Wallet address, asked from the signer when None
        """
        if signer_address is None and isinstance(self.signer, ExternalCommandSigner):
            signer_address = await asyncio.to_thread(self.signer.pubkey_base58)
        return await self.submitter.submit(signer_address)

    # -------------------------
    # Internals
    # -------------------------
    def _rpc_for(self, is_devnet: bool) -> SolanaRpcClient:
        client = self._rpc_clients.get(is_devnet)
        if client is None:
            client = SolanaRpcClient(
                self.settings.rpc_url_for(is_devnet),
                client=self.http,
                timeout=self.settings.http_timeout_seconds,
            )
            self._rpc_clients[is_devnet] = client
        return client

    def _on_state_change(self, snapshot: WalletSnapshot) -> None:
        self.engine.update_custom_tokens(snapshot.custom_tokens)
