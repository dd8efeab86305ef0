"""Persisted wallet state: favorites, search history, network, custom tokens.

The state is one immutable ``WalletSnapshot``. Every mutation builds a new
snapshot, persists it, and only then swaps it in and notifies subscribers,
so readers never observe a half-applied change.
"""

import asyncio
import json
from collections.abc import Callable
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from ..core.interfaces import KeyValueStore
from ..core.types import CustomToken

logger = structlog.get_logger(__name__)

STORAGE_KEY = "wallet-storage"
DEFAULT_HISTORY_LIMIT = 20


class WalletSnapshot(BaseModel):
    """Immutable view of the persisted wallet state."""

    model_config = ConfigDict(frozen=True)

    favorites: tuple[str, ...] = Field(
        default=(), description="Saved wallet addresses, newest first"
    )
    search_history: tuple[str, ...] = Field(
        default=(), description="Recently searched addresses, newest first"
    )
    is_devnet: bool = Field(default=False, description="Devnet instead of mainnet")
    custom_tokens: tuple[CustomToken, ...] = Field(
        default=(), description="User-added tokens, newest first"
    )

    def to_record(self) -> dict[str, Any]:
        return {
            "favorites": list(self.favorites),
            "searchHistory": list(self.search_history),
            "isDevnet": self.is_devnet,
            "customTokens": [t.to_record() for t in self.custom_tokens],
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "WalletSnapshot":
        """Build from a stored record, skipping malformed custom tokens."""
        tokens: list[CustomToken] = []
        for item in data.get("customTokens") or []:
            try:
                tokens.append(CustomToken.from_record(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed custom token", error=str(e))
        return cls(
            favorites=tuple(str(a) for a in data.get("favorites") or []),
            search_history=tuple(str(a) for a in data.get("searchHistory") or []),
            is_devnet=bool(data.get("isDevnet", False)),
            custom_tokens=tuple(tokens),
        )


StateListener = Callable[[WalletSnapshot], None]


class WalletState:
    """Injected, explicitly scoped container for the persisted wallet state."""

    def __init__(
        self,
        store: KeyValueStore,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        key: str = STORAGE_KEY,
        default_is_devnet: bool = False,
    ) -> None:
        """Initialize wallet state.

        Args:
            store: Key-value backend
            history_limit: Maximum search history length
            key: Storage key for the serialized snapshot
            default_is_devnet: Network used until the user toggles it
        """
        self.store = store
        self.history_limit = history_limit
        self.key = key
        self.default_is_devnet = default_is_devnet
        self._snapshot = WalletSnapshot(is_devnet=default_is_devnet)
        self._hydrated = asyncio.Event()
        self._listeners: list[StateListener] = []

    @property
    def snapshot(self) -> WalletSnapshot:
        return self._snapshot

    @property
    def has_hydrated(self) -> bool:
        return self._hydrated.is_set()

    async def wait_hydrated(self) -> None:
        """Block until the stored state has been loaded."""
        await self._hydrated.wait()

    async def hydrate(self) -> WalletSnapshot:
        """Load the stored snapshot; missing or corrupt data yields defaults."""
        if self.has_hydrated:
            return self._snapshot

        raw = await self.store.load_state(self.key)
        snapshot = WalletSnapshot(is_devnet=self.default_is_devnet)
        if raw is not None:
            try:
                data = json.loads(raw)
                if isinstance(data, dict):
                    snapshot = WalletSnapshot.from_record(data)
            except json.JSONDecodeError as e:
                logger.error("Stored wallet state is corrupt", error=str(e))

        self._snapshot = snapshot
        self._hydrated.set()
        logger.info(
            "Wallet state hydrated",
            favorites=len(snapshot.favorites),
            history=len(snapshot.search_history),
            custom_tokens=len(snapshot.custom_tokens),
            is_devnet=snapshot.is_devnet,
        )
        self._notify()
        return snapshot

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------
    # Favorites
    # -------------------------
    def is_favorite(self, address: str) -> bool:
        return address in self._snapshot.favorites

    async def add_favorite(self, address: str) -> WalletSnapshot:
        current = await self._current()
        if address in current.favorites:
            return current
        return await self._commit(
            current.model_copy(update={"favorites": (address, *current.favorites)})
        )

    async def remove_favorite(self, address: str) -> WalletSnapshot:
        current = await self._current()
        return await self._commit(
            current.model_copy(
                update={"favorites": tuple(a for a in current.favorites if a != address)}
            )
        )

    # -------------------------
    # Search history
    # -------------------------
    async def add_to_history(self, address: str) -> WalletSnapshot:
        current = await self._current()
        history = (address, *(a for a in current.search_history if a != address))
        return await self._commit(
            current.model_copy(update={"search_history": history[: self.history_limit]})
        )

    async def clear_history(self) -> WalletSnapshot:
        current = await self._current()
        return await self._commit(current.model_copy(update={"search_history": ()}))

    # -------------------------
    # Network
    # -------------------------
    async def toggle_network(self) -> WalletSnapshot:
        current = await self._current()
        return await self._commit(
            current.model_copy(update={"is_devnet": not current.is_devnet})
        )

    # -------------------------
    # Custom tokens
    # -------------------------
    async def add_custom_token(self, token: CustomToken) -> WalletSnapshot:
        """Prepend a custom token, replacing any entry with the same mint."""
        current = await self._current()
        tokens = (token, *(t for t in current.custom_tokens if t.mint != token.mint))
        return await self._commit(current.model_copy(update={"custom_tokens": tokens}))

    async def remove_custom_token(self, mint: str) -> WalletSnapshot:
        current = await self._current()
        tokens = tuple(t for t in current.custom_tokens if t.mint != mint)
        return await self._commit(current.model_copy(update={"custom_tokens": tokens}))

    async def replace_custom_tokens(self, tokens: list[CustomToken]) -> WalletSnapshot:
        """Replace the whole custom token collection, deduplicated by mint."""
        current = await self._current()
        unique: dict[str, CustomToken] = {}
        for token in tokens:
            unique.setdefault(token.mint, token)
        return await self._commit(
            current.model_copy(update={"custom_tokens": tuple(unique.values())})
        )

    # -------------------------
    # Internals
    # -------------------------
    async def _current(self) -> WalletSnapshot:
        if not self.has_hydrated:
            await self.hydrate()
        return self._snapshot

    async def _commit(self, snapshot: WalletSnapshot) -> WalletSnapshot:
        if snapshot == self._snapshot:
            return snapshot
        await self.store.save_state(self.key, json.dumps(snapshot.to_record()))
        self._snapshot = snapshot
        self._notify()
        return snapshot

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception as e:
                logger.error("Wallet state listener failed", error=str(e))
