"""Core data types for the swap pipeline."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TokenDescriptor(BaseModel):
    """Tradable token with display metadata, keyed by mint."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["preset", "custom"] = Field(description="Catalog the token came from")
    symbol: str = Field(description="Display symbol, e.g. SOL")
    mint: str = Field(description="Token mint address (identity key)")
    decimals: int = Field(ge=0, description="Decimal places of the smallest unit")
    display_color: str = Field(description="Brand or placeholder color")
    display_name: str = Field(description="Human-readable token name")
    logo_ref: str | None = Field(
        default=None, description="Remote logo URI; None renders a placeholder"
    )


class PresetToken(TokenDescriptor):
    """Built-in token from the static registry."""

    kind: Literal["preset"] = Field(default="preset", description="Preset tag")


class CustomToken(TokenDescriptor):
    """User-added token discovered by address lookup."""

    kind: Literal["custom"] = Field(default="custom", description="Custom tag")

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted custom-token record shape."""
        return {
            "mint": self.mint,
            "symbol": self.symbol,
            "name": self.display_name,
            "decimals": self.decimals,
            "logoUri": self.logo_ref,
            "color": self.display_color,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "CustomToken":
        """Build from a persisted custom-token record."""
        return cls(
            mint=data["mint"],
            symbol=data["symbol"],
            display_name=data.get("name") or data["symbol"],
            decimals=int(data["decimals"]),
            logo_ref=data.get("logoUri"),
            display_color=data["color"],
        )


class SwapQuote(BaseModel):
    """Priced route between two tokens for one exact input amount."""

    model_config = ConfigDict(frozen=True)

    input_mint: str = Field(description="Input token mint")
    output_mint: str = Field(description="Output token mint")
    input_amount: int = Field(ge=0, description="Input amount in smallest units")
    output_amount: int = Field(ge=0, description="Output amount in smallest units")
    price_impact_fraction: float = Field(
        description="Price impact as a fraction (0.012 = 1.2%)"
    )
    route_hop_count: int = Field(ge=0, description="Number of hops in the route plan")
    slippage_tolerance_bps: int = Field(ge=0, description="Slippage in basis points")
    minimum_received: int = Field(
        ge=0, description="Output amount after slippage in smallest units"
    )
    swap_mode: str = Field(default="ExactIn", description="Aggregator swap mode")
    raw: dict[str, Any] = Field(
        default_factory=dict, description="Quote object exactly as the aggregator sent it"
    )

    def matches(self, input_mint: str, output_mint: str, input_amount: int) -> bool:
        """Check whether this quote was fetched for the given triple."""
        return (
            self.input_mint == input_mint
            and self.output_mint == output_mint
            and self.input_amount == input_amount
        )


class QuoteStatus(str, Enum):
    """Quote engine states."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    FETCHING = "fetching"
    READY = "ready"
    FAILED = "failed"


class QuoteRequestState(BaseModel):
    """Engine's view of in-flight quote work."""

    pending_request_id: int = Field(
        default=0, description="Identity of the most recent request generation"
    )
    is_fetching: bool = Field(default=False, description="Whether a request is in flight")
    last_error: str | None = Field(default=None, description="Last surfaced error message")


class QuoteView(BaseModel):
    """Snapshot of the quote engine for rendering."""

    status: QuoteStatus = Field(description="Current engine state")
    input_token: TokenDescriptor = Field(description="Selected input token")
    output_token: TokenDescriptor = Field(description="Selected output token")
    amount_text: str = Field(description="Raw amount text as typed")
    quote: SwapQuote | None = Field(default=None, description="Current valid quote")
    request: QuoteRequestState = Field(description="Request bookkeeping")
    output_amount_display: str | None = Field(
        default=None, description="Output amount in human units"
    )
    minimum_received_display: str | None = Field(
        default=None, description="Minimum received in human units"
    )
    price_impact_percent: float | None = Field(
        default=None, description="Price impact as a percentage"
    )
    exchange_rate: str | None = Field(
        default=None, description="Output units per input unit"
    )
    route_hop_count: int | None = Field(default=None, description="Route hop count")
    input_token_detached: bool = Field(
        default=False, description="Input token no longer resolves in the catalog"
    )
    output_token_detached: bool = Field(
        default=False, description="Output token no longer resolves in the catalog"
    )


class TokenBalance(BaseModel):
    """SPL token balance held by an owner."""

    mint: str = Field(description="Token mint address")
    ui_amount: float = Field(description="Balance in human units")


class SignatureInfo(BaseModel):
    """Recent transaction signature for an address."""

    signature: str = Field(description="Transaction signature")
    block_time: int | None = Field(default=None, description="Unix block time")
    ok: bool = Field(description="Whether the transaction succeeded")


class TokenSupply(BaseModel):
    """Total supply of a mint."""

    mint: str = Field(description="Token mint address")
    supply: float = Field(description="Supply in human units")
    decimals: int = Field(description="Mint decimals")


class WalletOverview(BaseModel):
    """Balances and recent activity of one address."""

    address: str = Field(description="Wallet address")
    lamports: int = Field(description="SOL balance in lamports")
    sol: float = Field(description="SOL balance")
    tokens: list[TokenBalance] = Field(default_factory=list, description="Token balances")
    signatures: list[SignatureInfo] = Field(
        default_factory=list, description="Recent signatures"
    )


class WatchlistItem(BaseModel):
    """Favorite address with its SOL balance."""

    address: str = Field(description="Wallet address")
    balance: float | None = Field(
        default=None, description="SOL balance, None when the lookup failed"
    )
