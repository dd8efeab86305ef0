"""Exception hierarchy for the swap pipeline."""

from typing import Any

NETWORK_ERROR_MESSAGE = "Network error - check your connection and try again"
NO_ROUTE_MESSAGE = "No route found"


class SolswapError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(SolswapError):
    """Malformed user input, caught before any network call."""


class InvalidAddressError(ValidationError):
    """Text is not shaped like a base58 on-chain address."""

    def __init__(self, address: str) -> None:
        self.address = address
        super().__init__("Not a valid Solana mint address")


class NetworkError(SolswapError):
    """Transport failure or timeout."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE) -> None:
        super().__init__(message)


class ServiceError(SolswapError):
    """Remote service answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "", service: str = "service"):
        self.status_code = status_code
        self.body = body
        self.service = service
        super().__init__(f"{service} error (HTTP {status_code})")


class NoRouteError(SolswapError):
    """Aggregator found no path between the two tokens."""

    def __init__(self, message: str = NO_ROUTE_MESSAGE) -> None:
        super().__init__(message)


class TokenNotFoundError(SolswapError):
    """Metadata service has no exact match for the mint."""

    def __init__(self, mint: str) -> None:
        self.mint = mint
        super().__init__("Token not found - not listed on Jupiter")


class BuildFailedError(SolswapError):
    """Aggregator could not build a transaction for the quote."""


class NotConnectedError(SolswapError):
    """Submission attempted without a signer address."""

    def __init__(self) -> None:
        super().__init__("Connect a wallet first")


class NoQuoteError(SolswapError):
    """Submission attempted without a ready quote."""

    def __init__(self) -> None:
        super().__init__("Wait for a quote before swapping")


class SwapInProgressError(SolswapError):
    """Another submission is already running."""

    def __init__(self) -> None:
        super().__init__("A swap is already in progress")


class SigningError(SolswapError):
    """Signing collaborator failed."""


class SigningRejectedError(SigningError):
    """User or wallet declined to sign."""


class RpcError(SolswapError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, code: int, message: str, data: Any | None = None) -> None:
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC Error {code}: {message}")
