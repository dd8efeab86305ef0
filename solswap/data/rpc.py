"""Read-only Solana JSON-RPC client for the wallet explorer."""

import time
from typing import Any

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..core.errors import NetworkError, RpcError, ServiceError
from ..core.types import SignatureInfo, TokenBalance, TokenSupply

logger = structlog.get_logger(__name__)

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
DEVNET_RPC_URL = "https://api.devnet.solana.com"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
LAMPORTS_PER_SOL = 1_000_000_000


def _is_retryable_error(exception) -> bool:
    """Check if an exception is retryable."""
    if isinstance(exception, httpx.TimeoutException):
        return True
    if isinstance(exception, httpx.NetworkError):
        return True
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code == 429
    if isinstance(exception, RpcError):
        retryable_codes = {
            -32603,  # Internal error
            -32005,  # Node is unhealthy
            -32004,  # Slot was skipped
            429,  # Too many requests
        }
        return exception.code in retryable_codes
    return False


class SolanaRpcClient:
    """JSON-RPC client for balance, token and signature reads."""

    def __init__(
        self,
        rpc_url: str = MAINNET_RPC_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize SolanaRpcClient.

        Args:
            rpc_url: Solana RPC endpoint URL
            client: Optional httpx client (will create one if not provided)
            timeout: Request timeout in seconds
        """
        self.rpc_url = rpc_url
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.timeout = timeout
        self._owns_client = client is None
        logger.info("SolanaRpcClient initialized", rpc_url=rpc_url, timeout=timeout)

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_is_retryable_error),
        reraise=True,
    )
    async def _make_rpc_request(self, method: str, params: list[Any]) -> Any:
        """Make a JSON-RPC request with retries.

        Args:
            method: RPC method name
            params: Method parameters

        Returns:
            RPC response result

        Raises:
            RpcError: For RPC-specific errors
            ServiceError: Body is not a JSON-RPC response object
            httpx.HTTPError: For HTTP errors
        """
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }

        start_time = time.time()
        try:
            response = await self.client.post(
                self.rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()

            logger.debug(
                "RPC request completed",
                method=method,
                duration=time.time() - start_time,
                status_code=response.status_code,
            )

            try:
                data = response.json()
            except ValueError as e:
                logger.error("RPC response is not JSON", method=method)
                raise ServiceError(
                    response.status_code, response.text, service="RPC"
                ) from e
            if not isinstance(data, dict):
                logger.error("Unexpected RPC response (expected object)", method=method)
                raise ServiceError(response.status_code, response.text, service="RPC")

            error = data.get("error")
            if error is not None:
                if not isinstance(error, dict):
                    raise RpcError(code=-1, message=str(error))
                raise RpcError(
                    code=error.get("code", -1),
                    message=error.get("message", "Unknown RPC error"),
                    data=error.get("data"),
                )

            return data.get("result")

        except httpx.HTTPError as e:
            logger.error(
                "RPC request failed",
                method=method,
                duration=time.time() - start_time,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

    async def call(self, method: str, params: list[Any]) -> Any:
        """Call an RPC method, mapping transport failures to pipeline errors.

        Raises:
            RpcError: The node returned an ``error`` object
            NetworkError: Transport failure after retries
            ServiceError: Non-2xx HTTP status after retries, or a malformed body
        """
        try:
            return await self._make_rpc_request(method, params)
        except httpx.HTTPStatusError as e:
            raise ServiceError(
                e.response.status_code, e.response.text, service="RPC"
            ) from e
        except httpx.RequestError as e:
            raise NetworkError() from e

    async def get_balance(self, address: str) -> int:
        """SOL balance in lamports."""
        result = await self.call("getBalance", [address])
        return int((result or {}).get("value") or 0)

    async def get_token_accounts_by_owner(self, address: str) -> list[TokenBalance]:
        """Non-zero SPL token balances of an owner."""
        result = await self.call(
            "getTokenAccountsByOwner",
            [address, {"programId": TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed"}],
        )
        balances: list[TokenBalance] = []
        for account in (result or {}).get("value") or []:
            try:
                info = account["account"]["data"]["parsed"]["info"]
                ui_amount = info["tokenAmount"].get("uiAmount") or 0.0
                if ui_amount > 0:
                    balances.append(
                        TokenBalance(mint=info["mint"], ui_amount=float(ui_amount))
                    )
            except (KeyError, TypeError) as e:
                logger.warning("Skipping unparsable token account", error=str(e))
        return balances

    async def get_signatures_for_address(
        self, address: str, limit: int = 10
    ) -> list[SignatureInfo]:
        """Most recent transaction signatures of an address."""
        result = await self.call("getSignaturesForAddress", [address, {"limit": limit}])
        return [
            SignatureInfo(
                signature=item["signature"],
                block_time=item.get("blockTime"),
                ok=item.get("err") is None,
            )
            for item in result or []
        ]

    async def get_token_supply(self, mint: str) -> TokenSupply:
        """Total supply and decimals of a mint."""
        result = await self.call("getTokenSupply", [mint])
        value = (result or {}).get("value") or {}
        return TokenSupply(
            mint=mint,
            supply=float(value.get("uiAmount") or 0.0),
            decimals=int(value.get("decimals") or 0),
        )
