"""External wallet signer bridge."""

import asyncio
import subprocess

import structlog

from ..core.errors import SigningError, SigningRejectedError
from ..core.interfaces import WalletSigner

logger = structlog.get_logger(__name__)

# Exit status the bridge uses when the user declines
REJECTED_EXIT_CODE = 2
_REJECTION_MARKERS = ("reject", "declined", "denied")


class ExternalCommandSigner(WalletSigner):
    """Signer using an external command (e.g., a mobile wallet bridge).

    The command receives the base64 transaction as its last argument, signs
    and broadcasts it, and prints the signature on stdout. ``--pubkey``
    prints the wallet's address.
    """

    def __init__(
        self, command: str, args: list[str] | None = None, timeout: int = 120
    ) -> None:
        """Initialize ExternalCommandSigner.

        Args:
            command: Path to external signing command
            args: Additional arguments for the command
            timeout: Timeout in seconds for command execution
        """
        self.command = command
        self.args = args or []
        self.timeout = timeout
        logger.info("ExternalCommandSigner initialized", command=command)

    def _run(self, extra: list[str]) -> subprocess.CompletedProcess:
        cmd = [self.command] + self.args + extra
        try:
            return subprocess.run(
                cmd, capture_output=True, text=True, timeout=self.timeout, check=False
            )
        except subprocess.TimeoutExpired as e:
            raise SigningError(
                f"External signing command timed out after {self.timeout} seconds"
            ) from e
        except OSError as e:
            raise SigningError(f"Failed to execute external signing command: {e}") from e

    async def sign_and_submit(self, tx_base64: str) -> str:
        """Sign and broadcast a transaction via the external command.

        Args:
            tx_base64: Base64-encoded serialized transaction

        Returns:
            Transaction signature

        Raises:
            SigningRejectedError: The user or wallet declined
            SigningError: Any other command failure
        """
        result = await asyncio.to_thread(self._run, [tx_base64])

        stderr = (result.stderr or "").strip()
        if result.returncode != 0:
            lowered = stderr.lower()
            if result.returncode == REJECTED_EXIT_CODE or any(
                marker in lowered for marker in _REJECTION_MARKERS
            ):
                logger.warning("Signing rejected", stderr=stderr[:200])
                raise SigningRejectedError(stderr or "Transaction rejected by wallet")
            raise SigningError(f"External signing command failed: {stderr}")

        signature = result.stdout.strip()
        if not signature:
            raise SigningError("External command returned empty output")
        return signature

    def pubkey_base58(self) -> str:
        """Get the wallet address from the external command."""
        result = self._run(["--pubkey"])
        if result.returncode != 0 or not result.stdout.strip():
            raise SigningError(
                f"Failed to get public key from external command: {result.stderr}"
            )
        return result.stdout.strip()
