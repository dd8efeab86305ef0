"""Debounced, race-safe swap quote state machine.

States::

    IDLE --input--> DEBOUNCING --timer--> FETCHING --> READY | FAILED
      ^                 |  ^                  |
      +--amount <= 0 ---+  +------input-------+

Every input change (amount, either token, direction flip, catalog change
that alters decimals) clears the current quote synchronously, cancels the
pending debounce timer and advances ``pending_request_id``. In-flight
requests are never cancelled; their responses are dropped on arrival unless
their request id is still the current one.

All methods must be called from the running event loop.
"""

import asyncio
import itertools
from collections.abc import Callable, Iterable

import structlog

from ..core.errors import SolswapError
from ..core.interfaces import QuoteProvider
from ..core.types import (
    CustomToken,
    QuoteRequestState,
    QuoteStatus,
    QuoteView,
    SwapQuote,
    TokenDescriptor,
)
from ..core.units import from_smallest_unit, ratio, to_smallest_unit
from ..tokens.catalog import DEFAULT_CATALOG, TokenCatalog
from ..tokens.registry import PRESET_BY_MINT, SOL_MINT, USDC_MINT

logger = structlog.get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.6

QuoteListener = Callable[[QuoteView], None]


class QuoteEngine:
    """Quote state for one swap form."""

    def __init__(
        self,
        provider: QuoteProvider,
        catalog: TokenCatalog = DEFAULT_CATALOG,
        input_token: TokenDescriptor | None = None,
        output_token: TokenDescriptor | None = None,
        custom_tokens: Iterable[CustomToken] = (),
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        slippage_bps: int | None = None,
    ) -> None:
        """Initialize quote engine.

        Args:
            provider: Aggregator used to fetch quotes
            catalog: Token catalog used to re-resolve selections
            input_token: Initial input token (SOL by default)
            output_token: Initial output token (USDC by default)
            custom_tokens: Current custom token collection
            debounce_seconds: Quiet period before a quote is requested
            slippage_bps: Slippage override, provider default when None
        """
        self.provider = provider
        self.catalog = catalog
        self.debounce_seconds = debounce_seconds
        self.slippage_bps = slippage_bps

        self._custom_tokens: tuple[CustomToken, ...] = tuple(custom_tokens)
        self._input = input_token or PRESET_BY_MINT[SOL_MINT]
        self._output = output_token or PRESET_BY_MINT[USDC_MINT]
        self._input_detached = self._is_detached(self._input)
        self._output_detached = self._is_detached(self._output)
        self._amount_text = ""

        self._status = QuoteStatus.IDLE
        self._quote: SwapQuote | None = None
        self._request = QuoteRequestState()
        self._ids = itertools.count(1)

        self._debounce_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._listeners: list[QuoteListener] = []

    # -------------------------
    # Read side
    # -------------------------
    @property
    def status(self) -> QuoteStatus:
        return self._status

    @property
    def amount_text(self) -> str:
        return self._amount_text

    @property
    def input_token(self) -> TokenDescriptor:
        return self._input

    @property
    def output_token(self) -> TokenDescriptor:
        return self._output

    @property
    def request_state(self) -> QuoteRequestState:
        return self._request

    @property
    def input_amount(self) -> int:
        """Current input amount in smallest units."""
        return to_smallest_unit(self._amount_text, self._input.decimals)

    @property
    def current_quote(self) -> SwapQuote | None:
        """The quote, only while READY and still valid for the current inputs."""
        if self._status is not QuoteStatus.READY or self._quote is None:
            return None
        if not self._quote.matches(
            self._input.mint, self._output.mint, self.input_amount
        ):
            return None
        return self._quote

    @property
    def view(self) -> QuoteView:
        """Snapshot with derived display fields."""
        quote = self.current_quote
        view = QuoteView(
            status=self._status,
            input_token=self._input,
            output_token=self._output,
            amount_text=self._amount_text,
            quote=quote,
            request=self._request,
            input_token_detached=self._input_detached,
            output_token_detached=self._output_detached,
        )
        if quote is None:
            return view

        output_display = from_smallest_unit(quote.output_amount, self._output.decimals)
        input_display = from_smallest_unit(quote.input_amount, self._input.decimals)
        return view.model_copy(
            update={
                "output_amount_display": output_display,
                "minimum_received_display": from_smallest_unit(
                    quote.minimum_received, self._output.decimals
                ),
                "price_impact_percent": quote.price_impact_fraction * 100,
                "exchange_rate": ratio(output_display, input_display),
                "route_hop_count": quote.route_hop_count,
            }
        )

    def subscribe(self, listener: QuoteListener) -> Callable[[], None]:
        """Register a state-change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------
    # Inputs
    # -------------------------
    def set_amount(self, amount_text: str) -> None:
        if amount_text == self._amount_text:
            return
        self._amount_text = amount_text
        self._restart("amount")

    def set_input_token(self, token: TokenDescriptor) -> None:
        if token == self._input:
            return
        self._input = token
        self._input_detached = self._is_detached(token)
        self._restart("input_token")

    def set_output_token(self, token: TokenDescriptor) -> None:
        if token == self._output:
            return
        self._output = token
        self._output_detached = self._is_detached(token)
        self._restart("output_token")

    def set_pair(self, input_token: TokenDescriptor, output_token: TokenDescriptor) -> None:
        """Select both tokens with a single invalidation."""
        if input_token == self._input and output_token == self._output:
            return
        self._input, self._output = input_token, output_token
        self._input_detached = self._is_detached(input_token)
        self._output_detached = self._is_detached(output_token)
        self._restart("pair")

    def flip(self) -> None:
        """Swap direction, seeding the new input from the prior output amount."""
        seeded = self.view.output_amount_display or ""
        self._input, self._output = self._output, self._input
        self._input_detached, self._output_detached = (
            self._output_detached,
            self._input_detached,
        )
        self._amount_text = seeded
        self._restart("flip")

    def reset(self) -> None:
        """Back to IDLE with an empty amount (after a successful swap)."""
        self._amount_text = ""
        self._restart("reset")

    def update_custom_tokens(self, custom_tokens: Iterable[CustomToken]) -> None:
        """Re-resolve the selected tokens after the custom catalog changed.

        A selection that no longer resolves keeps its last-known descriptor
        and is flagged as detached. A selection whose decimals changed
        invalidates the quote.
        """
        self._custom_tokens = tuple(custom_tokens)
        decimals_changed = False

        resolved = self.catalog.resolve(self._input.mint, self._custom_tokens)
        self._input_detached = resolved is None
        if resolved is not None and resolved != self._input:
            decimals_changed |= resolved.decimals != self._input.decimals
            self._input = resolved

        resolved = self.catalog.resolve(self._output.mint, self._custom_tokens)
        self._output_detached = resolved is None
        if resolved is not None and resolved != self._output:
            decimals_changed |= resolved.decimals != self._output.decimals
            self._output = resolved

        if self._input_detached or self._output_detached:
            logger.warning(
                "Selected token no longer in catalog, keeping last known descriptor",
                input_mint=self._input.mint if self._input_detached else None,
                output_mint=self._output.mint if self._output_detached else None,
            )

        if decimals_changed:
            self._restart("catalog")
        else:
            self._notify()

    def refresh(self) -> asyncio.Task | None:
        """Request a quote for the current inputs now, skipping the debounce.

        Returns:
            The in-flight request task, or None when the amount is not positive
        """
        request_id = self._invalidate()
        if self.input_amount <= 0:
            self._status = QuoteStatus.IDLE
            self._notify()
            return None
        return self._issue(request_id)

    # -------------------------
    # Lifecycle
    # -------------------------
    async def drain(self) -> None:
        """Wait for the pending debounce timer and all in-flight requests."""
        while True:
            pending = [
                t
                for t in (self._debounce_task, *self._inflight)
                if t is not None and not t.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel the pending debounce timer and let in-flight requests finish."""
        self._cancel_debounce()
        await self.drain()
        self._listeners.clear()

    # -------------------------
    # Internals
    # -------------------------
    def _is_detached(self, token: TokenDescriptor) -> bool:
        return self.catalog.resolve(token.mint, self._custom_tokens) is None

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    def _invalidate(self) -> int:
        """Drop the quote, cancel the timer and start a new request generation."""
        self._cancel_debounce()
        request_id = next(self._ids)
        self._quote = None
        self._request = QuoteRequestState(pending_request_id=request_id)
        return request_id

    def _restart(self, reason: str) -> None:
        request_id = self._invalidate()
        amount = self.input_amount

        if amount <= 0:
            self._status = QuoteStatus.IDLE
            logger.debug("Quote idle", reason=reason, request_id=request_id)
            self._notify()
            return

        self._status = QuoteStatus.DEBOUNCING
        self._debounce_task = asyncio.get_running_loop().create_task(
            self._debounce(request_id)
        )
        logger.debug(
            "Quote debouncing",
            reason=reason,
            request_id=request_id,
            amount=amount,
            delay=self.debounce_seconds,
        )
        self._notify()

    async def _debounce(self, request_id: int) -> None:
        await asyncio.sleep(self.debounce_seconds)
        if request_id != self._request.pending_request_id:
            return
        self._debounce_task = None
        self._issue(request_id)

    def _issue(self, request_id: int) -> asyncio.Task:
        input_mint = self._input.mint
        output_mint = self._output.mint
        amount = self.input_amount

        self._status = QuoteStatus.FETCHING
        self._request = QuoteRequestState(pending_request_id=request_id, is_fetching=True)

        task = asyncio.get_running_loop().create_task(
            self._fetch(request_id, input_mint, output_mint, amount)
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        self._notify()
        return task

    async def _fetch(
        self, request_id: int, input_mint: str, output_mint: str, amount: int
    ) -> None:
        quote: SwapQuote | None = None
        error: str | None = None
        try:
            quote = await self.provider.get_quote(
                input_mint, output_mint, amount, self.slippage_bps
            )
        except SolswapError as e:
            error = str(e)
        except Exception as e:
            logger.error(
                "Unexpected quote failure", error=str(e), error_type=type(e).__name__
            )
            error = f"Quote failed: {e}"

        if request_id != self._request.pending_request_id:
            logger.warning(
                "Discarding superseded quote response",
                request_id=request_id,
                current_request_id=self._request.pending_request_id,
            )
            return

        if quote is not None and not quote.matches(input_mint, output_mint, amount):
            logger.error(
                "Quote does not match request",
                input_mint=input_mint,
                output_mint=output_mint,
                amount=amount,
                quote_input_amount=quote.input_amount,
            )
            quote, error = None, "Quote did not match the requested swap"

        if quote is None:
            self._status = QuoteStatus.FAILED
            self._request = QuoteRequestState(
                pending_request_id=request_id, last_error=error
            )
            logger.warning("Quote failed", request_id=request_id, error=error)
        else:
            self._status = QuoteStatus.READY
            self._quote = quote
            self._request = QuoteRequestState(pending_request_id=request_id)
            logger.info(
                "Quote ready",
                request_id=request_id,
                output_amount=quote.output_amount,
                price_impact=quote.price_impact_fraction,
            )
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.view
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception as e:
                logger.error("Quote listener failed", error=str(e))
