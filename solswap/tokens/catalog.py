"""Merged view over preset and user-added custom tokens."""

from collections.abc import Iterable, Mapping, Sequence

import structlog

from ..core.types import CustomToken, PresetToken, TokenDescriptor
from .registry import PRESET_BY_MINT, PRESET_TOKENS

logger = structlog.get_logger(__name__)


class TokenCatalog:
    """Pure resolve/merge/filter layer over the two token catalogs.

    The catalog owns only the presets. Custom tokens are passed in by the
    caller on every call; the catalog never stores or mutates them. A mint
    that appears in both catalogs always resolves to the preset.
    """

    def __init__(
        self,
        presets: Sequence[PresetToken] = PRESET_TOKENS,
        preset_by_mint: Mapping[str, PresetToken] | None = None,
    ) -> None:
        self.presets = tuple(presets)
        self._preset_by_mint = (
            dict(preset_by_mint)
            if preset_by_mint is not None
            else {token.mint: token for token in self.presets}
        )

    def is_preset(self, mint: str) -> bool:
        return mint in self._preset_by_mint

    def resolve(
        self, mint: str, custom_tokens: Iterable[CustomToken] = ()
    ) -> TokenDescriptor | None:
        """Resolve a mint to its descriptor.

        Args:
            mint: Mint address
            custom_tokens: User-added tokens, newest first

        Returns:
            Preset descriptor if known, else the first custom match, else None
        """
        preset = self._preset_by_mint.get(mint)
        if preset is not None:
            return preset
        for token in custom_tokens:
            if token.mint == mint:
                return token
        return None

    def resolve_symbol(
        self, text: str, custom_tokens: Iterable[CustomToken] = ()
    ) -> TokenDescriptor | None:
        """Resolve a symbol (case-insensitive) or a mint address."""
        customs = list(custom_tokens)
        by_mint = self.resolve(text, customs)
        if by_mint is not None:
            return by_mint
        wanted = text.strip().upper()
        for token in self.merge(customs):
            if token.symbol.upper() == wanted:
                return token
        return None

    def merge(self, custom_tokens: Iterable[CustomToken]) -> list[TokenDescriptor]:
        """Build the display list: custom tokens first, then presets.

        Custom tokens keep their order (most recently added first). Entries
        whose mint is a preset, or repeats an earlier custom entry, are
        dropped.
        """
        merged: list[TokenDescriptor] = []
        seen: set[str] = set()
        for token in custom_tokens:
            if token.mint in self._preset_by_mint:
                logger.debug("Custom token shadowed by preset", mint=token.mint)
                continue
            if token.mint in seen:
                continue
            seen.add(token.mint)
            merged.append(token)
        merged.extend(self.presets)
        return merged

    @staticmethod
    def filter(
        query: str, tokens: Iterable[TokenDescriptor]
    ) -> list[TokenDescriptor]:
        """Case-insensitive substring match on symbol, name or mint."""
        needle = query.strip().lower()
        if not needle:
            return list(tokens)
        return [
            token
            for token in tokens
            if needle in token.symbol.lower()
            or needle in token.display_name.lower()
            or needle in token.mint.lower()
        ]


DEFAULT_CATALOG = TokenCatalog(PRESET_TOKENS, PRESET_BY_MINT)
