"""Tests for the token registry and catalog."""

from solswap.core.types import CustomToken
from solswap.tokens.catalog import DEFAULT_CATALOG, TokenCatalog
from solswap.tokens.registry import (
    PRESET_BY_MINT,
    PRESET_TOKENS,
    SOL_MINT,
    TOKEN_MINTS,
    USDC_MINT,
)

POPCAT_MINT = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"
OTHER_MINT = "A8C3xuqscfmyLrte3VmTqrAq8kgMASius9AFNANwpump"


def custom(mint: str, symbol: str = "CUST", decimals: int = 6) -> CustomToken:
    return CustomToken(
        symbol=symbol,
        mint=mint,
        decimals=decimals,
        display_color="#EF4444",
        display_name=f"{symbol} token",
    )


class TestPresetRegistry:
    """Test the built-in token registry."""

    def test_preset_order(self):
        """Presets keep their display order."""
        assert [t.symbol for t in PRESET_TOKENS] == [
            "SOL",
            "USDC",
            "USDT",
            "BONK",
            "JUP",
            "WIF",
        ]

    def test_preset_metadata(self):
        """Preset decimals and mints match the registry."""
        assert PRESET_BY_MINT[SOL_MINT].decimals == 9
        assert PRESET_BY_MINT[USDC_MINT].decimals == 6
        assert PRESET_BY_MINT[TOKEN_MINTS["BONK"]].decimals == 5
        assert all(t.kind == "preset" for t in PRESET_TOKENS)


class TestTokenCatalog:
    """Test resolution, merging and filtering."""

    def test_resolve_preset(self):
        """Preset mints resolve to their descriptor."""
        assert DEFAULT_CATALOG.resolve(SOL_MINT).symbol == "SOL"

    def test_resolve_preset_wins_over_custom(self):
        """A custom entry with a preset mint never shadows the preset."""
        shadow = custom(SOL_MINT, symbol="FAKE", decimals=2)

        token = DEFAULT_CATALOG.resolve(SOL_MINT, [shadow])

        assert token.symbol == "SOL"
        assert token.decimals == 9
        assert token.kind == "preset"

    def test_resolve_custom(self):
        """Unknown preset mints fall back to custom tokens."""
        token = DEFAULT_CATALOG.resolve(POPCAT_MINT, [custom(POPCAT_MINT, "POPCAT")])
        assert token.symbol == "POPCAT"

    def test_resolve_unknown(self):
        """Unknown mints resolve to None."""
        assert DEFAULT_CATALOG.resolve(POPCAT_MINT, []) is None

    def test_merge_custom_first(self):
        """Custom tokens come first, in their stored order, then presets."""
        tokens = [custom(POPCAT_MINT, "POPCAT"), custom(OTHER_MINT, "OTHER")]

        merged = DEFAULT_CATALOG.merge(tokens)

        assert [t.symbol for t in merged[:2]] == ["POPCAT", "OTHER"]
        assert [t.symbol for t in merged[2:]] == [t.symbol for t in PRESET_TOKENS]

    def test_merge_drops_shadowed_and_duplicates(self):
        """Preset-shadowed and repeated custom entries are dropped."""
        tokens = [
            custom(POPCAT_MINT, "POPCAT"),
            custom(SOL_MINT, "FAKE"),
            custom(POPCAT_MINT, "POPCAT2"),
        ]

        merged = DEFAULT_CATALOG.merge(tokens)
        mints = [t.mint for t in merged]

        assert len(mints) == len(set(mints))
        assert merged[0].symbol == "POPCAT"
        assert "FAKE" not in [t.symbol for t in merged]

    def test_resolve_symbol(self):
        """Symbols resolve case-insensitively, mints directly."""
        tokens = [custom(POPCAT_MINT, "POPCAT")]
        assert DEFAULT_CATALOG.resolve_symbol("usdc").mint == USDC_MINT
        assert DEFAULT_CATALOG.resolve_symbol("popcat", tokens).mint == POPCAT_MINT
        assert DEFAULT_CATALOG.resolve_symbol(SOL_MINT).symbol == "SOL"
        assert DEFAULT_CATALOG.resolve_symbol("NOPE", tokens) is None

    def test_filter(self):
        """Filtering matches symbol, name or mint substrings."""
        merged = DEFAULT_CATALOG.merge([])

        assert [t.symbol for t in TokenCatalog.filter("us", merged)] == ["USDC", "USDT"]
        assert [t.symbol for t in TokenCatalog.filter("dogwif", merged)] == ["WIF"]
        assert [t.symbol for t in TokenCatalog.filter("JUPyi", merged)] == ["JUP"]
        assert TokenCatalog.filter("  ", merged) == merged

    def test_custom_preset_list(self):
        """A catalog can be built over a different preset set."""
        catalog = TokenCatalog(PRESET_TOKENS[:1])
        assert catalog.is_preset(SOL_MINT)
        assert not catalog.is_preset(USDC_MINT)
