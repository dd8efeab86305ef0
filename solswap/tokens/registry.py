"""Built-in registry of well-known Solana tokens."""

from ..core.types import PresetToken

TOKEN_LIST_CDN = (
    "https://raw.githubusercontent.com/solana-labs/token-list/main/assets/mainnet"
)

TOKEN_MINTS = {
    "SOL": "So11111111111111111111111111111111111111112",
    "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    "BONK": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
    "JUP": "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",
    "WIF": "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm",
}

SOL_MINT = TOKEN_MINTS["SOL"]
USDC_MINT = TOKEN_MINTS["USDC"]

# Display order
PRESET_TOKENS: tuple[PresetToken, ...] = (
    PresetToken(
        symbol="SOL",
        mint=SOL_MINT,
        decimals=9,
        display_color="#9945FF",
        display_name="Solana",
        logo_ref=f"{TOKEN_LIST_CDN}/{SOL_MINT}/logo.png",
    ),
    PresetToken(
        symbol="USDC",
        mint=USDC_MINT,
        decimals=6,
        display_color="#2775CA",
        display_name="USD Coin",
        logo_ref=f"{TOKEN_LIST_CDN}/{USDC_MINT}/logo.png",
    ),
    PresetToken(
        symbol="USDT",
        mint=TOKEN_MINTS["USDT"],
        decimals=6,
        display_color="#26A17B",
        display_name="Tether",
        logo_ref=f"{TOKEN_LIST_CDN}/{TOKEN_MINTS['USDT']}/logo.svg",
    ),
    PresetToken(
        symbol="BONK",
        mint=TOKEN_MINTS["BONK"],
        decimals=5,
        display_color="#F7931A",
        display_name="Bonk",
        logo_ref="https://assets.coingecko.com/coins/images/28600/large/bonk.jpg",
    ),
    PresetToken(
        symbol="JUP",
        mint=TOKEN_MINTS["JUP"],
        decimals=6,
        display_color="#14F195",
        display_name="Jupiter",
        logo_ref="https://static.jup.ag/jup/icon.png",
    ),
    PresetToken(
        symbol="WIF",
        mint=TOKEN_MINTS["WIF"],
        decimals=6,
        display_color="#E0B354",
        display_name="dogwifhat",
        logo_ref="https://assets.coingecko.com/coins/images/33566/large/dogwifhat.jpg",
    ),
)

PRESET_BY_MINT: dict[str, PresetToken] = {token.mint: token for token in PRESET_TOKENS}
