"""
Chain Identity Lookup

Maps a chain id reported by the wallet to the display name and native currency symbol
the wizard shows next to fees. Only defaults are derived from the chain id; validation
never branches on it.
"""
from typing import Callable, Optional

from mcp_token_launch import config
from mcp_token_launch.schemas import NetworkInfo

ChainIdProvider = Callable[[], Optional[int]]

CHAIN_NAMES = {
    1: "Ethereum",
    11155111: "Sepolia",
    56: "BSC",
    137: "Polygon",
    42161: "Arbitrum",
    10: "Optimism",
    43114: "Avalanche",
    250: "Fantom",
    8453: "Base",
    42220: "Celo",
}

NATIVE_SYMBOLS = {
    56: "BNB",
    137: "MATIC",
    43114: "AVAX",
    250: "FTM",
    42220: "CELO",
}


def get_chain_name(chain_id: Optional[int]) -> str:
    if not chain_id:
        return "Unknown"
    return CHAIN_NAMES.get(chain_id, f"Chain {chain_id}")


def get_native_symbol(chain_id: Optional[int]) -> str:
    # Ethereum and its rollups settle in ETH
    return NATIVE_SYMBOLS.get(chain_id, "ETH")


def network_defaults(chain_id: Optional[int]) -> NetworkInfo:
    return NetworkInfo(
        chain_id=chain_id,
        chain_name=get_chain_name(chain_id),
        native_symbol=get_native_symbol(chain_id),
    )


def default_chain_id() -> Optional[int]:
    """Chain-identity provider used when no wallet is connected."""
    return config.DEFAULT_CHAIN_ID
