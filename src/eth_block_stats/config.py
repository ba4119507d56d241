import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).lower() == "true"


@dataclass
class Config:
    """Application configuration."""

    # Ethereum node (JSON-RPC over HTTP)
    eth_node: str
    rpc_timeout: float = 30.0

    # Ranking sizes
    num_top_addresses: int = 25
    num_top_addresses_large: int = 100
    num_top_transactions: int = 20

    # Fetcher pool
    num_fetch_workers: int = 5
    block_queue_size: int = 100

    # Address datasets
    addresses_json: str = "data/addresses.json"
    tokens_json: str = "data/tokens.json"

    # Skips receipts and on-demand address classification
    low_api_mode: bool = False

    # Debug helpers
    debug: bool = False
    debug_print_flashbots: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment variables."""
        eth_node = os.getenv("ETH_NODE")
        if not eth_node:
            raise ValueError("ETH_NODE environment variable is required")

        return cls(
            eth_node=eth_node,
            rpc_timeout=float(os.getenv("RPC_TIMEOUT", "30")),
            num_top_addresses=int(os.getenv("NUM_TOP_ADDR", "25")),
            num_top_addresses_large=int(os.getenv("NUM_TOP_ADDR_L", "100")),
            num_top_transactions=int(os.getenv("NUM_TOP_TX", "20")),
            num_fetch_workers=int(os.getenv("NUM_FETCH_WORKERS", "5")),
            block_queue_size=int(os.getenv("BLOCK_QUEUE_SIZE", "100")),
            addresses_json=os.getenv("ADDRESSES_JSON", "data/addresses.json"),
            tokens_json=os.getenv("TOKENS_JSON", "data/tokens.json"),
            low_api_mode=_env_bool("LOW_API"),
            debug=_env_bool("DEBUG"),
            debug_print_flashbots=_env_bool("MEV"),
        )
