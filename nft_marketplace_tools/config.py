"""
Project configuration

Networks, compilers, RPC endpoints and API keys. Secrets are read from the
environment (a local .env file is loaded first); every value falls back to a
placeholder so that imports never fail on a fresh checkout.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()

MAINNET_RPC_URL = os.getenv("MAINNET_RPC_URL", "http://localhost:8545")
SEPOLIA_RPC_URL = os.getenv("SEPOLIA_RPC_URL", "http://localhost:8545")
SEPOLIA_PRIV_KEY = os.getenv("SEPOLIA_PRIV_KEY", "0x")
ETHERSCAN_API_KEY = os.getenv("ETHERSCAN_API_KEY", "YOUR_ETHERSCAN_API_KEY")
COINMARKETCAP_API_KEY = os.getenv("COINMARKETCAP_API_KEY", "YOUR_COINMARKETCAP_API_KEY")

# Local fork used by the test suite
FORK_RPC_URL = os.getenv("FORK_RPC_URL")
FORK_BLOCK_NUMBER = os.getenv("FORK_BLOCK_NUMBER")
ANVIL_PORT = int(os.getenv("ANVIL_PORT", "8545"))

SOLIDITY_COMPILERS: List[str] = ["0.8.10", "0.8.19", "0.8.27", "0.7.5"]

PROJECT_ROOT = Path(os.getenv("NFT_MARKETPLACE_ROOT", Path.cwd()))
CONTRACTS_DIR = PROJECT_ROOT / "contracts"
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
DEPLOYMENTS_DIR = PROJECT_ROOT / "ignition" / "deployments"


@dataclass(frozen=True)
class NetworkConfig:
    """Connection and deployment settings for one network"""

    name: str
    url: str
    chain_id: int
    accounts: List[str] = field(default_factory=list)
    block_polling_interval: int = 1_000  # ms
    required_confirmations: int = 1

    @property
    def polling_seconds(self) -> float:
        return self.block_polling_interval / 1000


NETWORKS: Dict[str, NetworkConfig] = {
    "localhost": NetworkConfig(
        name="localhost",
        url=f"http://127.0.0.1:{ANVIL_PORT}",
        chain_id=31337,
    ),
    "sepolia": NetworkConfig(
        name="sepolia",
        url=SEPOLIA_RPC_URL,
        chain_id=11155111,
        accounts=[SEPOLIA_PRIV_KEY],
    ),
}

ETHERSCAN = {
    "api_key": ETHERSCAN_API_KEY,
}

GAS_REPORTER = {
    "enabled": True,
    "output_file": "./test-reports/gas-report.txt",
    "no_colors": True,
    "currency": "USD",
    # "coinmarketcap": COINMARKETCAP_API_KEY,
}

TEST_TIMEOUT = 300  # seconds


def get_network(name: str) -> NetworkConfig:
    """
    Look up a configured network

    Raises:
        ValueError: if the network is not configured
    """
    try:
        return NETWORKS[name]
    except KeyError:
        raise ValueError(
            f"Unknown network: {name} (configured: {', '.join(sorted(NETWORKS))})"
        ) from None
