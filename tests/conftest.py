"""Pytest configuration and fixtures."""

import json
import os
from pathlib import Path
from typing import Any, Dict
from unittest.mock import MagicMock

import pytest
from eth_utils import to_checksum_address
from solcx.exceptions import SolcError
from web3 import Web3

from nft_marketplace_tools import config
from nft_marketplace_tools.compiler import resolve_artifact
from nft_marketplace_tools.deployment import NFT_MARKETPLACE_MODULE, deploy_module
from nft_marketplace_tools.fork_env import ForkEnvironment
from nft_marketplace_tools.gas_report import GasReporter

FUNDER = to_checksum_address("0x" + "f0" * 20)
OWNER = to_checksum_address("0x" + "a1" * 20)
TARGET = to_checksum_address("0x" + "b2" * 20)
TOKEN = to_checksum_address("0x" + "c3" * 20)


@pytest.fixture
def fake_w3() -> MagicMock:
    """Web3 stand-in: funded accounts, mined receipts, successful RPC calls."""
    w3 = MagicMock()
    w3.eth.accounts = [FUNDER]
    w3.eth.get_balance.return_value = Web3.to_wei(100, 'ether')
    w3.eth.send_transaction.return_value = b"\x01" * 32
    w3.eth.wait_for_transaction_receipt.return_value = {
        'status': 1,
        'gasUsed': 21000,
        'blockNumber': 1,
    }
    w3.provider.make_request.return_value = {'jsonrpc': '2.0', 'id': 1, 'result': True}
    return w3


@pytest.fixture
def sample_addresses() -> Dict[str, str]:
    return {"NftMarketplaceModule#NftMarketplace": "0x5FbDB2315678afecb367f032d93F642f64180aa3"}


@pytest.fixture
def sample_artifact() -> Dict[str, Any]:
    return {
        "_format": "hh-sol-artifact-1",
        "contractName": "NftMarketplace",
        "sourceName": "contracts/NftMarketplace.sol",
        "abi": [
            {
                "inputs": [],
                "name": "getSupportedPayments",
                "outputs": [{"internalType": "address[]", "name": "", "type": "address[]"}],
                "stateMutability": "view",
                "type": "function",
            }
        ],
        "bytecode": "0x6080604052",
        "deployedBytecode": "0x6080604052",
        "linkReferences": {},
        "deployedLinkReferences": {},
    }


@pytest.fixture
def deployments_dir(tmp_path: Path, sample_addresses, sample_artifact) -> Path:
    """ignition/deployments layout with one recorded chain-31337 deployment."""
    root = tmp_path / "ignition" / "deployments"
    chain_dir = root / "chain-31337"
    (chain_dir / "artifacts").mkdir(parents=True)
    with open(chain_dir / "deployed_addresses.json", "w") as f:
        json.dump(sample_addresses, f, indent=2)
    with open(chain_dir / "artifacts" / "NftMarketplaceModule#NftMarketplace.json", "w") as f:
        json.dump(sample_artifact, f, indent=2)
    return root


# --- Mainnet fork ---

@pytest.fixture(scope="session")
def gas_reporter():
    reporter = GasReporter(
        enabled=config.GAS_REPORTER['enabled'],
        output_file=config.GAS_REPORTER['output_file'],
    )
    yield reporter
    reporter.write_report()


@pytest.fixture(scope="session")
def fork_env(gas_reporter):
    """
    Mainnet fork for the whole session.

    Attaches to FORK_RPC_URL when set, otherwise starts Anvil forking
    MAINNET_RPC_URL. Tests needing it are skipped when neither is available.
    """
    block = int(config.FORK_BLOCK_NUMBER) if config.FORK_BLOCK_NUMBER else None
    env = ForkEnvironment(gas_reporter=gas_reporter, fork_block_number=block)

    if config.FORK_RPC_URL:
        try:
            env.connect(config.FORK_RPC_URL)
        except ConnectionError as e:
            pytest.skip(str(e))
    elif os.getenv("MAINNET_RPC_URL"):
        try:
            env.start()
        except (RuntimeError, ConnectionError) as e:
            pytest.skip(f"Could not start mainnet fork: {e}")
    else:
        pytest.skip("No fork available: set FORK_RPC_URL or MAINNET_RPC_URL")

    yield env
    env.stop()


@pytest.fixture
def fork(fork_env):
    """Fork state is rolled back after every test."""
    snapshot_id = fork_env.create_snapshot()
    yield fork_env
    fork_env.revert_to_snapshot(snapshot_id)


@pytest.fixture(scope="session")
def marketplace(fork_env, gas_reporter, tmp_path_factory):
    """NftMarketplace deployed once on the fork."""
    try:
        artifact = resolve_artifact(NFT_MARKETPLACE_MODULE.contract_name)
    except (FileNotFoundError, SolcError) as e:
        pytest.skip(f"NftMarketplace artifact unavailable: {e}")

    result = deploy_module(
        fork_env.w3,
        NFT_MARKETPLACE_MODULE,
        artifact,
        fork_env.w3.eth.accounts[0],
        deployments_dir=tmp_path_factory.mktemp("deployments"),
        gas_reporter=gas_reporter,
        polling_interval=0.1,
    )
    return result.contract
