"""
Deployment Module

A deployment is declared as data (which contract, which constructor
arguments, how much ether to send along) and executed by deploy_module, which
records the result per chain under ignition/deployments/chain-<id>/:

    deployed_addresses.json                 {"<Module>#<Contract>": "0x..."}
    artifacts/<Module>#<Contract>.json      abi, bytecode, ...

Those two files are what export_artifacts packages for the front-end.
"""

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from eth_utils import to_checksum_address
from web3 import Web3

from . import config
from .gas_report import GasReporter
from .registry import SUPPORTED_TOKENS

DEPLOYED_ADDRESSES_FILE = "deployed_addresses.json"


@dataclass(frozen=True)
class DeploymentModule:
    module_id: str
    contract_name: str
    args: Tuple[Any, ...] = ()
    value: int = 0

    @property
    def future_id(self) -> str:
        return f"{self.module_id}#{self.contract_name}"


# Meant for a mainnet fork: the supported tokens and their feeds only exist there
NFT_MARKETPLACE_MODULE = DeploymentModule(
    module_id="NftMarketplaceModule",
    contract_name="NftMarketplace",
    args=(list(SUPPORTED_TOKENS),),
    value=Web3.to_wei("0.01", "ether"),
)


@dataclass
class DeploymentResult:
    future_id: str
    address: str
    chain_id: int
    contract: Any
    tx_hash: Optional[str] = None
    reused: bool = False


def chain_deployment_dir(chain_id: Union[int, str], deployments_dir: Optional[Path] = None) -> Path:
    root = Path(deployments_dir) if deployments_dir else config.DEPLOYMENTS_DIR
    return root / f"chain-{chain_id}"


def artifact_path(chain_dir: Path, future_id: str) -> Path:
    return chain_dir / "artifacts" / f"{future_id}.json"


def read_deployed_addresses(chain_dir: Path) -> Dict[str, str]:
    path = chain_dir / DEPLOYED_ADDRESSES_FILE
    if not path.exists():
        return {}
    with open(path, encoding='utf-8') as f:
        return json.load(f)


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def _send_deployment(w3: Web3, constructor, deployer: Any, value: int, chain_id: int):
    """Send the creation transaction from an unlocked address or a local account"""
    if hasattr(deployer, 'key'):
        sender = to_checksum_address(deployer.address)
        transaction = constructor.build_transaction({
            'from': sender,
            'value': value,
            'nonce': w3.eth.get_transaction_count(sender),
            'chainId': chain_id,
        })
        signed = deployer.sign_transaction(transaction)
        raw_tx = getattr(signed, 'raw_transaction', None) or getattr(signed, 'rawTransaction', None)
        return w3.eth.send_raw_transaction(raw_tx)

    sender = to_checksum_address(getattr(deployer, 'address', deployer))
    return constructor.transact({'from': sender, 'value': value})


def _wait_confirmations(w3: Web3, block_number: int, confirmations: int, polling_interval: float) -> None:
    while w3.eth.block_number - block_number + 1 < confirmations:
        time.sleep(polling_interval)


def deploy_module(
    w3: Web3,
    module: DeploymentModule,
    artifact: Dict[str, Any],
    deployer: Any,
    chain_id: Optional[int] = None,
    deployments_dir: Optional[Path] = None,
    confirmations: int = 1,
    polling_interval: float = 1.0,
    gas_reporter: Optional[GasReporter] = None,
) -> DeploymentResult:
    """
    Deploy a module's contract and record it

    An existing record for the same module on the same chain is reused as long
    as code is still present at the recorded address.

    Args:
        w3: Web3 connected to the target network
        module: What to deploy
        artifact: Compiled contract (abi + bytecode)
        deployer: Unlocked address, or an eth_account LocalAccount that signs locally
        chain_id: Chain the records are filed under (defaults to the node's)
        deployments_dir: Root of the deployment records
        confirmations: Blocks to wait for after inclusion
        polling_interval: Seconds between receipt/block polls

    Raises:
        RuntimeError: if the creation transaction reverted
    """
    chain_id = chain_id if chain_id is not None else w3.eth.chain_id
    chain_dir = chain_deployment_dir(chain_id, deployments_dir)
    abi = artifact['abi']

    addresses = read_deployed_addresses(chain_dir)
    existing = addresses.get(module.future_id)
    if existing and len(w3.eth.get_code(to_checksum_address(existing))) > 0:
        print(f"✓ Reusing {module.future_id} at {existing} (chain {chain_id})")
        return DeploymentResult(
            future_id=module.future_id,
            address=existing,
            chain_id=chain_id,
            contract=w3.eth.contract(address=to_checksum_address(existing), abi=abi),
            reused=True,
        )

    print(f"🔨 Deploying {module.future_id} to chain {chain_id}...")
    factory = w3.eth.contract(abi=abi, bytecode=artifact['bytecode'])
    constructor = factory.constructor(*module.args)
    tx_hash = _send_deployment(w3, constructor, deployer, module.value, chain_id)

    receipt = w3.eth.wait_for_transaction_receipt(tx_hash, poll_latency=polling_interval)
    if receipt['status'] != 1 or not receipt.get('contractAddress'):
        raise RuntimeError(f"Deployment of {module.future_id} failed: {Web3.to_hex(tx_hash)}")
    _wait_confirmations(w3, receipt['blockNumber'], confirmations, polling_interval)

    address = to_checksum_address(receipt['contractAddress'])
    addresses[module.future_id] = address
    _write_json(chain_dir / DEPLOYED_ADDRESSES_FILE, addresses)
    _write_json(artifact_path(chain_dir, module.future_id), artifact)

    if gas_reporter is not None:
        gas_reporter.record(module.contract_name, 'deployment', receipt)

    print(f"✓ {module.future_id} deployed: {address}")
    print(f"  Gas Used: {receipt['gasUsed']}")

    return DeploymentResult(
        future_id=module.future_id,
        address=address,
        chain_id=chain_id,
        contract=w3.eth.contract(address=address, abi=abi),
        tx_hash=Web3.to_hex(tx_hash),
    )
