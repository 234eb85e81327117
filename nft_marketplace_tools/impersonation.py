"""
Impersonation & Funding Helper

On a mainnet fork any address can send transactions once the node is told to
impersonate it. An ImpersonatedSigner is the capability to act as one address:
every helper receives one instead of re-deriving it, and every action taken
through it first makes sure the account can pay for gas.
"""

from typing import Any, List, Optional

from eth_utils import to_checksum_address
from web3 import Web3

from .gas_report import GasReporter

GAS_TOP_UP_THRESHOLD = Web3.to_wei(10, 'ether')
GAS_TOP_UP_AMOUNT = Web3.to_wei(10, 'ether')


def rpc_request(w3: Web3, method: str, params: List[Any]) -> Any:
    """
    Send a raw JSON-RPC request (anvil_*, evm_* node-control methods)

    Returns:
        The 'result' field of the response

    Raises:
        RuntimeError: if the node answered with an error
    """
    response = w3.provider.make_request(method, params)
    if 'error' in response:
        raise RuntimeError(f"{method} failed: {response['error']}")
    return response.get('result')


def address_of(target: Any) -> str:
    """Accept a plain address or anything exposing .address (signers, accounts)"""
    address = getattr(target, 'address', target)
    return to_checksum_address(address)


def supply_gas(w3: Web3, address: str, funder: Optional[str] = None) -> None:
    """
    Top up an account that is running low on native currency

    Transfers GAS_TOP_UP_AMOUNT from the funder (first node account by default)
    when the balance is below GAS_TOP_UP_THRESHOLD. Does nothing otherwise.
    """
    address = to_checksum_address(address)
    balance = w3.eth.get_balance(address)
    if balance >= GAS_TOP_UP_THRESHOLD:
        return

    if funder is None:
        funder = w3.eth.accounts[0]

    tx_hash = w3.eth.send_transaction({
        'from': to_checksum_address(funder),
        'to': address,
        'value': GAS_TOP_UP_AMOUNT,
    })
    w3.eth.wait_for_transaction_receipt(tx_hash)


class ImpersonatedSigner:
    """Ability to act as one address on the fork"""

    def __init__(
        self,
        w3: Web3,
        address: str,
        funder: Optional[str] = None,
        gas_reporter: Optional[GasReporter] = None,
        rpc_namespace: str = 'anvil',
    ):
        self.w3 = w3
        self.address = to_checksum_address(address)
        self.funder = funder
        self.gas_reporter = gas_reporter
        self.rpc_namespace = rpc_namespace
        self.active = False

    def __repr__(self) -> str:
        return f"ImpersonatedSigner({self.address})"

    def start(self) -> "ImpersonatedSigner":
        rpc_request(self.w3, f'{self.rpc_namespace}_impersonateAccount', [self.address])
        self.active = True
        return self

    def stop(self) -> None:
        if self.active:
            rpc_request(self.w3, f'{self.rpc_namespace}_stopImpersonatingAccount', [self.address])
            self.active = False

    def __enter__(self) -> "ImpersonatedSigner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def ensure_gas(self) -> None:
        supply_gas(self.w3, self.address, self.funder)

    def call(self, contract_function) -> Any:
        """Read through a bound contract function with this address as caller"""
        self.ensure_gas()
        return contract_function.call({'from': self.address})

    def transact(self, contract_function, value: int = 0, label: Optional[str] = None):
        """
        Send a contract call from this address and wait for it to be mined

        Returns:
            The transaction receipt

        Raises:
            RuntimeError: if the transaction was mined but reverted
        """
        self.ensure_gas()

        tx_params = {'from': self.address}
        if value:
            tx_params['value'] = value

        tx_hash = contract_function.transact(tx_params)
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)

        method = getattr(contract_function, 'fn_name', 'unknown')
        if receipt['status'] != 1:
            raise RuntimeError(
                f"Transaction reverted: {method} from {self.address} (tx {Web3.to_hex(tx_hash)})"
            )

        if self.gas_reporter is not None:
            self.gas_reporter.record(label or contract_function.address, method, receipt)
        return receipt


def impersonate(
    w3: Web3,
    address: str,
    funder: Optional[str] = None,
    gas_reporter: Optional[GasReporter] = None,
    rpc_namespace: str = 'anvil',
) -> ImpersonatedSigner:
    """Ask the fork node to impersonate an address and return the capability"""
    signer = ImpersonatedSigner(
        w3,
        address,
        funder=funder,
        gas_reporter=gas_reporter,
        rpc_namespace=rpc_namespace,
    )
    return signer.start()
