"""Mainnet fork tests for the impersonation and token helpers."""

import pytest
from web3.exceptions import ContractLogicError

from nft_marketplace_tools.impersonation import GAS_TOP_UP_AMOUNT, supply_gas
from nft_marketplace_tools.mainnet_mock import (
    approve_allowance,
    get_erc20_allowance,
    get_erc20_balance,
    get_nft_owner,
    supply_token,
    transfer_nft,
)
from nft_marketplace_tools.registry import (
    DOODLES,
    ERC20_WHALE_ADDRESSES,
    USDC_ADDRESS,
    WETH_ADDRESS,
)
from nft_marketplace_tools.token_info import find_nft_owned_by_wallets, get_token_info

pytestmark = pytest.mark.fork


@pytest.fixture
def client(fork):
    return fork.w3.eth.accounts[1]


def test_supply_token_from_whale(fork, client):
    whale = fork.impersonate(ERC20_WHALE_ADDRESSES[USDC_ADDRESS])
    before = get_erc20_balance(USDC_ADDRESS, whale, client)

    supply_token(USDC_ADDRESS, whale, client, 10_000 * 10**6)

    assert get_erc20_balance(USDC_ADDRESS, whale, client) == before + 10_000 * 10**6


def test_approve_allowance(fork, client):
    whale = fork.impersonate(ERC20_WHALE_ADDRESSES[WETH_ADDRESS])

    approve_allowance(WETH_ADDRESS, whale, client, 10**18)

    assert get_erc20_allowance(WETH_ADDRESS, whale, client) == 10**18


def test_supply_gas_tops_up_once(fork):
    empty = "0x" + "5e" * 20
    fork.set_balance(empty, 0)

    supply_gas(fork.w3, empty)
    supply_gas(fork.w3, empty)

    assert fork.w3.eth.get_balance(fork.w3.to_checksum_address(empty)) == GAS_TOP_UP_AMOUNT


def test_transfer_exceeding_balance_reverts(fork, client):
    whale = fork.impersonate(ERC20_WHALE_ADDRESSES[USDC_ADDRESS])
    balance = get_erc20_balance(USDC_ADDRESS, whale, whale.address)

    with pytest.raises((ContractLogicError, ValueError)):
        supply_token(USDC_ADDRESS, whale, client, balance + 1)


def test_token_info_is_a_pure_read(fork):
    assert get_token_info(fork.w3) == get_token_info(fork.w3)


def test_transfer_nft_to_client(fork, client):
    fixture = find_nft_owned_by_wallets(fork.w3, DOODLES.address, expected_count=1)[0]
    holder = fork.impersonate(fixture.owner)

    transfer_nft(DOODLES.address, holder, client, fixture.id)

    assert get_nft_owner(DOODLES.address, fixture.id, holder) == client
