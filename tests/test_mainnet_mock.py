"""Tests for the ERC20/ERC721 fork helpers, against a mocked Web3."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from web3.exceptions import ContractLogicError

from nft_marketplace_tools.abis import ERC20_ABI, ERC721_ABI
from nft_marketplace_tools.impersonation import ImpersonatedSigner
from nft_marketplace_tools.mainnet_mock import (
    approve_allowance,
    approve_nft,
    get_erc20_allowance,
    get_erc20_balance,
    get_nft_owner,
    supply_token,
    transfer_nft,
)

from .conftest import OWNER, TARGET, TOKEN


@pytest.fixture
def token_contract(fake_w3) -> MagicMock:
    contract = MagicMock()
    fake_w3.eth.contract.return_value = contract
    return contract


@pytest.fixture
def owner(fake_w3) -> ImpersonatedSigner:
    return ImpersonatedSigner(fake_w3, OWNER)


class TestErc20:
    def test_supply_token(self, fake_w3, token_contract, owner):
        supply_token(TOKEN.lower(), owner, TARGET, 10_000 * 10**6)

        fake_w3.eth.contract.assert_called_once_with(address=TOKEN, abi=ERC20_ABI)
        token_contract.functions.transfer.assert_called_once_with(TARGET, 10_000 * 10**6)
        token_contract.functions.transfer.return_value.transact.assert_called_once_with({'from': OWNER})
        fake_w3.eth.wait_for_transaction_receipt.assert_called_once()

    def test_supply_token_accepts_account_target(self, token_contract, owner):
        supply_token(TOKEN, owner, SimpleNamespace(address=TARGET), 1)
        token_contract.functions.transfer.assert_called_once_with(TARGET, 1)

    def test_approve_allowance(self, token_contract, owner):
        approve_allowance(TOKEN, owner, TARGET, 500)

        token_contract.functions.approve.assert_called_once_with(TARGET, 500)
        token_contract.functions.approve.return_value.transact.assert_called_once_with({'from': OWNER})

    def test_balance_queries_target(self, token_contract, owner):
        token_contract.functions.balanceOf.return_value.call.return_value = 123

        assert get_erc20_balance(TOKEN, owner, TARGET) == 123
        token_contract.functions.balanceOf.assert_called_once_with(TARGET)
        token_contract.functions.balanceOf.return_value.call.assert_called_once_with({'from': OWNER})

    def test_allowance_of_owner_for_target(self, token_contract, owner):
        token_contract.functions.allowance.return_value.call.return_value = 77

        assert get_erc20_allowance(TOKEN, owner, TARGET) == 77
        token_contract.functions.allowance.assert_called_once_with(OWNER, TARGET)

    def test_helpers_fund_gas_first(self, fake_w3, token_contract, owner):
        fake_w3.eth.get_balance.return_value = 0

        get_erc20_balance(TOKEN, owner, TARGET)

        fake_w3.eth.send_transaction.assert_called_once()

    def test_revert_propagates_unchanged(self, token_contract, owner):
        error = ContractLogicError("execution reverted: ERC20: transfer amount exceeds balance")
        token_contract.functions.transfer.return_value.transact.side_effect = error

        with pytest.raises(ContractLogicError) as excinfo:
            supply_token(TOKEN, owner, TARGET, 10**30)
        assert excinfo.value is error


class TestErc721:
    def test_get_nft_owner(self, fake_w3, token_contract, owner):
        token_contract.functions.ownerOf.return_value.call.return_value = TARGET

        assert get_nft_owner(TOKEN, 7, owner) == TARGET
        fake_w3.eth.contract.assert_called_once_with(address=TOKEN, abi=ERC721_ABI)
        token_contract.functions.ownerOf.assert_called_once_with(7)

    def test_transfer_nft(self, token_contract, owner):
        transfer_nft(TOKEN, owner, TARGET, 7)

        token_contract.functions.transferFrom.assert_called_once_with(OWNER, TARGET, 7)
        token_contract.functions.transferFrom.return_value.transact.assert_called_once_with({'from': OWNER})

    def test_approve_nft(self, token_contract, owner):
        approve_nft(TOKEN, owner, TARGET, 7)

        token_contract.functions.approve.assert_called_once_with(TARGET, 7)

    def test_not_owner_revert_propagates(self, token_contract, owner):
        token_contract.functions.transferFrom.return_value.transact.side_effect = ContractLogicError(
            "execution reverted: ERC721: caller is not token owner or approved"
        )

        with pytest.raises(ContractLogicError, match="not token owner"):
            transfer_nft(TOKEN, owner, TARGET, 7)
