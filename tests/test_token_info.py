"""Tests for NFT fixture hydration."""

from unittest.mock import MagicMock

import pytest
from web3.exceptions import ContractLogicError

from nft_marketplace_tools.registry import (
    BORED_APE_YACHT_CLUB,
    DOODLES,
    KNOWN_TOKEN_IDS,
    LIL_PUDGYS,
    TokenFixture,
    token_fixtures,
)
from nft_marketplace_tools.token_info import (
    TokenInfo,
    find_nft_owned_by_wallets,
    get_token_info,
    is_contract,
)

from .conftest import FUNDER


def owner_for(address: str, token_id: int) -> str:
    return "0x" + f"{token_id:02x}" * 19 + address[-2:].lower()


def ownable_contract(address, abi, owners=None):
    contract = MagicMock()

    def owner_of(token_id):
        call = MagicMock()
        if owners is not None:
            value = owners[token_id]
            if isinstance(value, Exception):
                call.call.side_effect = value
            else:
                call.call.return_value = value
        else:
            call.call.return_value = owner_for(address, token_id)
        return call

    contract.functions.ownerOf.side_effect = owner_of
    return contract


@pytest.fixture
def nft_w3(fake_w3):
    fake_w3.eth.contract.side_effect = lambda address, abi: ownable_contract(address, abi)
    return fake_w3


class TestGetTokenInfo:
    def test_owners_in_fixture_order(self, nft_w3):
        info = get_token_info(nft_w3)

        assert isinstance(info, TokenInfo)
        assert [t.id for t in info.doodles_tokens] == list(KNOWN_TOKEN_IDS[DOODLES.name])
        assert [t.id for t in info.lil_pudgys_tokens] == list(KNOWN_TOKEN_IDS[LIL_PUDGYS.name])
        first = info.bored_ape_yacht_club_tokens[0]
        assert first.owner == owner_for(BORED_APE_YACHT_CLUB.address, first.id)

    def test_repeated_calls_match(self, nft_w3):
        assert get_token_info(nft_w3) == get_token_info(nft_w3)

    def test_requeries_every_call(self, nft_w3):
        get_token_info(nft_w3)
        calls = nft_w3.eth.contract.call_count

        get_token_info(nft_w3)

        assert nft_w3.eth.contract.call_count == 2 * calls

    def test_registry_fixtures_stay_unhydrated(self, nft_w3):
        get_token_info(nft_w3)

        assert all(fixture.owner == "" for fixture in token_fixtures(DOODLES))

    def test_results_are_immutable(self, nft_w3):
        info = get_token_info(nft_w3)

        with pytest.raises(AttributeError):
            info.doodles_tokens[0].owner = FUNDER


class TestFindNftOwnedByWallets:
    def test_skips_unminted_and_contract_owners(self, fake_w3):
        contract_owner = "0x" + "cc" * 20
        owners = {
            1: ContractLogicError("execution reverted: ERC721: invalid token ID"),
            2: contract_owner,
            3: "0x" + "03" * 20,
            4: "0x" + "04" * 20,
            5: "0x" + "05" * 20,
        }
        fake_w3.eth.contract.side_effect = lambda address, abi: ownable_contract(address, abi, owners)
        fake_w3.eth.get_code.side_effect = lambda address: b"\x60\x80" if address.lower() == contract_owner else b""

        result = find_nft_owned_by_wallets(fake_w3, DOODLES.address, expected_count=2, query_limit=10)

        assert result == [
            TokenFixture(id=3, owner="0x" + "03" * 20),
            TokenFixture(id=4, owner="0x" + "04" * 20),
        ]

    def test_stops_at_query_limit(self, fake_w3):
        owners = {1: "0x" + "01" * 20, 2: "0x" + "02" * 20}
        fake_w3.eth.contract.side_effect = lambda address, abi: ownable_contract(address, abi, owners)
        fake_w3.eth.get_code.return_value = b""

        result = find_nft_owned_by_wallets(fake_w3, DOODLES.address, expected_count=10, query_limit=3)

        assert [fixture.id for fixture in result] == [1, 2]


def test_is_contract(fake_w3):
    fake_w3.eth.get_code.return_value = b""
    assert not is_contract(fake_w3, FUNDER)

    fake_w3.eth.get_code.return_value = b"\x60\x80"
    assert is_contract(fake_w3, FUNDER)
