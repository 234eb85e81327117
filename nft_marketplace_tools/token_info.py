"""
Token Info - current owners of the NFT fixtures

Owners change as the fork block moves, so they are looked up on chain instead
of being hard coded. Every call returns fresh records; nothing is cached.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from eth_utils import to_checksum_address
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from .abis import ERC721_ABI
from .impersonation import ImpersonatedSigner
from .mainnet_mock import get_nft_owner
from .registry import (
    BORED_APE_YACHT_CLUB,
    DOODLES,
    LIL_PUDGYS,
    TokenContractRef,
    TokenFixture,
    token_fixtures,
)


@dataclass(frozen=True)
class TokenInfo:
    doodles_tokens: Tuple[TokenFixture, ...]
    bored_ape_yacht_club_tokens: Tuple[TokenFixture, ...]
    lil_pudgys_tokens: Tuple[TokenFixture, ...]


def _default_query_signer(w3: Web3) -> ImpersonatedSigner:
    # First node account is unlocked, no impersonation needed
    return ImpersonatedSigner(w3, w3.eth.accounts[0])


def hydrate_fixtures(
    collection: TokenContractRef,
    fixtures: Tuple[TokenFixture, ...],
    query: ImpersonatedSigner,
) -> Tuple[TokenFixture, ...]:
    """Return copies of the fixtures with owners read from chain, same order"""
    return tuple(
        TokenFixture(id=fixture.id, owner=get_nft_owner(collection.address, fixture.id, query))
        for fixture in fixtures
    )


def get_token_info(w3: Web3, query: Optional[ImpersonatedSigner] = None) -> TokenInfo:
    """Look up owners of the known token ids of every fixture collection"""
    if query is None:
        query = _default_query_signer(w3)

    return TokenInfo(
        doodles_tokens=hydrate_fixtures(DOODLES, token_fixtures(DOODLES), query),
        bored_ape_yacht_club_tokens=hydrate_fixtures(
            BORED_APE_YACHT_CLUB, token_fixtures(BORED_APE_YACHT_CLUB), query
        ),
        lil_pudgys_tokens=hydrate_fixtures(LIL_PUDGYS, token_fixtures(LIL_PUDGYS), query),
    )


def is_contract(w3: Web3, address: str) -> bool:
    code = w3.eth.get_code(to_checksum_address(address))
    return len(code) > 0


def find_nft_owned_by_wallets(
    w3: Web3,
    nft_address: str,
    expected_count: int = 10,
    query_limit: int = 1000,
) -> List[TokenFixture]:
    """
    Scan token ids for NFTs held by externally owned accounts

    Ids owned by contracts (vaults, marketplaces, ...) are skipped, as are ids
    that were never minted.

    Args:
        w3: Web3 connected to the fork
        nft_address: ERC721 collection address
        expected_count: Stop after this many matches
        query_limit: Scan ids 1 .. query_limit - 1
    """
    token = w3.eth.contract(address=to_checksum_address(nft_address), abi=ERC721_ABI)
    query_account = w3.eth.accounts[0]

    result: List[TokenFixture] = []
    for token_id in range(1, query_limit):
        try:
            owner = token.functions.ownerOf(token_id).call({'from': query_account})
        except (ContractLogicError, BadFunctionCallOutput):
            continue

        if not is_contract(w3, owner):
            result.append(TokenFixture(id=token_id, owner=owner))
        if len(result) >= expected_count:
            break

    return result
