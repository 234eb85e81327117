"""
Mainnet Mock - ERC20/ERC721 helpers for fork tests

Moves real tokens and NFTs between accounts on a mainnet fork by acting as
their holders. Every helper takes the ImpersonatedSigner of the acting
address; reverts from the node propagate unchanged.
"""

from typing import Any

from eth_utils import to_checksum_address
from web3 import Web3

from .abis import ERC20_ABI, ERC721_ABI
from .impersonation import ImpersonatedSigner, address_of


def _erc20(w3: Web3, token_address: str):
    return w3.eth.contract(address=to_checksum_address(token_address), abi=ERC20_ABI)


def _erc721(w3: Web3, token_address: str):
    return w3.eth.contract(address=to_checksum_address(token_address), abi=ERC721_ABI)


def supply_token(token_address: str, owner: ImpersonatedSigner, target: Any, amount: int) -> None:
    """Transfer `amount` of an ERC20 from owner to target"""
    token = _erc20(owner.w3, token_address)
    owner.transact(token.functions.transfer(address_of(target), amount), label='ERC20')


def approve_allowance(token_address: str, owner: ImpersonatedSigner, target: Any, amount: int) -> None:
    """Let target spend `amount` of owner's ERC20"""
    token = _erc20(owner.w3, token_address)
    owner.transact(token.functions.approve(address_of(target), amount), label='ERC20')


def get_erc20_balance(token_address: str, owner: ImpersonatedSigner, target: Any) -> int:
    """ERC20 balance of target; owner only provides the call context"""
    token = _erc20(owner.w3, token_address)
    return owner.call(token.functions.balanceOf(address_of(target)))


def get_erc20_allowance(token_address: str, owner: ImpersonatedSigner, target: Any) -> int:
    """Amount target may still spend on behalf of owner"""
    token = _erc20(owner.w3, token_address)
    return owner.call(token.functions.allowance(owner.address, address_of(target)))


def get_nft_owner(token_address: str, token_id: int, query: ImpersonatedSigner) -> str:
    token = _erc721(query.w3, token_address)
    return query.call(token.functions.ownerOf(token_id))


def transfer_nft(token_address: str, owner: ImpersonatedSigner, target: Any, token_id: int) -> None:
    token = _erc721(owner.w3, token_address)
    owner.transact(
        token.functions.transferFrom(owner.address, address_of(target), token_id),
        label='ERC721',
    )


def approve_nft(token_address: str, owner: ImpersonatedSigner, target: Any, token_id: int) -> None:
    token = _erc721(owner.w3, token_address)
    owner.transact(token.functions.approve(address_of(target), token_id), label='ERC721')
