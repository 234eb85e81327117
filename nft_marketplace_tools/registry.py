"""
Token/NFT address registry

Ethereum mainnet addresses used as fixtures: the marketplace's supported
payment tokens, their Chainlink price feeds, accounts holding large balances
of each token, and the NFT collections listed in tests.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Native currency is represented by WETH inside the marketplace
WETH_ADDRESS = Web3.to_checksum_address("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2")

USDC_ADDRESS = Web3.to_checksum_address("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48")
DAI_ADDRESS = Web3.to_checksum_address("0x6B175474E89094C44Da98b954EedeAC495271d0F")
LINK_ADDRESS = Web3.to_checksum_address("0x514910771AF9Ca656af840dff83E8264EcF986CA")
UNI_ADDRESS = Web3.to_checksum_address("0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984")
WBTC_ADDRESS = Web3.to_checksum_address("0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599")

# Not accepted by the marketplace
TETHER_ADDRESS = Web3.to_checksum_address("0xdAC17F958D2ee523a2206206994597C13D831ec7")
SXT_ADDRESS = Web3.to_checksum_address("0xE6Bfd33F52d82Ccb5b37E16D3dD81f9FFDAbB195")

# Order matters: the contract maps each index to the price feed at the same index
SUPPORTED_TOKENS: Tuple[str, ...] = (
    USDC_ADDRESS,
    DAI_ADDRESS,
    LINK_ADDRESS,
    UNI_ADDRESS,
    WBTC_ADDRESS,
)

# Token -> ETH Chainlink feeds
PRICE_FEEDS: Dict[str, str] = {
    USDC_ADDRESS: Web3.to_checksum_address("0x986b5E1e1755e3C2440e960477f25201B0a8bbD4"),
    DAI_ADDRESS: Web3.to_checksum_address("0x773616E4d11A78F511299002da57A0a94577F1f4"),
    LINK_ADDRESS: Web3.to_checksum_address("0xDC530D9457755926550b59e8ECcdaE7624181557"),
    UNI_ADDRESS: Web3.to_checksum_address("0xD6aA3D25116d8dA79Ea0246c4826EB951872e02e"),
    WBTC_ADDRESS: Web3.to_checksum_address("0xfdFD9C85aD200c506Cf9e21F1FD8dd01932FBB23"),
}

TOKEN_DECIMALS: Dict[str, int] = {
    USDC_ADDRESS: 6,
    DAI_ADDRESS: 18,
    LINK_ADDRESS: 18,
    UNI_ADDRESS: 18,
    WBTC_ADDRESS: 8,
    WETH_ADDRESS: 18,
}

# Accounts holding enough of each token to fund test accounts on a fork
ERC20_WHALE_ADDRESSES: Dict[str, str] = {
    USDC_ADDRESS: Web3.to_checksum_address("0x28C6c06298d514Db089934071355E5743bf21d60"),
    DAI_ADDRESS: Web3.to_checksum_address("0x40ec5B33f54e0E8A33A975908C5BA1c14e5BbbDf"),
    LINK_ADDRESS: Web3.to_checksum_address("0xF977814e90dA44bFA03b6295A0616a897441aceC"),
    UNI_ADDRESS: Web3.to_checksum_address("0x47173B170C64d16393a52e6C480b3Ad8c302ba1e"),
    WBTC_ADDRESS: Web3.to_checksum_address("0x9ff58f4fFB29fA2266Ab25e75e2A8b3503311656"),
    WETH_ADDRESS: Web3.to_checksum_address("0x2F0b23f53734252Bda2277357e97e1517d6B042A"),
}


@dataclass(frozen=True)
class TokenContractRef:
    """An NFT collection deployed on mainnet"""

    name: str
    address: str


@dataclass(frozen=True)
class TokenFixture:
    """A token id and its owner; owner is empty until queried from chain"""

    id: int
    owner: str = ""


DOODLES = TokenContractRef(
    name="Doodles",
    address=Web3.to_checksum_address("0x8a90CAb2b38dba80c64b7734e58Ee1dB38B8992e"),
)
BORED_APE_YACHT_CLUB = TokenContractRef(
    name="BoredApeYachtClub",
    address=Web3.to_checksum_address("0xBC4CA0EdA7647A8aB7C2061c2E118A18a936f13D"),
)
LIL_PUDGYS = TokenContractRef(
    name="LilPudgys",
    address=Web3.to_checksum_address("0x524cAB2ec69124574082676e6F654a18df49A048"),
)

TOKEN_CONTRACTS: Tuple[TokenContractRef, ...] = (DOODLES, BORED_APE_YACHT_CLUB, LIL_PUDGYS)

KNOWN_TOKEN_IDS: Dict[str, Tuple[int, ...]] = {
    DOODLES.name: tuple(range(1, 11)),
    BORED_APE_YACHT_CLUB.name: tuple(range(1, 11)),
    LIL_PUDGYS.name: tuple(range(1, 11)),
}


def token_fixtures(collection: TokenContractRef) -> Tuple[TokenFixture, ...]:
    """Unhydrated fixtures for a collection, in the order ids are listed"""
    return tuple(TokenFixture(id=token_id) for token_id in KNOWN_TOKEN_IDS[collection.name])
