"""
NFT Marketplace Tools - Deployment and Mainnet Fork Test Tooling

Deploys the NftMarketplace contract through a declarative deployment module,
mocks mainnet token/NFT holders on a local Anvil fork, and exports deployed
contract metadata for the front-end.
"""

__version__ = "0.1.0"
