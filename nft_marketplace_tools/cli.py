"""
Command line entry point

Usage:
    # Deploy the marketplace to a running local fork
    nft-marketplace-tools deploy --network localhost

    # Export deployment records for the front-end
    nft-marketplace-tools export-artifacts --chain-id 31337 --dir ../marketplace-frontend

    # Show current owners of the NFT fixtures
    nft-marketplace-tools token-info --rpc-url http://127.0.0.1:8545
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from eth_account import Account

from . import config
from .compiler import load_artifact, resolve_artifact
from .deployment import NFT_MARKETPLACE_MODULE, deploy_module
from .export_artifacts import export_contract_artifacts
from .fork_env import make_web3
from .registry import TOKEN_CONTRACTS
from .token_info import find_nft_owned_by_wallets, get_token_info


def _deployer_for(network: config.NetworkConfig, w3):
    keys = [key for key in network.accounts if key and key != "0x"]
    if keys:
        return Account.from_key(keys[0])
    return w3.eth.accounts[0]


def cmd_deploy(args: argparse.Namespace) -> int:
    network = config.get_network(args.network)
    w3 = make_web3(network.url)
    if not w3.is_connected():
        print(f"❌ Cannot connect to {network.name}: {network.url}")
        return 1

    artifact = load_artifact(args.artifact) if args.artifact else resolve_artifact(
        NFT_MARKETPLACE_MODULE.contract_name
    )
    result = deploy_module(
        w3,
        NFT_MARKETPLACE_MODULE,
        artifact,
        _deployer_for(network, w3),
        deployments_dir=Path(args.deployments_dir) if args.deployments_dir else None,
        confirmations=network.required_confirmations,
        polling_interval=network.polling_seconds,
    )
    print(f"📁 Deployment recorded for chain {result.chain_id}: {result.future_id} -> {result.address}")
    return 0


def cmd_export_artifacts(args: argparse.Namespace) -> int:
    result = export_contract_artifacts(args.chain_id, args.dir, args.deployments_dir)
    return 0 if result.ok else 1


def cmd_token_info(args: argparse.Namespace) -> int:
    w3 = make_web3(args.rpc_url)
    if not w3.is_connected():
        print(f"❌ Cannot connect to {args.rpc_url}")
        return 1

    if args.scan:
        for collection in TOKEN_CONTRACTS:
            print(f"🔍 {collection.name} ({collection.address})")
            for fixture in find_nft_owned_by_wallets(w3, collection.address, args.count, args.limit):
                print(f"  • #{fixture.id}: {fixture.owner}")
        return 0

    info = get_token_info(w3)
    sections = [
        ("Doodles", info.doodles_tokens),
        ("BoredApeYachtClub", info.bored_ape_yacht_club_tokens),
        ("LilPudgys", info.lil_pudgys_tokens),
    ]
    for name, fixtures in sections:
        print(f"🔍 {name}")
        for fixture in fixtures:
            print(f"  • #{fixture.id}: {fixture.owner}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='nft-marketplace-tools',
        description='NftMarketplace deployment and mainnet fork tooling',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    deploy = subparsers.add_parser('deploy', help='Deploy the NftMarketplace module')
    deploy.add_argument(
        '--network',
        type=str,
        default='localhost',
        choices=sorted(config.NETWORKS),
        help='Target network (default: localhost)'
    )
    deploy.add_argument(
        '--artifact',
        type=str,
        default=None,
        help='Compiled contract artifact JSON (default: artifacts/ or compile contracts/)'
    )
    deploy.add_argument(
        '--deployments-dir',
        type=str,
        default=None,
        help='Where deployment records are kept (default: ignition/deployments)'
    )
    deploy.set_defaults(func=cmd_deploy)

    export = subparsers.add_parser('export-artifacts', help='Export deployment records for the front-end')
    export.add_argument('--chain-id', type=str, required=True, help='Chain ID of the deployment')
    export.add_argument('--dir', type=str, required=True, help='Front-end project directory')
    export.add_argument(
        '--deployments-dir',
        type=str,
        default=None,
        help='Where deployment records are kept (default: ignition/deployments)'
    )
    export.set_defaults(func=cmd_export_artifacts)

    token_info = subparsers.add_parser('token-info', help='Show owners of the NFT fixtures')
    token_info.add_argument(
        '--rpc-url',
        type=str,
        default=config.NETWORKS['localhost'].url,
        help='Fork node RPC URL'
    )
    token_info.add_argument(
        '--scan',
        action='store_true',
        help='Scan token ids for NFTs held by wallets instead of using the known ids'
    )
    token_info.add_argument('--count', type=int, default=10, help='Matches per collection when scanning')
    token_info.add_argument('--limit', type=int, default=1000, help='Highest token id to scan')
    token_info.set_defaults(func=cmd_token_info)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
