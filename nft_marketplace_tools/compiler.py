"""
Contract compilation and artifact loading

Artifacts use the Hardhat layout (abi, bytecode, deployedBytecode, ...), so a
contract compiled elsewhere can be dropped into artifacts/ and used as is.
Sources are compiled the way Hardhat would: the compiler version comes from
the file's pragma, and package imports (@openzeppelin/..., @chainlink/...)
resolve to node_modules.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from solcx import compile_files, get_installed_solc_versions, install_solc, set_solc_version

from . import config

ARTIFACT_FORMAT = "hh-sol-artifact-1"

_PRAGMA_PATTERN = re.compile(r"pragma\s+solidity\s+([^;]+);")
_COMPARATOR_PATTERN = re.compile(r"(\^|~|>=|<=|>|<|=)?\s*v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def _hex(code: str) -> str:
    return code if code.startswith('0x') else '0x' + code


def _version_tuple(version: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in version.split('.'))


def _satisfies(version: Tuple[int, ...], comparators: str) -> bool:
    """Check a version against one space-separated comparator set"""
    for op, major, minor, patch in _COMPARATOR_PATTERN.findall(comparators):
        target = (int(major), int(minor or 0), int(patch or 0))
        if op == '^':
            if target[0] > 0:
                upper = (target[0] + 1, 0, 0)
            elif target[1] > 0:
                upper = (0, target[1] + 1, 0)
            else:
                upper = (0, 0, target[2] + 1)
            ok = target <= version < upper
        elif op == '~':
            ok = target <= version < (target[0], target[1] + 1, 0)
        elif op == '>=':
            ok = version >= target
        elif op == '<=':
            ok = version <= target
        elif op == '>':
            ok = version > target
        elif op == '<':
            ok = version < target
        else:
            ok = version == target
        if not ok:
            return False
    return True


def solc_version_for(source: str, available: Optional[Iterable[str]] = None) -> str:
    """
    Pick the newest available compiler allowed by the source's pragma

    Args:
        source: Solidity source text
        available: Candidate versions (defaults to config.SOLIDITY_COMPILERS)

    Raises:
        ValueError: if no candidate satisfies the pragma
    """
    candidates = sorted(available or config.SOLIDITY_COMPILERS, key=_version_tuple, reverse=True)
    match = _PRAGMA_PATTERN.search(source)
    if not match:
        return candidates[0]

    pragma = match.group(1).strip()
    for version in candidates:
        if any(_satisfies(_version_tuple(version), alternative) for alternative in pragma.split('||')):
            return version
    raise ValueError(
        f"No configured solc version satisfies 'pragma solidity {pragma}' "
        f"(configured: {', '.join(candidates)})"
    )


def import_remappings(project_root: Path) -> Dict[str, str]:
    """Map every scoped npm package (@openzeppelin, @chainlink, ...) to node_modules"""
    node_modules = Path(project_root) / "node_modules"
    if not node_modules.is_dir():
        return {}
    return {
        f"{scope.name}/": f"{scope}/"
        for scope in sorted(node_modules.iterdir())
        if scope.is_dir() and scope.name.startswith('@')
    }


def load_artifact(path: Union[str, Path]) -> Dict[str, Any]:
    """Read an artifact JSON file; requires abi and bytecode"""
    with open(path, encoding='utf-8') as f:
        artifact = json.load(f)
    missing = [key for key in ('abi', 'bytecode') if key not in artifact]
    if missing:
        raise ValueError(f"Artifact {path} is missing {', '.join(missing)}")
    return artifact


def ensure_solc(version: str) -> None:
    """Select a solc version, installing it first when needed"""
    installed = {str(v) for v in get_installed_solc_versions()}
    if version not in installed:
        print(f"  • Installing Solidity compiler v{version}...")
        install_solc(version)
    set_solc_version(version)


def compile_contract(
    source_path: Union[str, Path],
    contract_name: str,
    solc_version: Optional[str] = None,
    project_root: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Compile a Solidity file with py-solc-x

    Args:
        source_path: .sol file containing the contract
        contract_name: Contract to extract from the compiler output
        solc_version: Compiler version (defaults to the newest configured one the pragma allows)
        project_root: Directory holding node_modules (defaults to the source's parent)

    Returns:
        Artifact dictionary in Hardhat format

    Raises:
        solcx.exceptions.SolcError: if the source does not compile
    """
    source_path = Path(source_path)
    root = Path(project_root) if project_root else source_path.parent
    solc_version = solc_version or solc_version_for(source_path.read_text(encoding='utf-8'))
    ensure_solc(solc_version)

    allow_paths: List[str] = [str(source_path.parent), str(root)]
    if (root / "node_modules").is_dir():
        allow_paths.append(str(root / "node_modules"))

    print(f"✓ Compiling {source_path.name} with solc {solc_version}...")
    compiled = compile_files(
        [str(source_path)],
        output_values=['abi', 'bin', 'bin-runtime'],
        import_remappings=import_remappings(root),
        solc_version=solc_version,
        base_path=str(root),
        allow_paths=allow_paths,
    )

    for key, interface in compiled.items():
        if key.split(':')[-1] == contract_name:
            return {
                "_format": ARTIFACT_FORMAT,
                "contractName": contract_name,
                "sourceName": key.rsplit(':', 1)[0],
                "abi": interface['abi'],
                "bytecode": _hex(interface['bin']),
                "deployedBytecode": _hex(interface['bin-runtime']),
                "linkReferences": {},
                "deployedLinkReferences": {},
            }

    raise ValueError(f"Contract {contract_name} not found in {source_path}")


def resolve_artifact(contract_name: str, project_root: Optional[Path] = None) -> Dict[str, Any]:
    """
    Find the artifact of a project contract

    Prefers a prebuilt artifacts/contracts/<Name>.sol/<Name>.json and falls
    back to compiling contracts/<Name>.sol.
    """
    root = Path(project_root) if project_root else config.PROJECT_ROOT
    prebuilt = root / "artifacts" / "contracts" / f"{contract_name}.sol" / f"{contract_name}.json"
    if prebuilt.exists():
        return load_artifact(prebuilt)

    source = root / "contracts" / f"{contract_name}.sol"
    if source.exists():
        return compile_contract(source, contract_name, project_root=root)

    raise FileNotFoundError(
        f"No artifact or source for {contract_name}: looked for {prebuilt} and {source}"
    )
