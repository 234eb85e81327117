"""
Artifact Exporter

Copies the deployed address record and the contract artifact of a chain into
a front-end project as two JavaScript modules:

    <dir>/assets/artifacts/addresses.js   module.exports = { contractAddresses }
    <dir>/assets/artifacts/artifacts.js   module.exports = { contractArtifact }

Exporting is a convenience step after a deployment that already succeeded,
so errors are reported in the returned ExportResult and never raised.
"""

import json
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Union

from .deployment import (
    DEPLOYED_ADDRESSES_FILE,
    NFT_MARKETPLACE_MODULE,
    artifact_path,
    chain_deployment_dir,
)

TARGET_SUBDIR = Path("assets") / "artifacts"
ADDRESSES_MODULE = "addresses.js"
ARTIFACTS_MODULE = "artifacts.js"

_MODULE_PATTERN = re.compile(
    r"^const (?P<name>\w+) = (?P<body>.*);\nmodule\.exports = \{ (?P=name) \};\s*$",
    re.DOTALL,
)


class ExportStatus(str, Enum):
    EXPORTED = "exported"
    MISSING_INPUT = "missing_input"
    INVALID_ARGUMENTS = "invalid_arguments"
    FAILED = "failed"


@dataclass(frozen=True)
class ExportResult:
    status: ExportStatus
    message: str
    chain_id: Any = None
    target_dir: Optional[Path] = None
    files: List[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is ExportStatus.EXPORTED


def _valid_chain_id(chain_id: Any) -> bool:
    if isinstance(chain_id, bool):
        return False
    if isinstance(chain_id, int):
        return chain_id >= 0
    if isinstance(chain_id, str):
        return re.fullmatch(r"[0-9]+", chain_id.strip()) is not None
    return False


def _valid_dir(dir: Any) -> bool:
    if isinstance(dir, str):
        return bool(dir.strip())
    return isinstance(dir, os.PathLike)


def render_module(name: str, data: Any) -> str:
    """JavaScript module exporting one JSON constant"""
    body = json.dumps(data, indent=4, ensure_ascii=False)
    return f"const {name} = {body};\nmodule.exports = {{ {name} }};"


def load_exported_module(path: Union[str, Path]) -> Any:
    """Parse a module written by render_module back into its JSON value"""
    text = Path(path).read_text(encoding='utf-8')
    match = _MODULE_PATTERN.match(text)
    if not match:
        raise ValueError(f"{path} is not a generated artifact module")
    return json.loads(match.group('body'))


def export_contract_artifacts(
    chain_id: Union[int, str, None],
    dir: Union[str, Path, None],
    deployments_dir: Optional[Union[str, Path]] = None,
) -> ExportResult:
    """
    Export deployed address and artifact of a chain to a front-end directory

    Args:
        chain_id: Chain whose deployment records are exported
        dir: Front-end project root; files land in <dir>/assets/artifacts
        deployments_dir: Root of the deployment records (ignition/deployments)

    Returns:
        ExportResult describing what happened
    """
    if not _valid_chain_id(chain_id) or not _valid_dir(dir):
        message = f"Invalid param: chain_id={chain_id!r}, dir={dir!r}"
        print(f"❌ {message}")
        return ExportResult(ExportStatus.INVALID_ARGUMENTS, message, chain_id=chain_id)

    chain_id = str(chain_id).strip()
    print(f"Exporting contract artifacts for chain ID: {chain_id} to destination {dir}")

    chain_dir = chain_deployment_dir(chain_id, Path(deployments_dir) if deployments_dir else None)
    address_source = chain_dir / DEPLOYED_ADDRESSES_FILE
    artifact_source = artifact_path(chain_dir, NFT_MARKETPLACE_MODULE.future_id)
    target_dir = Path(dir) / TARGET_SUBDIR

    try:
        target_dir.mkdir(parents=True, exist_ok=True)

        missing = [str(p) for p in (address_source, artifact_source) if not p.is_file()]
        if missing:
            message = f"Missing deployment files: {', '.join(missing)}"
            print(f"❌ Error: {message}")
            return ExportResult(
                ExportStatus.MISSING_INPUT, message, chain_id=chain_id, target_dir=target_dir
            )

        with open(address_source, encoding='utf-8') as f:
            address_data = json.load(f)
        with open(artifact_source, encoding='utf-8') as f:
            artifact_data = json.load(f)

        addresses_file = target_dir / ADDRESSES_MODULE
        artifacts_file = target_dir / ARTIFACTS_MODULE
        addresses_file.write_text(render_module("contractAddresses", address_data), encoding='utf-8')
        artifacts_file.write_text(render_module("contractArtifact", artifact_data), encoding='utf-8')
    except (OSError, ValueError) as e:
        # json.JSONDecodeError is a ValueError
        print(f"❌ Error: {e}")
        return ExportResult(ExportStatus.FAILED, str(e), chain_id=chain_id, target_dir=target_dir)

    message = f'Exported artifacts for chain: "{chain_id}" to "{target_dir}"'
    print(f"✓ {message}")
    return ExportResult(
        ExportStatus.EXPORTED,
        message,
        chain_id=chain_id,
        target_dir=target_dir,
        files=[addresses_file, artifacts_file],
    )
