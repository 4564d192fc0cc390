"""
Artifact Store
On-disk records for compiled artifacts and deployment addresses
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger
from web3 import Web3

from blockchain.errors import (
    ArtifactNotFoundError,
    DeploymentNotFoundError,
    DeploymentRecordExistsError,
)
from blockchain.models import CompiledArtifact, DeployedContractRef


def _atomic_write(path: Path, payload: bytes):
    """Write via a temp file in the same directory, then rename into place"""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(payload)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def _write_json(path: Path, data: Any):
    _atomic_write(path, json.dumps(data, indent=2, sort_keys=False).encode('utf-8'))


class ArtifactStore:
    """
    Artifact store keyed by contract name

    <root>/<Name>.bin              raw creation bytecode
    <root>/<Name>.abi.json         ABI
    <root>/<Name>.meta.json        source hash, compiler version, warnings
    <root>/<Name>.deployment.json  {chain_id: {address, tx_hash, block_number}}
    """

    def __init__(self, root_dir: str = "build/artifacts"):
        """
        Initialize Artifact Store

        Args:
            root_dir: Directory holding the records
        """
        self.root = Path(root_dir)

    def _path(self, contract_name: str, suffix: str) -> Path:
        return self.root / f"{contract_name}{suffix}"

    # ------------------------------------------------------------------ #
    # Artifacts
    # ------------------------------------------------------------------ #

    def save_artifact(self, artifact: CompiledArtifact):
        """Persist bytecode, ABI and metadata"""
        name = artifact.contract_name

        _atomic_write(self._path(name, '.bin'), bytes(artifact.bytecode))
        _write_json(self._path(name, '.abi.json'), artifact.abi)
        _write_json(self._path(name, '.meta.json'), {
            'contract_name': name,
            'source_hash': artifact.source_hash,
            'compiler_version': artifact.compiler_version,
            'warnings': [str(w) for w in artifact.warnings]
        })

        logger.info(f"Saved artifact {name} to {self.root}")

    def has_artifact(self, contract_name: str) -> bool:
        return (
            self._path(contract_name, '.bin').exists()
            and self._path(contract_name, '.abi.json').exists()
        )

    def load_artifact(self, contract_name: str) -> CompiledArtifact:
        """
        Load a persisted artifact

        Raises:
            ArtifactNotFoundError: no artifact stored under that name
        """
        if not self.has_artifact(contract_name):
            raise ArtifactNotFoundError(
                contract_name,
                detail=f"No stored artifact for '{contract_name}' in {self.root}"
            )

        with open(self._path(contract_name, '.bin'), 'rb') as f:
            bytecode = f.read()

        with open(self._path(contract_name, '.abi.json'), 'r') as f:
            abi = json.load(f)

        meta: Dict[str, Any] = {}
        meta_path = self._path(contract_name, '.meta.json')
        if meta_path.exists():
            with open(meta_path, 'r') as f:
                meta = json.load(f)

        return CompiledArtifact(
            contract_name=contract_name,
            bytecode=bytecode,
            abi=abi,
            source_hash=meta.get('source_hash', ''),
            compiler_version=meta.get('compiler_version', '')
        )

    def stored_source_hash(self, contract_name: str) -> Optional[str]:
        meta_path = self._path(contract_name, '.meta.json')
        if not meta_path.exists():
            return None
        with open(meta_path, 'r') as f:
            return json.load(f).get('source_hash') or None

    # ------------------------------------------------------------------ #
    # Deployment records
    # ------------------------------------------------------------------ #

    def _load_deployments(self, contract_name: str) -> Dict[str, Dict]:
        path = self._path(contract_name, '.deployment.json')
        if not path.exists():
            return {}
        with open(path, 'r') as f:
            return json.load(f)

    def save_deployment(
        self,
        contract_name: str,
        address: str,
        chain_id: int,
        tx_hash: Optional[str] = None,
        block_number: Optional[int] = None,
        overwrite: bool = False
    ):
        """
        Record a deployed address for one chain

        Raises:
            DeploymentRecordExistsError: a different address is already recorded
                for this chain and overwrite is False
        """
        records = self._load_deployments(contract_name)
        key = str(chain_id)
        address = Web3.to_checksum_address(address)

        existing = records.get(key)
        if existing and existing['address'] != address and not overwrite:
            raise DeploymentRecordExistsError(
                f"{contract_name} already recorded at {existing['address']} on chain {chain_id}"
            )

        records[key] = {
            'address': address,
            'tx_hash': tx_hash,
            'block_number': block_number
        }
        _write_json(self._path(contract_name, '.deployment.json'), records)

        logger.info(f"Recorded {contract_name} at {address} (chain {chain_id})")

    def load_deployment(self, contract_name: str, chain_id: int) -> DeployedContractRef:
        """
        Load the deployed contract reference for one chain

        Raises:
            DeploymentNotFoundError: nothing recorded for this chain
            ArtifactNotFoundError: the ABI is missing
        """
        record = self._load_deployments(contract_name).get(str(chain_id))

        if not record:
            raise DeploymentNotFoundError(f"No deployment of {contract_name} recorded for chain {chain_id}")

        abi_path = self._path(contract_name, '.abi.json')
        if not abi_path.exists():
            raise ArtifactNotFoundError(contract_name, detail=f"ABI for '{contract_name}' missing in {self.root}")

        with open(abi_path, 'r') as f:
            abi = json.load(f)

        return DeployedContractRef(address=record['address'], abi=abi, contract_name=contract_name)
