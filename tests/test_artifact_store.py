"""
Unit Tests for the on-disk artifact store
"""

import json

import pytest

from blockchain.errors import (
    ArtifactNotFoundError,
    DeploymentNotFoundError,
    DeploymentRecordExistsError,
)
from compiler.artifact_store import ArtifactStore
from tests.conftest import BYTECODE, CHAIN_ID, CONTRACT, OTHER, SIMPLE_STORAGE_ABI


@pytest.fixture
def store(tmp_path):
    return ArtifactStore(str(tmp_path / 'artifacts'))


class TestArtifacts:
    """Test artifact persistence"""

    def test_save_and_load(self, store, artifact):
        store.save_artifact(artifact)
        loaded = store.load_artifact('SimpleStorage')

        assert loaded.bytecode == BYTECODE
        assert loaded.abi == SIMPLE_STORAGE_ABI
        assert loaded.source_hash == 'deadbeef'
        assert loaded.compiler_version == '0.8.20'

    def test_bytecode_stored_as_binary(self, store, artifact):
        store.save_artifact(artifact)

        assert (store.root / 'SimpleStorage.bin').read_bytes() == BYTECODE
        assert json.loads((store.root / 'SimpleStorage.abi.json').read_text()) == SIMPLE_STORAGE_ABI

    def test_stored_source_hash(self, store, artifact):
        assert store.stored_source_hash('SimpleStorage') is None

        store.save_artifact(artifact)

        assert store.stored_source_hash('SimpleStorage') == 'deadbeef'

    def test_missing_artifact(self, store):
        with pytest.raises(ArtifactNotFoundError):
            store.load_artifact('SimpleStorage')

    def test_no_temp_files_left(self, store, artifact):
        store.save_artifact(artifact)

        assert not [p for p in store.root.iterdir() if p.name.startswith('.')]


class TestDeploymentRecords:
    """Test deployment record persistence"""

    def test_save_and_load(self, store, artifact):
        store.save_artifact(artifact)
        store.save_deployment('SimpleStorage', CONTRACT.lower(), CHAIN_ID, tx_hash='0xabc', block_number=3)

        ref = store.load_deployment('SimpleStorage', CHAIN_ID)

        assert ref.address == CONTRACT
        assert ref.abi == SIMPLE_STORAGE_ABI
        assert ref.contract_name == 'SimpleStorage'

    def test_record_is_per_chain(self, store, artifact):
        store.save_artifact(artifact)
        store.save_deployment('SimpleStorage', CONTRACT, CHAIN_ID)

        with pytest.raises(DeploymentNotFoundError):
            store.load_deployment('SimpleStorage', 1)

    def test_write_once(self, store, artifact):
        store.save_artifact(artifact)
        store.save_deployment('SimpleStorage', CONTRACT, CHAIN_ID)

        # Same address again is fine
        store.save_deployment('SimpleStorage', CONTRACT, CHAIN_ID)

        with pytest.raises(DeploymentRecordExistsError):
            store.save_deployment('SimpleStorage', OTHER, CHAIN_ID)

        store.save_deployment('SimpleStorage', OTHER, CHAIN_ID, overwrite=True)
        assert store.load_deployment('SimpleStorage', CHAIN_ID).address == OTHER

    def test_missing_abi(self, store):
        store.save_deployment('SimpleStorage', CONTRACT, CHAIN_ID)

        with pytest.raises(ArtifactNotFoundError):
            store.load_deployment('SimpleStorage', CHAIN_ID)
