"""
Unit Tests for the Solidity compiler adapter
solcx is patched; no compiler binary is needed
"""

import json
from unittest.mock import patch

import pytest
from solcx.exceptions import SolcError

from blockchain.errors import ArtifactNotFoundError, CompilationError, ConfigError
from blockchain.models import SourceUnit
from compiler.artifact_store import ArtifactStore
from compiler.solc_adapter import SolcCompiler, parse_diagnostics
from tests.conftest import SIMPLE_STORAGE_ABI

SOURCE = """
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;
contract SimpleStorage { uint256 public storedData; }
contract Helper {}
"""

WARNING = {
    "component": "general",
    "errorCode": "2072",
    "formattedMessage": "Warning: Unused local variable.",
    "message": "Unused local variable.",
    "severity": "warning",
    "sourceLocation": {"file": "SimpleStorage.sol", "start": 10, "end": 20},
    "type": "Warning"
}

ERROR = {
    "component": "general",
    "formattedMessage": "ParserError: Expected ';' but got '}'",
    "message": "Expected ';' but got '}'",
    "severity": "error",
    "sourceLocation": {"file": "SimpleStorage.sol", "start": 5, "end": 6},
    "type": "ParserError"
}


def solc_output(errors=(), simple_bytecode='6080604052', helper_bytecode='60806040'):
    return {
        "errors": list(errors),
        "contracts": {
            "SimpleStorage.sol": {
                "SimpleStorage": {"abi": SIMPLE_STORAGE_ABI, "evm": {"bytecode": {"object": simple_bytecode}}},
                "Helper": {"abi": [], "evm": {"bytecode": {"object": helper_bytecode}}}
            }
        }
    }


@pytest.fixture
def source_unit():
    return SourceUnit(source=SOURCE, contract_name='SimpleStorage')


@pytest.fixture
def compiler():
    return SolcCompiler(solc_version='0.8.20', install=False)


@pytest.fixture
def installed():
    with patch('compiler.solc_adapter.solcx.get_installed_solc_versions', return_value=['0.8.20']):
        yield


@pytest.fixture
def compile_standard(installed):
    with patch('compiler.solc_adapter.solcx.compile_standard', return_value=solc_output([WARNING])) as mock:
        yield mock


class TestSolcCompiler:
    """Test artifact extraction from Standard JSON output"""

    def test_compile_produces_artifact(self, compiler, source_unit, compile_standard):
        artifact = compiler.compile(source_unit)

        assert artifact.contract_name == 'SimpleStorage'
        assert artifact.bytecode == bytes.fromhex('6080604052')
        assert artifact.abi == SIMPLE_STORAGE_ABI
        assert artifact.compiler_version == '0.8.20'
        assert {fn.name for fn in artifact.functions} == {
            'deposit', 'get', 'getBalance', 'owner', 'set', 'storedData', 'withdraw'
        }

    def test_request_shape(self, compiler, source_unit, compile_standard):
        compiler.compile(source_unit)

        request = compile_standard.call_args[0][0]
        assert request['language'] == 'Solidity'
        assert request['sources'] == {'SimpleStorage.sol': {'content': SOURCE}}
        assert 'abi' in request['settings']['outputSelection']['*']['*']
        assert compile_standard.call_args[1]['solc_version'] == '0.8.20'

    def test_warnings_do_not_block(self, compiler, source_unit, compile_standard):
        artifact = compiler.compile(source_unit)

        assert len(artifact.warnings) == 1
        assert artifact.warnings[0].severity == 'warning'
        assert artifact.warnings[0].start == 10

    def test_selects_requested_contract(self, compiler, compile_standard):
        artifact = compiler.compile(SourceUnit(source=SOURCE, contract_name='Helper', file_name='SimpleStorage.sol'))

        assert artifact.contract_name == 'Helper'
        assert artifact.bytecode == bytes.fromhex('60806040')

    def test_missing_contract(self, compiler, compile_standard):
        with pytest.raises(ArtifactNotFoundError) as exc_info:
            compiler.compile(SourceUnit(source=SOURCE, contract_name='Missing', file_name='SimpleStorage.sol'))

        assert exc_info.value.available == ['Helper', 'SimpleStorage']
        assert exc_info.value.kind == 'artifact_not_found'

    def test_empty_bytecode_not_deployable(self, compiler, source_unit, installed):
        with patch('compiler.solc_adapter.solcx.compile_standard', return_value=solc_output(simple_bytecode='')):
            with pytest.raises(ArtifactNotFoundError, match='not deployable'):
                compiler.compile(source_unit)

    def test_fatal_diagnostics_in_output(self, compiler, source_unit, installed):
        with patch('compiler.solc_adapter.solcx.compile_standard', return_value=solc_output([WARNING, ERROR])):
            with pytest.raises(CompilationError) as exc_info:
                compiler.compile(source_unit)

        assert len(exc_info.value.diagnostics) == 2
        assert exc_info.value.errors[0].error_type == 'ParserError'

    def test_solc_error_carries_diagnostics(self, compiler, source_unit, installed):
        error = SolcError(
            message="ParserError: Expected ';' but got '}'",
            command=['solc', '--standard-json'],
            return_code=0,
            stdin_data='{}',
            stdout_data=json.dumps({"errors": [ERROR]}),
            stderr_data=''
        )

        with patch('compiler.solc_adapter.solcx.compile_standard', side_effect=error):
            with pytest.raises(CompilationError) as exc_info:
                compiler.compile(source_unit)

        diagnostic = exc_info.value.errors[0]
        assert diagnostic.message == "Expected ';' but got '}'"
        assert diagnostic.source_file == 'SimpleStorage.sol'
        assert 'Compilation failed with 1 error' in exc_info.value.detail

    def test_deterministic(self, compiler, source_unit, compile_standard):
        first = compiler.compile(source_unit)
        second = compiler.compile(source_unit)

        assert first == second
        assert first.source_hash == second.source_hash

    def test_source_hash_tracks_inputs(self, compiler, source_unit):
        changed = SourceUnit(source=SOURCE + "\n", contract_name='SimpleStorage')
        optimized = SolcCompiler(solc_version='0.8.20', optimize=True, install=False)

        assert compiler.source_hash(source_unit) == compiler.source_hash(source_unit)
        assert compiler.source_hash(source_unit) != compiler.source_hash(changed)
        assert compiler.source_hash(source_unit) != optimized.source_hash(source_unit)

    def test_compile_cached_reuses_store(self, compiler, source_unit, compile_standard, tmp_path):
        store = ArtifactStore(str(tmp_path))

        first = compiler.compile_cached(source_unit, store)
        second = compiler.compile_cached(source_unit, store)

        assert compile_standard.call_count == 1
        assert second.bytecode == first.bytecode
        assert second.source_hash == first.source_hash


class TestInstallation:
    """Test compiler installation handling"""

    def test_missing_compiler_without_install(self, compiler, source_unit):
        with patch('compiler.solc_adapter.solcx.get_installed_solc_versions', return_value=[]):
            with pytest.raises(ConfigError):
                compiler.compile(source_unit)

    def test_installs_when_missing(self):
        compiler = SolcCompiler(solc_version='0.8.20', install=True)

        with patch('compiler.solc_adapter.solcx.get_installed_solc_versions', return_value=[]), \
                patch('compiler.solc_adapter.solcx.install_solc') as install_solc:
            compiler.ensure_installed()

        install_solc.assert_called_once_with('0.8.20')


def test_parse_diagnostics_without_location():
    diagnostics = parse_diagnostics({"errors": [{"severity": "error", "message": "boom", "type": "CompilerError"}]})

    assert diagnostics[0].is_fatal
    assert diagnostics[0].source_file is None
    assert str(diagnostics[0]) == 'error: boom'
