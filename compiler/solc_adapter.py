"""
Solidity Compiler Adapter
Compiles a source unit with solc (Standard JSON) into a deployable artifact
"""

import hashlib
import json
from typing import Dict, List, Optional, Tuple

import solcx
from loguru import logger
from solcx.exceptions import SolcError, SolcNotInstalled

from blockchain.errors import ArtifactNotFoundError, CompilationError, ConfigError
from blockchain.models import CompiledArtifact, Diagnostic, SourceUnit

OUTPUT_SELECTION = ["abi", "evm.bytecode.object", "metadata"]


def parse_diagnostics(output: Dict) -> List[Diagnostic]:
    """Convert solc's `errors` list into Diagnostic records"""
    diagnostics = []

    for entry in output.get('errors', []):
        location = entry.get('sourceLocation') or {}
        diagnostics.append(Diagnostic(
            severity=entry.get('severity', 'error'),
            message=entry.get('message', ''),
            source_file=location.get('file'),
            start=location.get('start'),
            end=location.get('end'),
            error_type=entry.get('type'),
            formatted=entry.get('formattedMessage')
        ))

    return diagnostics


class SolcCompiler:
    """
    Compiler Adapter over py-solc-x

    Identical source text and settings always produce identical bytecode,
    so artifacts can be cached by `source_hash`.
    """

    def __init__(
        self,
        solc_version: str = "0.8.20",
        optimize: bool = False,
        optimize_runs: int = 200,
        evm_version: Optional[str] = None,
        install: bool = True
    ):
        """
        Initialize Solc Compiler

        Args:
            solc_version: Exact solc version to compile with
            optimize: Enable the optimizer
            optimize_runs: Optimizer runs parameter
            evm_version: Target EVM version (None = compiler default)
            install: Download the compiler if it is missing
        """
        self.solc_version = solc_version
        self.optimize = optimize
        self.optimize_runs = optimize_runs
        self.evm_version = evm_version
        self.install = install

    @classmethod
    def from_config(cls, config: Dict) -> "SolcCompiler":
        compiler = config['compiler']
        return cls(
            solc_version=compiler['solc_version'],
            optimize=compiler['optimize'],
            optimize_runs=compiler['optimize_runs'],
            evm_version=compiler.get('evm_version')
        )

    def is_installed(self) -> bool:
        return any(str(v) == self.solc_version for v in solcx.get_installed_solc_versions())

    def ensure_installed(self):
        """Install the configured solc version if it is missing"""
        if self.is_installed():
            return

        if not self.install:
            raise ConfigError(f"solc {self.solc_version} is not installed")

        logger.info(f"Installing solc {self.solc_version}...")
        solcx.install_solc(self.solc_version)

    def settings(self) -> Dict:
        settings = {
            'optimizer': {'enabled': self.optimize, 'runs': self.optimize_runs},
            'metadata': {'bytecodeHash': 'none'},
            'outputSelection': {'*': {'*': OUTPUT_SELECTION}}
        }
        if self.evm_version:
            settings['evmVersion'] = self.evm_version
        return settings

    def build_request(self, source_unit: SourceUnit) -> Dict:
        """Standard JSON input for one source file"""
        return {
            'language': 'Solidity',
            'sources': {source_unit.file_name: {'content': source_unit.source}},
            'settings': self.settings()
        }

    def source_hash(self, source_unit: SourceUnit) -> str:
        """sha256 over source text, contract name and compiler configuration"""
        payload = json.dumps({
            'source': source_unit.source,
            'file_name': source_unit.file_name,
            'contract_name': source_unit.contract_name,
            'solc_version': self.solc_version,
            'settings': self.settings()
        }, sort_keys=True)
        return hashlib.sha256(payload.encode('utf-8')).hexdigest()

    def _run(self, request: Dict) -> Tuple[Dict, List[Diagnostic]]:
        try:
            output = solcx.compile_standard(request, solc_version=self.solc_version)
        except SolcNotInstalled as e:
            raise ConfigError(f"solc {self.solc_version} is not installed: {e}") from e
        except SolcError as e:
            # py-solc-x raises on fatal diagnostics; recover them from stdout
            try:
                output = json.loads(e.stdout_data or '{}')
            except ValueError:
                output = {}
            diagnostics = parse_diagnostics(output) or [Diagnostic(severity='error', message=e.message)]
            raise CompilationError(self._summary(diagnostics), diagnostics) from e

        diagnostics = parse_diagnostics(output)
        if any(d.is_fatal for d in diagnostics):
            raise CompilationError(self._summary(diagnostics), diagnostics)

        return output, diagnostics

    @staticmethod
    def _summary(diagnostics: List[Diagnostic]) -> str:
        errors = [d for d in diagnostics if d.is_fatal]
        first = errors[0].message if errors else 'unknown error'
        return f"Compilation failed with {len(errors)} error(s): {first}"

    def compile(self, source_unit: SourceUnit) -> CompiledArtifact:
        """
        Compile a source unit and extract the requested contract

        Args:
            source_unit: Source text and contract name

        Returns:
            CompiledArtifact

        Raises:
            CompilationError: solc reported fatal diagnostics
            ArtifactNotFoundError: the contract is missing or not deployable
        """
        self.ensure_installed()

        logger.info(f"Compiling {source_unit.contract_name} ({source_unit.file_name}) with solc {self.solc_version}")

        output, diagnostics = self._run(self.build_request(source_unit))

        warnings = tuple(d for d in diagnostics if not d.is_fatal)
        for warning in warnings:
            logger.warning(f"solc: {warning}")

        name = source_unit.contract_name
        contracts = output.get('contracts', {})
        available = [n for per_file in contracts.values() for n in per_file]

        compiled = None
        for per_file in contracts.values():
            if name in per_file:
                compiled = per_file[name]
                break

        if compiled is None:
            raise ArtifactNotFoundError(name, available=available)

        bytecode_hex = compiled.get('evm', {}).get('bytecode', {}).get('object', '')
        if not bytecode_hex:
            raise ArtifactNotFoundError(
                name,
                detail=f"Contract '{name}' has no bytecode (abstract contract or interface is not deployable)"
            )

        try:
            bytecode = bytes.fromhex(bytecode_hex[2:] if bytecode_hex.startswith('0x') else bytecode_hex)
        except ValueError as e:
            # unlinked libraries leave __$...$__ placeholders in the hex
            raise CompilationError(f"Bytecode for '{name}' has unlinked library references") from e

        artifact = CompiledArtifact(
            contract_name=name,
            bytecode=bytecode,
            abi=compiled.get('abi', []),
            source_hash=self.source_hash(source_unit),
            compiler_version=self.solc_version,
            warnings=warnings
        )

        logger.success(f"Compiled {name}: {len(artifact.bytecode)} bytes, {len(artifact.functions)} function(s)")
        return artifact

    def compile_cached(self, source_unit: SourceUnit, store) -> CompiledArtifact:
        """
        Return the stored artifact when its source hash matches, else compile and persist

        Args:
            source_unit: Source text and contract name
            store: ArtifactStore

        Returns:
            CompiledArtifact
        """
        digest = self.source_hash(source_unit)

        if store.has_artifact(source_unit.contract_name) and \
                store.stored_source_hash(source_unit.contract_name) == digest:
            logger.info(f"{source_unit.contract_name} unchanged since last compile; using stored artifact")
            return store.load_artifact(source_unit.contract_name)

        artifact = self.compile(source_unit)
        store.save_artifact(artifact)
        return artifact
