"""
Contract Compilation Script
Compiles contracts/SimpleStorage.sol and persists the artifact

Run: python -m scripts.compile_contract
"""

import sys
from typing import Dict

from loguru import logger

from blockchain.errors import PipelineError
from blockchain.models import CompiledArtifact, SourceUnit
from compiler.artifact_store import ArtifactStore
from compiler.solc_adapter import SolcCompiler
from utils.config import load_config
from utils.logging_config import configure_logging, log_pipeline_error


def compile_contract(config: Dict) -> CompiledArtifact:
    """Compile (or reuse the cached artifact) and persist it"""
    source_unit = SourceUnit.from_file(config['paths']['contract_source'])
    store = ArtifactStore(config['paths']['artifacts_dir'])
    compiler = SolcCompiler.from_config(config)

    artifact = compiler.compile_cached(source_unit, store)

    logger.info(f"Contract: {artifact.contract_name}")
    logger.info(f"Source hash: {artifact.source_hash}")
    logger.info(f"Bytecode size: {len(artifact.bytecode)} bytes")
    for fn in artifact.functions:
        logger.info(f"  {fn}")

    return artifact


def main() -> int:
    configure_logging()

    try:
        compile_contract(load_config())
    except PipelineError as e:
        log_pipeline_error(e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
