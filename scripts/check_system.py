"""
System Check Script
Verifies configuration, network, compiler and artifacts before running the pipeline

Run: python -m scripts.check_system
"""

import asyncio
import os
import sys
from pathlib import Path
from typing import Dict

from loguru import logger

from blockchain.errors import PipelineError
from blockchain.wallet_manager import WalletManager
from compiler.artifact_store import ArtifactStore
from compiler.solc_adapter import SolcCompiler
from utils.config import load_config
from utils.logging_config import configure_logging, log_pipeline_error
from utils.network_connection import NetworkConnection


def check_contract_source(config: Dict) -> bool:
    """Check the contract source file exists"""
    logger.info("Checking contract source...")

    path = config['paths']['contract_source']
    if not os.path.exists(path):
        logger.error(f"  ✗ Missing {path}")
        return False

    logger.success(f"  ✓ {path}")
    return True


def check_compiler(config: Dict) -> bool:
    """Check the configured solc version is installed"""
    logger.info("Checking compiler...")

    compiler = SolcCompiler.from_config(config)
    if not compiler.is_installed():
        logger.warning(f"  solc {compiler.solc_version} not installed (will be installed on first compile)")
        return True

    logger.success(f"  ✓ solc {compiler.solc_version}")
    return True


async def check_network(config: Dict) -> bool:
    """Check the RPC endpoint, chain id, accounts and sender balance"""
    logger.info("Checking network endpoint...")

    connection = NetworkConnection.from_config(config)
    if not connection.is_connected():
        logger.error(f"  ✗ {connection.rpc_url}: connection failed")
        return False

    chain_id = await connection.chain_id()
    accounts = await connection.accounts()
    logger.success(f"  ✓ {connection.rpc_url}: chain {chain_id}, {len(accounts)} node account(s)")

    sender = await WalletManager.from_config(config).get_sender(connection)
    balance = await connection.get_balance(sender.address)
    logger.info(f"  Sender {sender.address}: {connection.w3.from_wei(balance, 'ether')} ETH")

    if balance == 0:
        logger.warning("  ⚠ Sender has no funds for deployment gas")
        return False

    return True


def check_artifacts(config: Dict) -> bool:
    """Report whether compile/deploy have already run"""
    logger.info("Checking artifacts...")

    store = ArtifactStore(config['paths']['artifacts_dir'])
    contract_name = Path(config['paths']['contract_source']).stem

    if store.has_artifact(contract_name):
        logger.success(f"  ✓ Artifact for {contract_name} present")
    else:
        logger.info("  No artifact yet (run: python -m scripts.compile_contract)")

    return True


def main() -> int:
    """Run all system checks"""
    configure_logging()

    logger.info("=" * 70)
    logger.info("Contract Pipeline System Check")
    logger.info("=" * 70)

    try:
        config = load_config()
    except PipelineError as e:
        log_pipeline_error(e)
        return 1

    checks = [
        ("Contract Source", lambda: check_contract_source(config)),
        ("Compiler", lambda: check_compiler(config)),
        ("Network", lambda: asyncio.run(check_network(config))),
        ("Artifacts", lambda: check_artifacts(config)),
    ]

    results = []

    for name, check_func in checks:
        logger.info("")
        try:
            results.append((name, check_func()))
        except PipelineError as e:
            log_pipeline_error(e)
            results.append((name, False))

    logger.info("")
    logger.info("=" * 70)
    logger.info("Summary")
    logger.info("=" * 70)

    passed = sum(1 for _, result in results if result)

    for name, result in results:
        status = "✓ PASS" if result else "✗ FAIL"
        logger.info(f"  {status}: {name}")

    logger.info(f"Total: {passed}/{len(results)} checks passed")

    if passed == len(results):
        logger.success("✅ Ready: python main.py")
        return 0

    logger.error("❌ Not ready - fix issues above")
    return 1


if __name__ == "__main__":
    sys.exit(main())
