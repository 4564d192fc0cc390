"""
Smart Contract Deployment Script
Deploys the stored SimpleStorage artifact and records its address

Run: python -m scripts.deploy_contract
"""

import asyncio
import sys
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from blockchain.deployer import DeploymentOrchestrator
from blockchain.errors import PipelineError
from blockchain.models import DeploymentResult
from blockchain.nonce_manager import NonceManager
from blockchain.wallet_manager import SenderIdentity, WalletManager
from compiler.artifact_store import ArtifactStore
from utils.config import load_config
from utils.logging_config import configure_logging, log_pipeline_error
from utils.network_connection import NetworkConnection


async def deploy_contract(
    config: Dict,
    connection: Optional[NetworkConnection] = None,
    sender: Optional[SenderIdentity] = None,
    nonce_manager: Optional[NonceManager] = None
) -> DeploymentResult:
    """Deploy the stored artifact with the configured constructor arguments"""
    logger.info("Starting contract deployment...")

    connection = connection or NetworkConnection.from_config(config)
    connection.check_connected()

    sender = sender or await WalletManager.from_config(config).get_sender(connection)

    balance = await connection.get_balance(sender.address)
    logger.info(f"Deploying from: {sender.address}")
    logger.info(f"Account balance: {connection.w3.from_wei(balance, 'ether')} ETH")

    store = ArtifactStore(config['paths']['artifacts_dir'])
    contract_name = Path(config['paths']['contract_source']).stem
    artifact = store.load_artifact(contract_name)

    orchestrator = DeploymentOrchestrator(
        connection,
        nonce_manager=nonce_manager,
        gas_safety_margin=config['deployment']['gas_safety_margin'],
        store=store
    )

    result = await orchestrator.deploy(
        artifact,
        config['deployment']['constructor_args'],
        sender,
        overwrite_record=True
    )

    logger.success(f"Contract address: {result.address}")
    logger.success(f"Transaction hash: {result.outcome.tx_hash}")
    logger.success(f"Gas used: {result.outcome.gas_used} (estimated {result.outcome.gas_estimated})")

    return result


def main() -> int:
    configure_logging()

    try:
        asyncio.run(deploy_contract(load_config()))
    except PipelineError as e:
        log_pipeline_error(e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
