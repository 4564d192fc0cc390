"""
Contract Pipeline - Main Entry Point
Compile -> deploy -> interact against a local development chain
"""

import asyncio
import sys

from loguru import logger

from blockchain.errors import PipelineError
from blockchain.nonce_manager import NonceManager
from blockchain.wallet_manager import WalletManager
from scripts.compile_contract import compile_contract
from scripts.deploy_contract import deploy_contract
from scripts.interact import interact
from utils.config import load_config
from utils.logging_config import configure_logging, log_pipeline_error
from utils.network_connection import NetworkConnection


async def run_pipeline(config_path: str = None):
    """Run the full walkthrough in one event loop"""
    config = load_config(config_path)

    logger.info("=" * 70)
    logger.info("🚀 Contract pipeline starting")
    logger.info("=" * 70)

    compile_contract(config)

    # One connection and one nonce manager for the whole run
    connection = NetworkConnection.from_config(config)
    connection.check_connected()
    nonce_manager = NonceManager.for_connection(connection)
    sender = await WalletManager.from_config(config).get_sender(connection)

    await deploy_contract(config, connection, sender, nonce_manager)
    await interact(config, connection, sender, nonce_manager)

    logger.info("=" * 70)
    logger.info("✅ Pipeline complete")
    logger.info("=" * 70)


def main() -> int:
    configure_logging()

    try:
        asyncio.run(run_pipeline())
    except PipelineError as e:
        log_pipeline_error(e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
