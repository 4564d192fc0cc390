"""
Contract Interaction Script
Reads and writes the deployed SimpleStorage contract

Run: python -m scripts.interact
"""

import asyncio
import sys
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from blockchain.contract_manager import ContractProxy
from blockchain.errors import REVERT_ERRORS, PipelineError
from blockchain.nonce_manager import NonceManager
from blockchain.wallet_manager import SenderIdentity, WalletManager
from compiler.artifact_store import ArtifactStore
from utils.config import load_config
from utils.logging_config import configure_logging, log_pipeline_error
from utils.network_connection import NetworkConnection

NEW_VALUE = 42
DEPOSIT_WEI = 10 ** 15


async def interact(
    config: Dict,
    connection: Optional[NetworkConnection] = None,
    sender: Optional[SenderIdentity] = None,
    nonce_manager: Optional[NonceManager] = None
):
    """Walk through reads, a write, a value transfer and a rejected withdraw"""
    connection = connection or NetworkConnection.from_config(config)
    connection.check_connected()

    wallets = WalletManager.from_config(config)
    sender = sender or await wallets.get_sender(connection)

    store = ArtifactStore(config['paths']['artifacts_dir'])
    contract_name = Path(config['paths']['contract_source']).stem
    ref = store.load_deployment(contract_name, await connection.chain_id())

    proxy = ContractProxy(
        connection,
        ref,
        nonce_manager=nonce_manager,
        gas_safety_margin=config['deployment']['gas_safety_margin']
    )

    logger.info(f"Stored value: {await proxy.call('get')}")

    outcome = await proxy.transact('set', NEW_VALUE, sender=sender)
    for event in outcome.events_named('DataChanged'):
        logger.info(f"  DataChanged: {event['args']}")
    logger.info(f"Stored value after set({NEW_VALUE}): {await proxy.call('get')}")

    before = await proxy.call('getBalance')
    await proxy.send_value(sender, DEPOSIT_WEI)
    after = await proxy.call('getBalance')
    logger.info(f"Contract balance: {before} -> {after} wei")

    accounts = await connection.accounts()
    outsider_index = next((i for i, a in enumerate(accounts) if a != sender.address), None)
    if outsider_index is None:
        logger.warning("Node exposes no second account; skipping non-owner withdraw")
        return

    outsider = await wallets.get_node_account(connection, outsider_index)

    try:
        await proxy.transact('withdraw', sender=outsider)
        logger.error(f"withdraw() from non-owner {outsider.address} unexpectedly succeeded")
    except REVERT_ERRORS as e:
        logger.info(f"withdraw() from non-owner rejected ({e.kind}): {e.reason}")

    logger.info(f"Contract balance unchanged: {await proxy.balance()} wei")


def main() -> int:
    configure_logging()

    try:
        asyncio.run(interact(load_config()))
    except PipelineError as e:
        log_pipeline_error(e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
