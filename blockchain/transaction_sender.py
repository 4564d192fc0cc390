"""
Transaction Sender
Simulate, submit and await confirmation for any state-changing call
"""

from typing import Optional

from loguru import logger

from utils.network_connection import NetworkConnection
from utils.simulation import TransactionSimulator
from .abi import decode_logs
from .errors import PipelineError, RevertError
from .models import ContractInterface, PendingCall, TransactionOutcome
from .nonce_manager import NonceManager
from .transaction_builder import TransactionBuilder
from .wallet_manager import SenderIdentity


class TransactionSender:
    """
    Shared write path for deployments and contract writes

    1. dry run + gas estimate (SimulationError on revert)
    2. reserve nonce, build, broadcast (SubmissionError on RPC failure)
    3. wait for the receipt (TransactionTimeoutError if it never shows)
    4. reject reverted receipts (RevertError)
    """

    def __init__(
        self,
        connection: NetworkConnection,
        nonce_manager: Optional[NonceManager] = None,
        gas_safety_margin: float = 1.2
    ):
        """
        Initialize Transaction Sender

        Args:
            connection: Network connection handle
            nonce_manager: Shared nonce manager (one per connection)
            gas_safety_margin: Multiplier applied to gas estimates
        """
        self.connection = connection
        self.nonce_manager = nonce_manager or NonceManager.for_connection(connection)
        self.simulator = TransactionSimulator(connection, gas_safety_margin)
        self.builder = TransactionBuilder(connection)

    async def execute(
        self,
        call: PendingCall,
        sender: SenderIdentity,
        interface: Optional[ContractInterface] = None
    ) -> TransactionOutcome:
        """
        Run a write end to end

        Args:
            call: Pending call (sender must match `sender.address`)
            sender: Identity that signs/sends
            interface: ABI used to decode receipt logs

        Returns:
            TransactionOutcome of a successfully mined transaction
        """
        estimate, gas_limit = await self.simulator.estimate_gas(call)
        call = call.with_gas_limit(gas_limit)

        async with self.nonce_manager.reserve(sender.address) as nonce:
            tx = await self.builder.build_transaction(call, nonce)
            tx_hash = await sender.submit(self.connection, tx, call.label)

        logger.info(f"{call.label}: sent {tx_hash} (nonce {nonce}, gas limit {gas_limit})")

        receipt = await self.connection.wait_for_receipt(tx_hash, call.label)

        if receipt['status'] != 1:
            reason = await self._replay_reason(call, receipt['blockNumber'])
            raise RevertError(
                f"{call.label} reverted in block {receipt['blockNumber']}",
                reason=reason,
                tx_hash=tx_hash,
                receipt=receipt
            )

        logs = ()
        if interface is not None:
            # only the target contract's own logs are decoded against its ABI
            emitter = call.to or receipt.get('contractAddress')
            logs = decode_logs(interface, receipt['logs'], address=emitter)

        outcome = TransactionOutcome(
            tx_hash=tx_hash,
            block_number=receipt['blockNumber'],
            status=receipt['status'],
            gas_estimated=estimate,
            gas_limit=gas_limit,
            gas_used=receipt['gasUsed'],
            effective_gas_price=receipt.get('effectiveGasPrice'),
            contract_address=receipt.get('contractAddress'),
            logs=logs,
            receipt=receipt
        )

        logger.success(
            f"{call.label}: mined in block {outcome.block_number} "
            f"(gas estimated {estimate}, used {outcome.gas_used})"
        )
        return outcome

    async def _replay_reason(self, call: PendingCall, block_number: int) -> Optional[str]:
        """Re-run a reverted transaction as a call to recover its reason"""
        # parent block: the state the transaction executed against
        replay_block = max(block_number - 1, 0)

        try:
            await self.simulator.call(call, block_identifier=replay_block)
        except PipelineError as e:
            return e.reason

        logger.debug(f"{call.label}: replay at block {replay_block} did not revert")
        return None

