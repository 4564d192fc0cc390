"""
Deployment Orchestrator
Deploys a compiled artifact and resolves the created contract's address
"""

from typing import Any, Optional, Sequence

from loguru import logger
from web3 import Web3

from utils.network_connection import NetworkConnection
from .errors import SubmissionError
from .models import CompiledArtifact, DeployedContractRef, DeploymentResult
from .nonce_manager import NonceManager
from .transaction_sender import TransactionSender
from .wallet_manager import SenderIdentity


class DeploymentOrchestrator:
    """
    Encode -> simulate -> submit -> await receipt -> resolve address

    Sole writer of DeployedContractRef and of the persisted deployment
    record. A dropped or timed-out deployment is reported, never retried.
    """

    def __init__(
        self,
        connection: NetworkConnection,
        nonce_manager: Optional[NonceManager] = None,
        gas_safety_margin: float = 1.2,
        store=None
    ):
        """
        Initialize Deployment Orchestrator

        Args:
            connection: Network connection handle
            nonce_manager: Shared nonce manager
            gas_safety_margin: Multiplier applied to the gas estimate
            store: Optional ArtifactStore to record the deployment in
        """
        self.connection = connection
        self.sender = TransactionSender(connection, nonce_manager, gas_safety_margin)
        self.store = store

    @property
    def nonce_manager(self) -> NonceManager:
        return self.sender.nonce_manager

    async def deploy(
        self,
        artifact: CompiledArtifact,
        constructor_args: Sequence[Any],
        sender: SenderIdentity,
        value: int = 0,
        overwrite_record: bool = False
    ) -> DeploymentResult:
        """
        Deploy a contract

        Args:
            artifact: Compiled artifact
            constructor_args: Ordered constructor arguments
            sender: Deployer identity
            value: Wei for a payable constructor
            overwrite_record: Replace an existing deployment record for this chain

        Returns:
            DeploymentResult (reference + transaction outcome)

        Raises:
            EncodingError: constructor arguments do not fit (nothing was sent)
            SimulationError: the constructor reverts in the dry run
            SubmissionError: RPC failure, or no contract address in the receipt
            RevertError: the creation transaction was mined reverted
            TransactionTimeoutError: no receipt within the configured bound
        """
        # Encoding first: bad arguments must fail before any network access
        call = self.sender.builder.build_creation(artifact, constructor_args, sender.address, value)

        logger.info(f"Deploying {artifact.contract_name} from {sender.address} with args {list(constructor_args)}")

        outcome = await self.sender.execute(call, sender, artifact.interface)

        if not outcome.contract_address:
            raise SubmissionError(
                f"{artifact.contract_name} deployment receipt has no contract address",
                tx_hash=outcome.tx_hash
            )

        ref = DeployedContractRef(
            address=Web3.to_checksum_address(outcome.contract_address),
            abi=artifact.abi,
            contract_name=artifact.contract_name
        )

        logger.success(f"✅ {artifact.contract_name} deployed at {ref.address}")
        logger.info(f"  Gas estimated: {outcome.gas_estimated} (limit {outcome.gas_limit}), used: {outcome.gas_used}")

        if self.store is not None:
            self.store.save_deployment(
                artifact.contract_name,
                ref.address,
                await self.connection.chain_id(),
                tx_hash=outcome.tx_hash,
                block_number=outcome.block_number,
                overwrite=overwrite_record
            )

        return DeploymentResult(ref=ref, outcome=outcome)
