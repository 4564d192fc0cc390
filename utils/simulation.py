"""
Transaction Simulator
Dry-runs calls before sending so reverts surface before any gas is spent
"""

import math
from typing import Any, Tuple

from loguru import logger

from blockchain.errors import CallRevertedError, SimulationError
from blockchain.models import PendingCall
from .network_connection import NetworkConnection, rpc_call


def apply_gas_margin(estimate: int, margin: float) -> int:
    """
    Inflate a gas estimate by a safety margin

    Args:
        estimate: Raw eth_estimateGas result
        margin: Multiplier (1.0 = no buffer)

    Returns:
        Gas limit, never below the estimate
    """
    if margin < 1.0:
        raise ValueError(f"Gas safety margin must be >= 1.0, got {margin}")
    return max(estimate, math.ceil(estimate * margin))


class TransactionSimulator:
    """
    Simulates transactions against current network state
    Uses eth_estimateGas for write paths and eth_call for reads
    """

    def __init__(self, connection: NetworkConnection, gas_safety_margin: float = 1.2):
        """
        Initialize Transaction Simulator

        Args:
            connection: Network connection handle
            gas_safety_margin: Multiplier applied to gas estimates
        """
        if gas_safety_margin < 1.0:
            raise ValueError(f"Gas safety margin must be >= 1.0, got {gas_safety_margin}")

        self.connection = connection
        self.gas_safety_margin = gas_safety_margin

    async def estimate_gas(self, call: PendingCall) -> Tuple[int, int]:
        """
        Estimate gas for a pending write

        Args:
            call: Pending call (creation or function call)

        Returns:
            (raw estimate, gas limit with safety margin)

        Raises:
            SimulationError: the dry run reverted
        """
        with rpc_call(f"{call.label} simulation", revert_error=SimulationError):
            estimate = self.connection.w3.eth.estimate_gas(call.as_params())

        gas_limit = apply_gas_margin(estimate, self.gas_safety_margin)
        logger.debug(f"Gas estimate for {call.label}: {estimate} -> {gas_limit} (x{self.gas_safety_margin})")

        return estimate, gas_limit

    async def call(self, call: PendingCall, block_identifier: Any = 'latest') -> bytes:
        """
        Execute a stateless call

        Args:
            call: Pending call
            block_identifier: Block number/tag to execute against

        Returns:
            Raw return data

        Raises:
            CallRevertedError: the call reverted
        """
        with rpc_call(call.label, revert_error=CallRevertedError):
            result = self.connection.w3.eth.call(call.as_params(), block_identifier)

        return bytes(result)
