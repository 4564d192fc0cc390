"""
Transaction Builder
Turns typed descriptors and arguments into pending calls and transaction dicts
"""

from typing import Any, Dict, Sequence

from web3 import Web3

from utils.network_connection import NetworkConnection
from .abi import encode_call, encode_deployment
from .errors import EncodingError
from .models import CompiledArtifact, FunctionDescriptor, PendingCall


class TransactionBuilder:
    """
    Builds pending calls and the transactions that carry them

    Encoding happens here, before any network access, so shape errors never
    reach the node.
    """

    def __init__(self, connection: NetworkConnection):
        """
        Initialize Transaction Builder

        Args:
            connection: Network connection handle
        """
        self.connection = connection

    def build_creation(
        self,
        artifact: CompiledArtifact,
        constructor_args: Sequence[Any],
        sender: str,
        value: int = 0
    ) -> PendingCall:
        """
        Build a contract creation call

        Args:
            artifact: Compiled artifact
            constructor_args: Ordered constructor arguments
            sender: Deployer address
            value: Wei sent to a payable constructor

        Returns:
            PendingCall with no target address
        """
        interface = artifact.interface
        payable = interface.constructor is not None and interface.constructor.payable

        if value and not payable:
            raise EncodingError(f"{artifact.contract_name} constructor is not payable; cannot send {value} wei")

        data = encode_deployment(interface, artifact.bytecode, list(constructor_args))

        return PendingCall(
            data=data,
            sender=Web3.to_checksum_address(sender),
            value=value,
            label=f"{artifact.contract_name} deployment"
        )

    def build_call(
        self,
        descriptor: FunctionDescriptor,
        to: str,
        args: Sequence[Any],
        sender: str = None,
        value: int = 0
    ) -> PendingCall:
        """
        Build a function call

        Args:
            descriptor: Function being called
            to: Contract address
            args: Ordered arguments
            sender: Caller address (required for writes)
            value: Wei attached (payable functions only)

        Returns:
            PendingCall
        """
        if value < 0:
            raise EncodingError(f"{descriptor.name}: value must be non-negative, got {value}")
        if value and not descriptor.payable:
            raise EncodingError(f"{descriptor.signature} is {descriptor.mutability}; cannot send {value} wei")

        return PendingCall(
            data=encode_call(descriptor, list(args)),
            to=Web3.to_checksum_address(to),
            sender=Web3.to_checksum_address(sender) if sender else None,
            value=value,
            label=descriptor.signature
        )

    def build_transfer(self, to: str, sender: str, value: int) -> PendingCall:
        """Plain value transfer (empty calldata)"""
        if value <= 0:
            raise EncodingError(f"Transfer value must be positive, got {value}")

        return PendingCall(
            data=b'',
            to=Web3.to_checksum_address(to),
            sender=Web3.to_checksum_address(sender),
            value=value,
            label=f"transfer to {to}"
        )

    async def build_transaction(self, call: PendingCall, nonce: int) -> Dict:
        """
        Populate a transaction dict ready for signing/sending

        Args:
            call: Simulated pending call (carries its gas limit)
            nonce: Reserved nonce

        Returns:
            Transaction dict
        """
        if call.gas_limit is None:
            raise ValueError(f"{call.label}: gas limit not set; simulate the call first")

        tx = {
            'from': call.sender,
            'value': call.value,
            'gas': call.gas_limit,
            'gasPrice': await self.connection.gas_price(),
            'nonce': nonce,
            'chainId': await self.connection.chain_id(),
            'data': call.data
        }

        if call.to is not None:
            tx['to'] = call.to

        return tx
