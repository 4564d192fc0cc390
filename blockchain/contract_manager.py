"""
Contract Manager
Typed read/write access to one deployed contract
"""

from typing import Any, Dict, List, Optional, Union

from loguru import logger

from utils.network_connection import NetworkConnection
from .abi import decode_return
from .errors import EncodingError
from .models import DeployedContractRef, FunctionDescriptor, TransactionOutcome
from .nonce_manager import NonceManager
from .transaction_sender import TransactionSender
from .wallet_manager import SenderIdentity


class BoundRead:
    """Read operation bound to one pure/view function of a deployed contract"""

    def __init__(self, proxy: "ContractProxy", descriptor: FunctionDescriptor):
        self.proxy = proxy
        self.descriptor = descriptor

    async def call(self, *args: Any, block_identifier: Any = 'latest', sender: Optional[str] = None) -> Any:
        """
        Execute via eth_call and decode the return value(s)

        Raises:
            EncodingError / DecodingError / CallRevertedError
        """
        sender_tx = self.proxy.sender
        call = sender_tx.builder.build_call(self.descriptor, self.proxy.address, args, sender=sender)
        data = await sender_tx.simulator.call(call, block_identifier)

        result = decode_return(self.descriptor, data)
        logger.debug(f"{self.descriptor.signature} -> {result!r}")
        return result

    def __repr__(self) -> str:
        return f"BoundRead({self.descriptor})"


class BoundWrite:
    """Write operation bound to one nonpayable/payable function of a deployed contract"""

    def __init__(self, proxy: "ContractProxy", descriptor: FunctionDescriptor):
        self.proxy = proxy
        self.descriptor = descriptor

    async def transact(self, *args: Any, sender: SenderIdentity, value: int = 0) -> TransactionOutcome:
        """
        Simulate, submit and confirm

        Raises:
            EncodingError / SimulationError / SubmissionError / RevertError /
            TransactionTimeoutError
        """
        sender_tx = self.proxy.sender
        call = sender_tx.builder.build_call(
            self.descriptor, self.proxy.address, args, sender=sender.address, value=value
        )

        logger.info(f"Calling {self.descriptor.signature} on {self.proxy.address} from {sender.address}")
        return await sender_tx.execute(call, sender, self.proxy.interface)

    def __repr__(self) -> str:
        return f"BoundWrite({self.descriptor})"


def bind(proxy: "ContractProxy", descriptor: FunctionDescriptor) -> Union[BoundRead, BoundWrite]:
    if descriptor.read_only:
        return BoundRead(proxy, descriptor)
    return BoundWrite(proxy, descriptor)



class ContractProxy:
    """
    Proxy over a deployed contract

    Every ABI function is bound once, by mutability, to a BoundRead (eth_call,
    no sender) or a BoundWrite (the same simulate/submit/confirm path as
    deployments). Access-control reverts are not special-cased: they surface
    as CallRevertedError / SimulationError / RevertError with the contract's
    reason string.
    """

    def __init__(
        self,
        connection: NetworkConnection,
        ref: DeployedContractRef,
        nonce_manager: Optional[NonceManager] = None,
        gas_safety_margin: float = 1.2
    ):
        """
        Initialize Contract Proxy

        Args:
            connection: Network connection handle
            ref: Deployed contract reference (address + ABI)
            nonce_manager: Nonce manager (defaults to the connection's shared one)
            gas_safety_margin: Multiplier applied to gas estimates
        """
        self.connection = connection
        self.ref = ref
        self.interface = ref.interface
        self.sender = TransactionSender(connection, nonce_manager, gas_safety_margin)

        # One bound operation per function, keyed by canonical signature
        self.bound: Dict[str, Union[BoundRead, BoundWrite]] = {
            fn.signature: bind(self, fn) for fn in self.interface.functions
        }

        logger.info(f"Contract proxy ready for {ref.contract_name or 'contract'} at {ref.address}")

    @property
    def address(self) -> str:
        return self.ref.address

    @property
    def functions(self):
        return self.interface.functions

    def function(self, signature: str) -> Union[BoundRead, BoundWrite]:
        """
        Bound operation by canonical signature, e.g. 'set(uint256)'

        Raises:
            EncodingError: no function with that signature
        """
        if signature not in self.bound:
            raise EncodingError(
                f"{self.ref.contract_name or self.address} has no function {signature}; "
                f"available: {', '.join(sorted(self.bound))}"
            )
        return self.bound[signature]

    def get_function(self, name: str, arg_count: Optional[int] = None) -> FunctionDescriptor:
        """
        Resolve a function by name (and argument count for overloads)

        Raises:
            EncodingError: unknown name, or the overload is ambiguous
        """
        candidates = self.interface.functions_named(name)
        if not candidates:
            raise EncodingError(f"{self.ref.contract_name or self.address} has no function '{name}'")

        if len(candidates) == 1:
            return candidates[0]

        signatures = ', '.join(fn.signature for fn in candidates)
        matching = [fn for fn in candidates if arg_count is None or len(fn.inputs) == arg_count]

        if len(matching) != 1:
            raise EncodingError(
                f"Cannot resolve '{name}' with {arg_count} argument(s); candidates: {signatures}"
            )

        return matching[0]

    def _resolve(self, name: str, arg_count: int) -> Union[BoundRead, BoundWrite]:
        return self.bound[self.get_function(name, arg_count).signature]

    async def call(
        self,
        name: str,
        *args: Any,
        block_identifier: Any = 'latest',
        sender: Optional[str] = None
    ) -> Any:
        """
        Read from a pure/view function by name

        Args:
            name: Function name
            *args: Function arguments
            block_identifier: Block number/tag to read at (no caching; 'latest' by default)
            sender: Optional `from` address for the call

        Returns:
            Decoded return value(s)

        Raises:
            EncodingError / DecodingError / CallRevertedError
        """
        operation = self._resolve(name, len(args))

        if not isinstance(operation, BoundRead):
            raise EncodingError(f"{operation.descriptor.signature} is {operation.descriptor.mutability}; use transact()")

        return await operation.call(*args, block_identifier=block_identifier, sender=sender)

    async def transact(
        self,
        name: str,
        *args: Any,
        sender: SenderIdentity,
        value: int = 0
    ) -> TransactionOutcome:
        """
        Execute a nonpayable/payable function by name

        Args:
            name: Function name
            *args: Function arguments
            sender: Identity that signs/sends
            value: Wei to attach (payable only)

        Returns:
            TransactionOutcome with gas accounting and decoded event logs

        Raises:
            EncodingError / SimulationError / SubmissionError / RevertError /
            TransactionTimeoutError
        """
        operation = self._resolve(name, len(args))

        if not isinstance(operation, BoundWrite):
            raise EncodingError(f"{operation.descriptor.signature} is {operation.descriptor.mutability}; use call()")

        return await operation.transact(*args, sender=sender, value=value)

    async def invoke(self, name: str, *args: Any, sender: Optional[SenderIdentity] = None, value: int = 0) -> Any:
        """Route to the bound read or write by the function's mutability"""
        operation = self._resolve(name, len(args))

        if isinstance(operation, BoundRead):
            return await operation.call(*args, sender=sender.address if sender else None)

        if sender is None:
            raise EncodingError(f"{operation.descriptor.signature} is {operation.descriptor.mutability} and needs a sender")

        return await operation.transact(*args, sender=sender, value=value)

    async def send_value(self, sender: SenderIdentity, value: int) -> TransactionOutcome:
        """
        Send plain value to the contract's receive (or payable fallback) handler

        Raises:
            EncodingError: the contract cannot accept plain value
        """
        if not self.interface.accepts_plain_value:
            raise EncodingError(f"{self.ref.contract_name or self.address} has no receive or payable fallback")

        call = self.sender.builder.build_transfer(self.address, sender.address, value)

        logger.info(f"Sending {value} wei to {self.address} from {sender.address}")
        return await self.sender.execute(call, sender, self.interface)

    async def balance(self, block_identifier: Any = 'latest') -> int:
        """Contract's native balance in wei"""
        return await self.connection.get_balance(self.address, block_identifier)

    def describe(self) -> List[str]:
        return [str(fn) for fn in self.interface.functions]
