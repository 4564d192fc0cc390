"""
Pipeline Data Model
Immutable records passed between the compiler, the deployer and the contract proxy
"""

from dataclasses import dataclass, field, replace
from functools import cached_property
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class SourceUnit:
    """
    Text of one contract source file plus the contract to extract from it
    """

    source: str
    contract_name: str
    file_name: str = ""

    def __post_init__(self):
        if not self.contract_name:
            raise ValueError("contract_name must not be empty")
        if not self.file_name:
            object.__setattr__(self, 'file_name', f"{self.contract_name}.sol")

    @classmethod
    def from_file(cls, path, contract_name: Optional[str] = None) -> "SourceUnit":
        """
        Read a Solidity source file

        Args:
            path: Path to the .sol file
            contract_name: Contract to extract (defaults to the file stem)

        Returns:
            SourceUnit
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()

        return cls(
            source=source,
            contract_name=contract_name or path.stem,
            file_name=path.name
        )


@dataclass(frozen=True)
class Diagnostic:
    """A single compiler message"""

    severity: str
    message: str
    source_file: Optional[str] = None
    start: Optional[int] = None
    end: Optional[int] = None
    error_type: Optional[str] = None
    formatted: Optional[str] = None

    @property
    def is_fatal(self) -> bool:
        return self.severity == 'error'

    def __str__(self) -> str:
        if self.formatted:
            return self.formatted.strip()
        location = f"{self.source_file}:{self.start}: " if self.source_file else ""
        return f"{location}{self.severity}: {self.message}"


@dataclass(frozen=True)
class AbiParameter:
    """One ABI input/output; `type` is the canonical eth_abi type string"""

    name: str
    type: str
    internal_type: Optional[str] = None
    indexed: bool = False


def _types(params: Tuple[AbiParameter, ...]) -> List[str]:
    return [p.type for p in params]


@dataclass(frozen=True)
class FunctionDescriptor:
    """
    Callable contract function

    Concrete descriptors are one of PureFunction, ViewFunction,
    NonpayableFunction or PayableFunction; the class decides whether a call
    is read-only and whether it may carry value.
    """

    name: str
    inputs: Tuple[AbiParameter, ...] = ()
    outputs: Tuple[AbiParameter, ...] = ()

    mutability: ClassVar[str] = ''
    read_only: ClassVar[bool] = False
    payable: ClassVar[bool] = False

    @property
    def input_types(self) -> List[str]:
        return _types(self.inputs)

    @property
    def output_types(self) -> List[str]:
        return _types(self.outputs)

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    def __str__(self) -> str:
        returns = f" returns ({','.join(self.output_types)})" if self.outputs else ""
        return f"{self.signature} {self.mutability}{returns}"


class PureFunction(FunctionDescriptor):
    mutability = 'pure'
    read_only = True


class ViewFunction(FunctionDescriptor):
    mutability = 'view'
    read_only = True


class NonpayableFunction(FunctionDescriptor):
    mutability = 'nonpayable'


class PayableFunction(FunctionDescriptor):
    mutability = 'payable'
    payable = True


FUNCTION_KINDS = {
    cls.mutability: cls
    for cls in (PureFunction, ViewFunction, NonpayableFunction, PayableFunction)
}


@dataclass(frozen=True)
class ConstructorDescriptor:
    inputs: Tuple[AbiParameter, ...] = ()
    payable: bool = False

    @property
    def input_types(self) -> List[str]:
        return _types(self.inputs)

    @property
    def signature(self) -> str:
        return f"constructor({','.join(self.input_types)})"


@dataclass(frozen=True)
class EventDescriptor:
    name: str
    inputs: Tuple[AbiParameter, ...] = ()
    anonymous: bool = False

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(_types(self.inputs))})"


@dataclass(frozen=True)
class ContractInterface:
    """Typed view over a contract ABI"""

    constructor: Optional[ConstructorDescriptor]
    functions: Tuple[FunctionDescriptor, ...]
    events: Tuple[EventDescriptor, ...] = ()
    has_receive: bool = False
    has_fallback: bool = False
    payable_fallback: bool = False

    def functions_named(self, name: str) -> List[FunctionDescriptor]:
        return [fn for fn in self.functions if fn.name == name]

    @property
    def accepts_plain_value(self) -> bool:
        """True if the contract can receive value with empty calldata"""
        return self.has_receive or self.payable_fallback


@dataclass(frozen=True)
class CompiledArtifact:
    """
    Deployable output of one contract compilation

    Bytecode is never empty: an artifact only exists for a compilation that
    reported no fatal diagnostics.
    """

    contract_name: str
    bytecode: bytes
    abi: List[Dict[str, Any]]
    source_hash: str = ""
    compiler_version: str = ""
    warnings: Tuple[Diagnostic, ...] = ()

    def __post_init__(self):
        if not self.bytecode:
            raise ValueError(f"{self.contract_name}: artifact bytecode is empty")

    @cached_property
    def interface(self) -> ContractInterface:
        from .abi import parse_abi
        return parse_abi(self.abi)

    @property
    def functions(self) -> Tuple[FunctionDescriptor, ...]:
        return self.interface.functions


@dataclass(frozen=True)
class DeployedContractRef:
    """Address + ABI of a contract created by a successful deployment"""

    address: str
    abi: List[Dict[str, Any]]
    contract_name: str = ""

    @cached_property
    def interface(self) -> ContractInterface:
        from .abi import parse_abi
        return parse_abi(self.abi)


@dataclass(frozen=True)
class PendingCall:
    """
    A request about to be sent to the network

    `to` is None for contract creation. `label` names the operation in logs
    and errors. `gas_limit` is set once the call has been simulated.
    """

    data: bytes
    to: Optional[str] = None
    sender: Optional[str] = None
    value: int = 0
    label: str = "call"
    gas_limit: Optional[int] = None

    @property
    def is_creation(self) -> bool:
        return self.to is None

    @property
    def selector(self) -> Optional[bytes]:
        """4-byte function selector (None for creations and plain transfers)"""
        if self.is_creation or len(self.data) < 4:
            return None
        return self.data[:4]

    def with_gas_limit(self, gas_limit: int) -> "PendingCall":
        return replace(self, gas_limit=gas_limit)

    def as_params(self) -> Dict[str, Any]:
        """Parameters for eth_call / eth_estimateGas"""
        params: Dict[str, Any] = {'data': self.data}
        if self.to is not None:
            params['to'] = self.to
        if self.sender is not None:
            params['from'] = self.sender
        if self.value:
            params['value'] = self.value
        return params


@dataclass(frozen=True)
class TransactionOutcome:
    """Mined, successful transaction together with its gas accounting"""

    tx_hash: str
    block_number: int
    status: int
    gas_estimated: int
    gas_limit: int
    gas_used: int
    effective_gas_price: Optional[int] = None
    contract_address: Optional[str] = None
    logs: Tuple[Dict[str, Any], ...] = ()
    receipt: Any = field(default=None, compare=False, repr=False)

    def events_named(self, name: str) -> List[Dict[str, Any]]:
        return [log for log in self.logs if log.get('event') == name]


@dataclass(frozen=True)
class DeploymentResult:
    ref: DeployedContractRef
    outcome: TransactionOutcome

    @property
    def address(self) -> str:
        return self.ref.address
