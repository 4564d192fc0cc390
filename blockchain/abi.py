"""
ABI Handling
Parses contract ABIs into typed descriptors and encodes/decodes call data
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from eth_abi import decode, encode, is_encodable
from eth_abi.exceptions import DecodingError as AbiDecodingError
from eth_abi.exceptions import EncodingError as AbiEncodingError
from eth_utils import is_address
from hexbytes import HexBytes
from web3 import Web3

from .errors import DecodingError, EncodingError
from .models import (
    FUNCTION_KINDS,
    AbiParameter,
    ConstructorDescriptor,
    ContractInterface,
    EventDescriptor,
    FunctionDescriptor,
)

# Error(string) and Panic(uint256) selectors
ERROR_SELECTOR = bytes.fromhex('08c379a0')
PANIC_SELECTOR = bytes.fromhex('4e487b71')


def canonical_type(entry: Dict[str, Any]) -> str:
    """Render an ABI parameter type, expanding tuples into (t1,t2,...) form"""
    abi_type = entry['type']
    if not abi_type.startswith('tuple'):
        return abi_type
    inner = ','.join(canonical_type(c) for c in entry.get('components', []))
    return f"({inner}){abi_type[len('tuple'):]}"


def _params(entries: Iterable[Dict[str, Any]]) -> Tuple[AbiParameter, ...]:
    return tuple(
        AbiParameter(
            name=e.get('name', ''),
            type=canonical_type(e),
            internal_type=e.get('internalType'),
            indexed=bool(e.get('indexed', False))
        )
        for e in entries
    )


def _mutability(entry: Dict[str, Any]) -> str:
    """stateMutability, falling back to the legacy constant/payable flags"""
    if 'stateMutability' in entry:
        return entry['stateMutability']
    if entry.get('payable'):
        return 'payable'
    if entry.get('constant'):
        return 'view'
    return 'nonpayable'


def parse_abi(abi: Sequence[Dict[str, Any]]) -> ContractInterface:
    """
    Build a ContractInterface from ABI JSON

    Args:
        abi: List of ABI entries as emitted by solc

    Returns:
        ContractInterface
    """
    constructor = None
    functions: List[FunctionDescriptor] = []
    events: List[EventDescriptor] = []
    has_receive = False
    has_fallback = False
    payable_fallback = False

    for entry in abi:
        # entries without a type are functions in old ABIs
        kind = entry.get('type', 'function')

        if kind == 'function':
            mutability = _mutability(entry)
            if mutability not in FUNCTION_KINDS:
                raise EncodingError(f"Unknown state mutability '{mutability}' for {entry.get('name')}")
            functions.append(FUNCTION_KINDS[mutability](
                name=entry['name'],
                inputs=_params(entry.get('inputs', [])),
                outputs=_params(entry.get('outputs', []))
            ))
        elif kind == 'constructor':
            constructor = ConstructorDescriptor(
                inputs=_params(entry.get('inputs', [])),
                payable=_mutability(entry) == 'payable'
            )
        elif kind == 'event':
            events.append(EventDescriptor(
                name=entry['name'],
                inputs=_params(entry.get('inputs', [])),
                anonymous=bool(entry.get('anonymous', False))
            ))
        elif kind == 'receive':
            has_receive = True
        elif kind == 'fallback':
            has_fallback = True
            payable_fallback = _mutability(entry) == 'payable'

    return ContractInterface(
        constructor=constructor,
        functions=tuple(functions),
        events=tuple(events),
        has_receive=has_receive,
        has_fallback=has_fallback,
        payable_fallback=payable_fallback
    )


def function_selector(descriptor: FunctionDescriptor) -> bytes:
    return bytes(Web3.keccak(text=descriptor.signature)[:4])


def event_topic(descriptor: EventDescriptor) -> bytes:
    return bytes(Web3.keccak(text=descriptor.signature))


def _normalize_argument(abi_type: str, value: Any) -> Any:
    """Checksum address strings (including inside address arrays)"""
    if abi_type == 'address' and isinstance(value, str) and is_address(value):
        return Web3.to_checksum_address(value)
    if abi_type.endswith(']') and isinstance(value, (list, tuple)):
        element_type = abi_type[:abi_type.rindex('[')]
        return [_normalize_argument(element_type, v) for v in value]
    return value


def encode_values(label: str, types: List[str], args: Sequence[Any]) -> bytes:
    """
    ABI-encode `args` against `types`

    Raises:
        EncodingError: on arity or type mismatch
    """
    if len(args) != len(types):
        raise EncodingError(
            f"{label} expects {len(types)} argument(s) ({', '.join(types) or 'none'}), got {len(args)}"
        )

    values = [_normalize_argument(t, a) for t, a in zip(types, args)]

    for position, (abi_type, value) in enumerate(zip(types, values)):
        if not is_encodable(abi_type, value):
            raise EncodingError(
                f"{label}: argument {position} ({value!r}) is not a valid {abi_type}"
            )

    try:
        return encode(types, values)
    except (AbiEncodingError, TypeError, ValueError) as e:
        raise EncodingError(f"{label}: {e}") from e


def encode_call(descriptor: FunctionDescriptor, args: Sequence[Any]) -> bytes:
    """Selector + encoded arguments for a function call"""
    encoded = encode_values(descriptor.signature, descriptor.input_types, args)
    return function_selector(descriptor) + encoded


def encode_deployment(interface: ContractInterface, bytecode: bytes, args: Sequence[Any]) -> bytes:
    """Creation bytecode followed by the encoded constructor arguments"""
    if interface.constructor is None:
        if args:
            raise EncodingError(f"Contract has no constructor but {len(args)} argument(s) were given")
        return bytes(bytecode)

    constructor = interface.constructor
    return bytes(bytecode) + encode_values(constructor.signature, constructor.input_types, args)


def _normalize_output(abi_type: str, value: Any) -> Any:
    if abi_type == 'address' and isinstance(value, str):
        return Web3.to_checksum_address(value)
    if abi_type.endswith(']') and isinstance(value, (list, tuple)):
        element_type = abi_type[:abi_type.rindex('[')]
        return type(value)(_normalize_output(element_type, v) for v in value)
    return value


def decode_values(label: str, types: List[str], data: bytes) -> Tuple[Any, ...]:
    """
    Decode `data` as `types`

    Raises:
        DecodingError: when the data does not have the expected shape
    """
    data = bytes(data)
    if types and not data:
        raise DecodingError(f"{label}: empty return data, expected ({','.join(types)})")

    try:
        values = decode(types, data)
    except (AbiDecodingError, OverflowError, ValueError) as e:
        raise DecodingError(f"{label}: cannot decode return data as ({','.join(types)}): {e}") from e

    return tuple(_normalize_output(t, v) for t, v in zip(types, values))


def decode_return(descriptor: FunctionDescriptor, data: bytes) -> Any:
    """
    Decode a function's return data

    Returns:
        None for no outputs, the value for one output, a tuple otherwise
    """
    if not descriptor.outputs:
        return None

    values = decode_values(descriptor.signature, descriptor.output_types, data)
    return values[0] if len(values) == 1 else values


def decode_revert_reason(data: Union[bytes, str, None]) -> Optional[str]:
    """
    Extract a human-readable reason from revert data

    Understands Error(string) and Panic(uint256); anything else yields None.
    """
    if not data:
        return None
    raw = bytes(HexBytes(data))

    try:
        if raw[:4] == ERROR_SELECTOR:
            return decode(['string'], raw[4:])[0]
        if raw[:4] == PANIC_SELECTOR:
            code = decode(['uint256'], raw[4:])[0]
            return f"Panic({hex(code)})"
    except (AbiDecodingError, UnicodeDecodeError, OverflowError, ValueError):
        return None

    return None


def _hashed_in_topic(abi_type: str) -> bool:
    """Indexed reference types (strings, bytes, any array, tuples) are stored as their keccak hash"""
    return (
        abi_type in ('string', 'bytes')
        or abi_type.endswith(']')
        or abi_type.startswith('(')
    )


def _raw_log(log: Any, topics: List[bytes], data: bytes) -> Dict[str, Any]:
    return {
        'event': None,
        'address': log['address'],
        'topics': [Web3.to_hex(t) for t in topics],
        'data': Web3.to_hex(data),
        'log_index': log.get('logIndex')
    }


def decode_logs(interface: ContractInterface, logs: Iterable[Any], address: Optional[str] = None) -> Tuple[Dict[str, Any], ...]:
    """
    Decode receipt logs against the interface's events

    Logs that match no known event, come from another address, or do not
    decode against the matching event are returned with `event` set to None
    and their raw topics/data. Indexed reference values cannot be recovered
    from their topic hash and are returned as the hash.
    """
    by_topic = {
        event_topic(e): e for e in interface.events if not e.anonymous
    }
    decoded = []

    for log in logs:
        topics = [bytes(HexBytes(t)) for t in log['topics']]
        data = bytes(HexBytes(log['data']))
        log_address = log['address']

        event = by_topic.get(topics[0]) if topics else None
        if event is None or (address is not None and log_address.lower() != address.lower()):
            decoded.append(_raw_log(log, topics, data))
            continue

        try:
            args = _decode_event_args(event, topics[1:], data)
        except (DecodingError, AbiDecodingError):
            decoded.append(_raw_log(log, topics, data))
            continue

        decoded.append({
            'event': event.name,
            'address': log_address,
            'args': args,
            'log_index': log.get('logIndex')
        })

    return tuple(decoded)


def _decode_event_args(event: EventDescriptor, topics: List[bytes], data: bytes) -> Dict[str, Any]:
    indexed = [p for p in event.inputs if p.indexed]
    plain = [p for p in event.inputs if not p.indexed]

    if len(topics) != len(indexed):
        raise DecodingError(f"{event.signature}: expected {len(indexed)} indexed topic(s), got {len(topics)}")

    args: Dict[str, Any] = {}
    for param, topic in zip(indexed, topics):
        if _hashed_in_topic(param.type):
            args[param.name] = Web3.to_hex(topic)
        else:
            args[param.name] = _normalize_output(param.type, decode([param.type], topic)[0])

    values = decode_values(event.signature, [p.type for p in plain], data) if plain else ()
    for param, value in zip(plain, values):
        args[param.name] = value

    return args
