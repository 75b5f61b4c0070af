"""
Contract interface elements (functions, constructor, fallback, events) parsed from
ABI JSON, function selectors and event topics, and the ``ContractInterface`` that
ties them to the value codec.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from eth_hash.auto import keccak

from . import abi_codec
from .abi_types import (
    ABIType,
    AddressType,
    BoolType,
    BytesType,
    DynamicArrayType,
    FixedBytesType,
    IntType,
    StaticArrayType,
    StringType,
    UIntType,
    canonical_name,
    parse_type,
    split_type_list,
)
from .exceptions import (
    EncodingTypeMismatch,
    InvalidParameterType,
    MalformedInput,
    ParsingError,
    ParsingErrorKind,
)
from .utils import read_contract_json

logger = logging.getLogger(__name__)

# The number of bytes in a function selector.
SELECTOR_LENGTH = 4


def flatten_type_def(item: dict) -> str:
    """
    Recursively flattens an ABI parameter description into a type string.

    Tuple parameters are described with ``type: "tuple"`` (or ``"tuple[]"``,
    ``"tuple[2]"``...) plus a ``components`` list; they flatten to the parenthesized
    form the type parser understands, keeping any array suffix.

    Args:
        item (dict): An input/output entry or a struct component.

    Returns:
        str: For example ``uint256``, ``(uint256,string)`` or ``(address,(bool,bytes))[]``.

    Raises:
        InvalidParameterType: If ``type`` is not a string or ``components`` is not a list.
    """
    type_name = item.get('type')
    if not isinstance(type_name, str):
        raise InvalidParameterType(f'parameter type must be a string, got {type_name!r}')
    if 'components' in item:
        components = item['components']
        if not isinstance(components, list) or not type_name.startswith('tuple'):
            raise InvalidParameterType(f'invalid tuple description for {type_name!r}')
        # the suffix after "tuple" carries the array dimensions
        return '(' + ','.join(flatten_type_def(x) for x in components) + ')' + type_name[len('tuple'):]
    return type_name


def canonical_signature(function_signature: str) -> str:
    """
    Rewrites ``name(type1,type2,...)`` with canonical type names.

    ``transfer(address, uint)`` becomes ``transfer(address,uint256)``.

    Raises:
        InvalidParameterType: If the string is not a signature or a type does not parse.
    """
    name, sep, rest = function_signature.partition('(')
    if not name or not sep or not rest.endswith(')'):
        raise InvalidParameterType(f'{function_signature!r} is not a function signature')
    types = split_type_list(''.join(rest[:-1].split()))
    return f"{name.strip()}({','.join(canonical_name(t) for t in types)})"


def get_function_selector(function_signature: str) -> bytes:
    """
    Calculates the Ethereum function selector (method ID) for a function signature.

    The selector is the first four bytes of the Keccak-256 hash of the canonical
    signature, so ``transfer(address,uint)`` and ``transfer(address,uint256)`` give
    the same ``a9059cbb``.

    Args:
        function_signature (str): The signature, e.g. ``"transfer(address,uint256)"``.

    Returns:
        bytes: The 4-byte function selector.
    """
    # Keccak-256, not the NIST SHA3-256 in hashlib
    return keccak(canonical_signature(function_signature).encode())[:SELECTOR_LENGTH]


@dataclass(frozen=True)
class ABIParameter:
    name: str
    type: ABIType
    indexed: bool = False


def _signature(name: str, params: Sequence[ABIParameter]) -> str:
    return f"{name}({','.join(p.type.canonical_name for p in params)})"


def _types(params: Sequence[ABIParameter]) -> List[ABIType]:
    return [p.type for p in params]


class DecodedResult:
    """
    Ordered decoded values together with the parameters they were decoded against.

    Values are reachable by position or by parameter name. The typed accessors check
    the declared ABI type of the field and raise ``EncodingTypeMismatch`` when it is
    not the requested kind.
    """

    def __init__(self, parameters: Sequence[ABIParameter], values: Sequence[Any]):
        self.parameters = tuple(parameters)
        self.values = tuple(values)

    def _index(self, key: Union[int, str]) -> int:
        if isinstance(key, int):
            if not -len(self.values) <= key < len(self.values):
                raise IndexError(f'no value at position {key}')
            return key % len(self.values)
        for i, param in enumerate(self.parameters):
            if param.name and param.name == key:
                return i
        raise KeyError(key)

    def __getitem__(self, key: Union[int, str]) -> Any:
        return self.values[self._index(key)]

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(self.values)

    def __eq__(self, other) -> bool:
        if isinstance(other, DecodedResult):
            return self.parameters == other.parameters and self.values == other.values
        return NotImplemented

    @property
    def as_tuple(self) -> tuple:
        return self.values

    @property
    def as_dict(self) -> Dict[str, Any]:
        """Values keyed by parameter name; unnamed parameters are keyed by their position."""
        return {(p.name or str(i)): v for i, (p, v) in enumerate(zip(self.parameters, self.values))}

    def _typed(self, key, kinds, label: str):
        index = self._index(key)
        declared = self.parameters[index].type
        if not isinstance(declared, kinds):
            raise EncodingTypeMismatch(f'{key!r} is declared as {declared}, not {label}')
        return self.values[index]

    def get_uint(self, key) -> int:
        return self._typed(key, UIntType, 'uint')

    def get_int(self, key) -> int:
        return self._typed(key, IntType, 'int')

    def get_bool(self, key) -> bool:
        return self._typed(key, BoolType, 'bool')

    def get_address(self, key) -> str:
        return self._typed(key, AddressType, 'address')

    def get_bytes(self, key) -> bytes:
        return self._typed(key, (BytesType, FixedBytesType), 'bytes')

    def get_string(self, key) -> str:
        return self._typed(key, StringType, 'string')

    def get_array(self, key) -> list:
        return self._typed(key, (StaticArrayType, DynamicArrayType), 'array')

    def __repr__(self) -> str:
        return f'DecodedResult({self.as_dict!r})'


@dataclass(frozen=True)
class Function:
    name: str
    inputs: Tuple[ABIParameter, ...] = ()
    outputs: Tuple[ABIParameter, ...] = ()
    constant: bool = False
    payable: bool = False

    @property
    def signature(self) -> str:
        return _signature(self.name, self.inputs)

    @property
    def selector(self) -> bytes:
        return keccak(self.signature.encode())[:SELECTOR_LENGTH]

    def encode_call(self, *args) -> bytes:
        """Calldata for this function: selector followed by the encoded arguments."""
        return self.selector + abi_codec.encode(_types(self.inputs), args)

    def decode_input(self, calldata: bytes) -> DecodedResult:
        """
        Decodes calldata produced for this function.

        Raises:
            MalformedInput: If the selector does not match or the arguments are malformed.
        """
        if calldata[:SELECTOR_LENGTH] != self.selector:
            raise MalformedInput(f'calldata selector {calldata[:SELECTOR_LENGTH].hex()} is not {self.signature}')
        return DecodedResult(self.inputs, abi_codec.decode(_types(self.inputs), calldata[SELECTOR_LENGTH:]))

    def decode_output(self, data: bytes) -> DecodedResult:
        return DecodedResult(self.outputs, abi_codec.decode(_types(self.outputs), data))


@dataclass(frozen=True)
class Constructor:
    inputs: Tuple[ABIParameter, ...] = ()
    constant: bool = False
    payable: bool = False

    def encode_deployment(self, bytecode: bytes, *args) -> bytes:
        """Deployment data: the contract's creation bytecode followed by the encoded constructor arguments."""
        return bytes(bytecode) + abi_codec.encode(_types(self.inputs), args)


@dataclass(frozen=True)
class Fallback:
    constant: bool = False
    payable: bool = False


@dataclass(frozen=True)
class Event:
    name: str
    inputs: Tuple[ABIParameter, ...] = ()
    anonymous: bool = False

    @property
    def signature(self) -> str:
        return _signature(self.name, self.inputs)

    @property
    def topic(self) -> bytes:
        """The full 32-byte Keccak-256 of the signature, emitted as the first log topic."""
        return keccak(self.signature.encode())


ABIElement = Union[Function, Constructor, Fallback, Event]

_ELEMENT_TYPES = ('function', 'constructor', 'fallback', 'event')


def _parse_parameter(entry, invalid_kind: ParsingErrorKind, for_event: bool = False) -> ABIParameter:
    if not isinstance(entry, dict):
        raise ParsingError(invalid_kind, f'parameter must be an object, got {type(entry).__name__}')
    if entry.get('type') is None:
        raise ParsingError(ParsingErrorKind.PARAMETER_TYPE_NOT_FOUND, f'parameter {entry.get("name")!r} has no type')
    name = entry.get('name')
    if name is None:
        name = ''
    elif not isinstance(name, str):
        raise ParsingError(invalid_kind, f'parameter name must be a string, got {name!r}')
    try:
        abi_type = parse_type(flatten_type_def(entry))
    except InvalidParameterType as exc:
        raise ParsingError(ParsingErrorKind.PARAMETER_TYPE_INVALID, str(exc)) from exc
    indexed = bool(entry.get('indexed', False)) if for_event else False
    return ABIParameter(name, abi_type, indexed)


def _parse_parameters(record: dict, key: str, invalid_kind: ParsingErrorKind,
                      for_event: bool = False) -> Tuple[ABIParameter, ...]:
    entries = record.get(key)
    if entries is None:
        return ()
    if not isinstance(entries, list):
        raise ParsingError(invalid_kind, f'{key} must be a list')
    return tuple(_parse_parameter(entry, invalid_kind, for_event) for entry in entries)


def _element_name(record: dict) -> str:
    name = record.get('name')
    if not isinstance(name, str) or not name:
        raise ParsingError(ParsingErrorKind.ELEMENT_NAME_INVALID, f'invalid name {name!r}')
    return name


def parse_element(record: dict) -> ABIElement:
    """
    Turns one ABI JSON record into a typed element.

    A record without ``type`` is a function. ``payable`` is set by
    ``stateMutability == "payable"`` or ``payable: true``; ``constant`` by
    ``constant: true`` or a ``view``/``pure`` state mutability. Constructors are never
    constant.

    Args:
        record (dict): A single entry of a contract's ABI list.

    Returns:
        ABIElement: A :class:`Function`, :class:`Constructor`, :class:`Fallback` or :class:`Event`.

    Raises:
        ParsingError: With the kind naming the rejected part of the record.
    """
    if not isinstance(record, dict):
        raise ParsingError(ParsingErrorKind.ABI_INVALID, f'record must be an object, got {type(record).__name__}')
    element_type = record.get('type') or 'function'
    if element_type not in _ELEMENT_TYPES:
        raise ParsingError(ParsingErrorKind.ELEMENT_TYPE_INVALID, f'unsupported element type {element_type!r}')

    mutability = record.get('stateMutability')
    payable = mutability == 'payable' or bool(record.get('payable', False))
    constant = bool(record.get('constant', False)) or mutability in ('view', 'pure')

    if element_type == 'function':
        return Function(
            name=_element_name(record),
            inputs=_parse_parameters(record, 'inputs', ParsingErrorKind.FUNCTION_INPUT_INVALID),
            outputs=_parse_parameters(record, 'outputs', ParsingErrorKind.FUNCTION_OUTPUT_INVALID),
            constant=constant,
            payable=payable,
        )
    if element_type == 'constructor':
        return Constructor(
            inputs=_parse_parameters(record, 'inputs', ParsingErrorKind.FUNCTION_INPUT_INVALID),
            payable=payable,
        )
    if element_type == 'fallback':
        return Fallback(constant=constant, payable=payable)
    return Event(
        name=_element_name(record),
        inputs=_parse_parameters(record, 'inputs', ParsingErrorKind.EVENT_INPUT_INVALID, for_event=True),
        anonymous=bool(record.get('anonymous', False)),
    )


class ContractInterface:
    """
    A parsed contract ABI.

    Records that fail to parse do not abort the interface: each failure is logged and
    kept in ``errors`` as ``(record index, ParsingError)``, and the remaining elements
    stay usable.
    """

    def __init__(self, abi_json: list):
        if not isinstance(abi_json, list):
            raise ParsingError(ParsingErrorKind.ABI_INVALID, 'an ABI must be a list of records')
        self.elements: List[ABIElement] = []
        self.errors: List[Tuple[int, ParsingError]] = []
        for index, record in enumerate(abi_json):
            try:
                self.elements.append(parse_element(record))
            except ParsingError as exc:
                logger.warning('Skipping ABI record %d: %s', index, exc)
                self.errors.append((index, exc))

    @classmethod
    def from_json(cls, text: str) -> 'ContractInterface':
        try:
            abi_json = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParsingError(ParsingErrorKind.INVALID_JSON_FILE, str(exc)) from exc
        return cls(abi_json)

    @classmethod
    def from_artifact(cls, file_name: str,
                      get_abi=lambda x: x['abi'] if isinstance(x, dict) else x) -> 'ContractInterface':
        """
        Loads the interface from a compiled contract file (Hardhat, Truffle or Foundry
        artifact, or a bare ABI list).

        Args:
            file_name (str): Path of the JSON file.
            get_abi (callable): Extracts the ABI list from the parsed file.
        """
        try:
            artifact = read_contract_json(file_name)
        except json.JSONDecodeError as exc:
            raise ParsingError(ParsingErrorKind.INVALID_JSON_FILE, f'{file_name}: {exc}') from exc
        try:
            abi_json = get_abi(artifact)
        except (KeyError, TypeError) as exc:
            raise ParsingError(ParsingErrorKind.ABI_INVALID, f'{file_name} has no ABI') from exc
        return cls(abi_json)

    @property
    def functions(self) -> List[Function]:
        return [e for e in self.elements if isinstance(e, Function)]

    @property
    def events(self) -> List[Event]:
        return [e for e in self.elements if isinstance(e, Event)]

    @property
    def constructor(self) -> Optional[Constructor]:
        return next((e for e in self.elements if isinstance(e, Constructor)), None)

    @property
    def fallback(self) -> Optional[Fallback]:
        return next((e for e in self.elements if isinstance(e, Fallback)), None)

    def function(self, name: str, arity: Optional[int] = None) -> Function:
        """
        Looks a function up by name (or by full signature, to pick an overload).

        Args:
            name (str): ``balanceOf`` or ``safeTransferFrom(address,address,uint256)``.
            arity (int, optional): Number of inputs, used to choose between overloads.

        Raises:
            KeyError: If no function, or more than one overload, matches.
        """
        if '(' in name:
            signature = canonical_signature(name)
            candidates = [f for f in self.functions if f.signature == signature]
        else:
            candidates = [f for f in self.functions if f.name == name]
            if arity is not None and len(candidates) > 1:
                candidates = [f for f in candidates if len(f.inputs) == arity]
        if len(candidates) != 1:
            raise KeyError(f'{len(candidates)} functions match {name!r}')
        return candidates[0]

    def event(self, name: str) -> Event:
        for event in self.events:
            if event.name == name:
                return event
        raise KeyError(f'no event named {name!r}')

    def encode_call(self, name: str, *args) -> bytes:
        return self.function(name, len(args)).encode_call(*args)

    def decode_output(self, name: str, data: bytes) -> DecodedResult:
        return self.function(name).decode_output(data)

    def decode_input(self, calldata: bytes) -> Tuple[Function, DecodedResult]:
        """
        Finds the function whose selector starts ``calldata`` and decodes its arguments.

        Raises:
            MalformedInput: If no function of this interface has that selector.
        """
        for function in self.functions:
            if calldata[:SELECTOR_LENGTH] == function.selector:
                return function, function.decode_input(calldata)
        raise MalformedInput(f'unknown selector {calldata[:SELECTOR_LENGTH].hex()}')

    def encode_constructor(self, bytecode: bytes, *args) -> bytes:
        constructor = self.constructor
        if constructor is None:
            if args:
                raise EncodingTypeMismatch('the contract has no constructor but arguments were given')
            constructor = Constructor()
        return constructor.encode_deployment(bytecode, *args)
