"""
Ethereum ABI encoding and decoding of parameter lists.

Parameters are laid out as a head of 32-byte slots in declaration order followed by a
tail. Static values live in the head (static arrays and tuples inline all their words);
a dynamic value's head slot holds the offset of its data in the tail, counted from the
start of the enclosing block. ``eth_abi`` does the packing; this module validates
values against :mod:`ethkit.abi_types` on the way in and the layout on the way out.
"""
import binascii
from typing import Any, List, Sequence, Tuple, Union

import eth_abi
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import (
    big_endian_to_int,
    decode_hex,
    is_hex_address,
    to_canonical_address,
    to_checksum_address,
)

from .abi_types import (
    WORD_SIZE,
    ABIType,
    AddressType,
    BoolType,
    BytesType,
    DynamicArrayType,
    FixedBytesType,
    FunctionType,
    IntType,
    StaticArrayType,
    StringType,
    TupleType,
    UIntType,
    head_size,
    parse_type,
)
from .exceptions import EncodingTypeMismatch, MalformedInput

TypeLike = Union[ABIType, str]


def _resolve(abi_type: TypeLike) -> ABIType:
    return parse_type(abi_type) if isinstance(abi_type, str) else abi_type


def _as_bytes(value, abi_type: ABIType) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and value.startswith(('0x', '0X')):
        try:
            return decode_hex(value)
        except (binascii.Error, ValueError) as exc:
            raise EncodingTypeMismatch(f'{abi_type}: invalid hex string {value!r}') from exc
    raise EncodingTypeMismatch(f'{abi_type}: expected bytes or 0x-prefixed hex, got {type(value).__name__}')


def _as_int(value, abi_type: ABIType) -> int:
    # bool is an int subclass but never a valid integer argument
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingTypeMismatch(f'{abi_type}: expected int, got {type(value).__name__}')
    return value


def _as_sequence(value, abi_type: ABIType, length: int = None) -> Sequence:
    if not isinstance(value, (list, tuple)):
        raise EncodingTypeMismatch(f'{abi_type}: expected a list or tuple, got {type(value).__name__}')
    if length is not None and len(value) != length:
        raise EncodingTypeMismatch(f'{abi_type}: expected {length} elements, got {len(value)}')
    return value


def _normalize(abi_type: ABIType, value):
    if isinstance(abi_type, AddressType):
        if isinstance(value, (bytes, bytearray)) and len(value) == 20:
            return bytes(value)
        if isinstance(value, str) and is_hex_address(value):
            return to_canonical_address(value)
        raise EncodingTypeMismatch(f'address: expected 20 bytes or a 0x-prefixed 40 hex digit string, got {value!r}')
    if isinstance(abi_type, UIntType):
        number = _as_int(value, abi_type)
        if not 0 <= number < 2 ** abi_type.bits:
            raise EncodingTypeMismatch(f'{abi_type}: {number} out of range')
        return number
    if isinstance(abi_type, IntType):
        number = _as_int(value, abi_type)
        bound = 2 ** (abi_type.bits - 1)
        if not -bound <= number < bound:
            raise EncodingTypeMismatch(f'{abi_type}: {number} out of range')
        return number
    if isinstance(abi_type, BoolType):
        if not isinstance(value, bool):
            raise EncodingTypeMismatch(f'bool: expected bool, got {type(value).__name__}')
        return value
    if isinstance(abi_type, FixedBytesType):
        raw = _as_bytes(value, abi_type)
        if len(raw) > abi_type.length:
            raise EncodingTypeMismatch(f'{abi_type}: {len(raw)} bytes do not fit')
        return raw
    if isinstance(abi_type, FunctionType):
        raw = _as_bytes(value, abi_type)
        if len(raw) != abi_type.length:
            raise EncodingTypeMismatch(f'function: expected {abi_type.length} bytes, got {len(raw)}')
        return raw
    if isinstance(abi_type, BytesType):
        return _as_bytes(value, abi_type)
    if isinstance(abi_type, StringType):
        if not isinstance(value, str):
            raise EncodingTypeMismatch(f'string: expected str, got {type(value).__name__}')
        return value
    if isinstance(abi_type, StaticArrayType):
        items = _as_sequence(value, abi_type, abi_type.length)
        return [_normalize(abi_type.element, item) for item in items]
    if isinstance(abi_type, DynamicArrayType):
        items = _as_sequence(value, abi_type)
        return [_normalize(abi_type.element, item) for item in items]
    if isinstance(abi_type, TupleType):
        items = _as_sequence(value, abi_type, len(abi_type.components))
        return tuple(_normalize(t, item) for t, item in zip(abi_type.components, items))
    raise EncodingTypeMismatch(f'unsupported ABI type {abi_type!r}')


def encode(types: Sequence[TypeLike], values: Sequence[Any]) -> bytes:
    """
    ABI-encodes ``values`` against ``types``.

    Values are checked against their types here; the head/tail layout is produced by
    ``eth_abi``.

    Args:
        types: ABI types or type strings, in declaration order.
        values: One Python value per type.

    Returns:
        bytes: The head/tail encoding, a multiple of 32 bytes long.

    Raises:
        InvalidParameterType: If a type string does not parse.
        EncodingTypeMismatch: If the counts differ or a value does not fit its type.
    """
    resolved = [_resolve(t) for t in types]
    values = _as_sequence(values, TupleType(tuple(resolved)), len(resolved))
    normalized = [_normalize(t, v) for t, v in zip(resolved, values)]
    try:
        return eth_abi.encode([t.canonical_name for t in resolved], normalized)
    except EncodingError as exc:
        raise EncodingTypeMismatch(f'cannot ABI-encode {values!r}: {exc}') from exc


def encode_parameters(parameters: Sequence[Tuple[TypeLike, Any]]) -> bytes:
    """Encodes an ordered list of ``(type, value)`` pairs."""
    return encode([t for t, _ in parameters], [v for _, v in parameters])


def _read_uint(data: bytes, pos: int) -> int:
    if pos + WORD_SIZE > len(data):
        raise MalformedInput(f'ABI data ends at {len(data)} bytes, needed a word at offset {pos}')
    return big_endian_to_int(data[pos:pos + WORD_SIZE])


def _value_end(abi_type: ABIType, data: bytes, pos: int) -> int:
    """End position of the dynamic value encoded at ``pos``."""
    if isinstance(abi_type, (BytesType, StringType)):
        length = _read_uint(data, pos)
        end = pos + WORD_SIZE + length + (-length % WORD_SIZE)
        if end > len(data):
            raise MalformedInput(f'{abi_type} at offset {pos} runs past the end of the data')
        return end
    if isinstance(abi_type, DynamicArrayType):
        count = _read_uint(data, pos)
        if count > len(data) or pos + WORD_SIZE + count * head_size(abi_type.element) > len(data):
            raise MalformedInput(f'{abi_type} at offset {pos} claims {count} elements, more than the data holds')
        return _sequence_end([abi_type.element] * count, data, pos + WORD_SIZE)
    if isinstance(abi_type, StaticArrayType):
        return _sequence_end([abi_type.element] * abi_type.length, data, pos)
    return _sequence_end(list(abi_type.components), data, pos)


def _sequence_end(types: List[ABIType], data: bytes, base: int) -> int:
    # dynamic values follow each other through the tail without overlapping
    end = base + sum(head_size(t) for t in types)
    if end > len(data):
        raise MalformedInput(f'ABI data is shorter than the head of {len(types)} values at offset {base}')
    pos = base
    for abi_type in types:
        if abi_type.is_dynamic:
            offset = _read_uint(data, pos)
            start = base + offset
            if start >= len(data):
                raise MalformedInput(f'offset {offset} at {pos} points past the end of the data')
            if start < end:
                raise MalformedInput(f'offset {offset} at {pos} points back into data already decoded')
            end = _value_end(abi_type, data, start)
        pos += head_size(abi_type)
    return end


def _from_eth_abi(abi_type: ABIType, value):
    if isinstance(abi_type, AddressType):
        return to_checksum_address(value)
    if isinstance(abi_type, (StaticArrayType, DynamicArrayType)):
        return [_from_eth_abi(abi_type.element, item) for item in value]
    if isinstance(abi_type, TupleType):
        return tuple(_from_eth_abi(t, item) for t, item in zip(abi_type.components, value))
    return value


def decode(types: Sequence[TypeLike], data: Union[bytes, str]) -> list:
    """
    Decodes ABI ``data`` (return data, or calldata without its selector) into values.

    Decoded values are ``int`` for integers, ``bool``, checksummed address strings,
    ``bytes`` for ``bytesN``/``bytes``/``function``, ``str``, lists for arrays and
    tuples for tuples.

    The layout is checked before ``eth_abi`` decodes it in strict mode: offsets may only
    point forward past data already claimed, so a short input cannot alias one tail
    block from many heads and expand into a huge result.

    Args:
        types: ABI types or type strings, in declaration order.
        data: The encoded bytes, or a 0x-prefixed hex string.

    Returns:
        list: One value per type.

    Raises:
        MalformedInput: If the data is shorter than its head, an offset or length points
            outside the data, offsets overlap, or a word is not the canonical encoding
            of its type.
    """
    if isinstance(data, str):
        try:
            data = decode_hex(data)
        except (binascii.Error, ValueError) as exc:
            raise MalformedInput(f'invalid hex ABI data: {exc}') from exc
    data = bytes(data)
    resolved = [_resolve(t) for t in types]
    _sequence_end(resolved, data, 0)
    try:
        values = eth_abi.decode([t.canonical_name for t in resolved], data, strict=True)
    except DecodingError as exc:
        raise MalformedInput(f'invalid ABI data: {exc}') from exc
    except UnicodeDecodeError as exc:
        raise MalformedInput(f'string is not valid UTF-8: {exc}') from exc
    return [_from_eth_abi(t, v) for t, v in zip(resolved, values)]
