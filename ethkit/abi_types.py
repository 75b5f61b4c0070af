"""
The closed set of Solidity ABI types and the parser that produces them.

Every type knows whether it is static or dynamic (which decides whether its value
sits in the head of an encoding or behind an offset in the tail), how many head
bytes it occupies when static, and its canonical Solidity name, the form used
in function signatures and therefore in selectors.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Tuple

from .exceptions import InvalidParameterType

WORD_SIZE = 32  # every ABI slot is a 32-byte word

# name, optional width, then zero or more array suffixes; widths are checked after matching
_SCALAR_RE = re.compile(r'(?P<base>[a-z]+)(?P<width>[0-9]+)?(?P<dims>(?:\[[0-9]*\])*)')
_DIMS_RE = re.compile(r'\[([0-9]*)\]')


class ABIType:
    """Base of the ABI type variants. Instances are immutable and hashable."""

    @property
    def is_dynamic(self) -> bool:
        return False

    @property
    def static_size(self) -> int:
        """Number of head bytes a static value of this type occupies."""
        return WORD_SIZE

    @property
    def canonical_name(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.canonical_name


@dataclass(frozen=True)
class AddressType(ABIType):
    @property
    def canonical_name(self) -> str:
        return 'address'


@dataclass(frozen=True)
class UIntType(ABIType):
    bits: int = 256

    @property
    def canonical_name(self) -> str:
        return f'uint{self.bits}'


@dataclass(frozen=True)
class IntType(ABIType):
    bits: int = 256

    @property
    def canonical_name(self) -> str:
        return f'int{self.bits}'


@dataclass(frozen=True)
class BoolType(ABIType):
    @property
    def canonical_name(self) -> str:
        return 'bool'


@dataclass(frozen=True)
class FixedBytesType(ABIType):
    length: int

    @property
    def canonical_name(self) -> str:
        return f'bytes{self.length}'


@dataclass(frozen=True)
class FunctionType(ABIType):
    """An external function reference: 20-byte address followed by a 4-byte selector."""

    length = 24

    @property
    def canonical_name(self) -> str:
        return 'function'


@dataclass(frozen=True)
class BytesType(ABIType):
    @property
    def is_dynamic(self) -> bool:
        return True

    @property
    def canonical_name(self) -> str:
        return 'bytes'


@dataclass(frozen=True)
class StringType(ABIType):
    @property
    def is_dynamic(self) -> bool:
        return True

    @property
    def canonical_name(self) -> str:
        return 'string'


@dataclass(frozen=True)
class StaticArrayType(ABIType):
    """``T[L]``. Static when ``T`` is static, otherwise an array of dynamic types."""

    element: ABIType
    length: int

    @property
    def is_dynamic(self) -> bool:
        return self.element.is_dynamic

    @property
    def static_size(self) -> int:
        return self.element.static_size * self.length

    @property
    def canonical_name(self) -> str:
        return f'{self.element.canonical_name}[{self.length}]'


@dataclass(frozen=True)
class DynamicArrayType(ABIType):
    element: ABIType

    @property
    def is_dynamic(self) -> bool:
        return True

    @property
    def canonical_name(self) -> str:
        return f'{self.element.canonical_name}[]'


@dataclass(frozen=True)
class TupleType(ABIType):
    components: Tuple[ABIType, ...]

    @property
    def is_dynamic(self) -> bool:
        return any(c.is_dynamic for c in self.components)

    @property
    def static_size(self) -> int:
        return sum(c.static_size for c in self.components)

    @property
    def canonical_name(self) -> str:
        return '(' + ','.join(c.canonical_name for c in self.components) + ')'


def head_size(abi_type: ABIType) -> int:
    """Bytes a value of ``abi_type`` takes in the head: an offset word when dynamic."""
    return WORD_SIZE if abi_type.is_dynamic else abi_type.static_size


def split_type_list(text: str) -> List[str]:
    """
    Splits a comma separated list of types at the top nesting level.

    ``'uint256,(address,bytes)[],string'`` gives ``['uint256', '(address,bytes)[]', 'string']``.
    An empty string gives an empty list.

    Raises:
        InvalidParameterType: If parentheses are unbalanced or an entry is empty.
    """
    if text == '':
        return []
    parts, depth, start = [], 0, 0
    for i, ch in enumerate(text):
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth < 0:
                raise InvalidParameterType(f'unbalanced parentheses in {text!r}')
        elif ch == ',' and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    if depth != 0:
        raise InvalidParameterType(f'unbalanced parentheses in {text!r}')
    parts.append(text[start:])
    if any(p == '' for p in parts):
        raise InvalidParameterType(f'empty type in list {text!r}')
    return parts


def _positive(digits: str, signature: str) -> int:
    # rejects "0" and leading zeros such as "uint08"
    if not digits or digits[0] == '0':
        raise InvalidParameterType(f'{signature!r}: expected a positive decimal without leading zeros, got {digits!r}')
    return int(digits)


def _scalar(base: str, width: str, signature: str) -> ABIType:
    if base in ('uint', 'int'):
        bits = 256 if width is None else _positive(width, signature)
        if bits % 8 != 0 or not 8 <= bits <= 256:
            raise InvalidParameterType(f'{signature!r}: integer width must be a multiple of 8 in 8..256')
        return UIntType(bits) if base == 'uint' else IntType(bits)
    if base == 'bytes':
        if width is None:
            return BytesType()
        length = _positive(width, signature)
        if length > 32:
            raise InvalidParameterType(f'{signature!r}: fixed bytes length must be in 1..32')
        return FixedBytesType(length)
    simple = {'address': AddressType, 'bool': BoolType, 'string': StringType, 'function': FunctionType}
    if base not in simple:
        raise InvalidParameterType(f'{signature!r}: unknown base type {base!r}')
    if width is not None:
        raise InvalidParameterType(f'{signature!r}: {base} takes no length')
    return simple[base]()


def _wrap_arrays(element: ABIType, dims: str, signature: str) -> ABIType:
    for length in _DIMS_RE.findall(dims):
        if length == '':
            element = DynamicArrayType(element)
        else:
            element = StaticArrayType(element, _positive(length, signature))
    return element


def _parse_tuple(signature: str) -> ABIType:
    depth = 0
    for close, ch in enumerate(signature):
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth == 0:
                break
    else:
        raise InvalidParameterType(f'{signature!r}: unbalanced parentheses')
    dims = signature[close + 1:]
    if not re.fullmatch(r'(?:\[[0-9]*\])*', dims):
        raise InvalidParameterType(f'{signature!r}: unexpected text after tuple')
    components = tuple(parse_type(part) for part in split_type_list(signature[1:close]))
    if not components:
        raise InvalidParameterType(f'{signature!r}: a tuple needs at least one component')
    return _wrap_arrays(TupleType(components), dims, signature)


@lru_cache(maxsize=1024)
def _parse_type(signature: str) -> ABIType:
    if signature.startswith('('):
        return _parse_tuple(signature)
    match = _SCALAR_RE.fullmatch(signature)
    if match is None:
        raise InvalidParameterType(f'{signature!r} is not a valid ABI type')
    element = _scalar(match.group('base'), match.group('width'), signature)
    return _wrap_arrays(element, match.group('dims'), signature)


def parse_type(signature: str) -> ABIType:
    """
    Parses a Solidity type signature such as ``uint``, ``bytes32[3]``, ``string[]``
    or ``(address,uint256)[]`` into an :class:`ABIType`.

    Args:
        signature (str): The type as it appears in an ABI description.

    Returns:
        ABIType: The resolved type. ``uint``/``int`` without a width resolve to 256 bits.

    Raises:
        InvalidParameterType: If the string is not a well-formed type (``uint0``,
            ``int7``, ``bytes33``, ``address[0]``, stray whitespace...).
    """
    if not isinstance(signature, str):
        raise InvalidParameterType(f'type signature must be a string, got {type(signature).__name__}')
    return _parse_type(signature)


def canonical_name(abi_type) -> str:
    """Canonical Solidity name of a type or type string (``uint`` -> ``uint256``)."""
    if isinstance(abi_type, str):
        abi_type = parse_type(abi_type)
    return abi_type.canonical_name
