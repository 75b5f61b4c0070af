"""
Conversions between node JSON-RPC values and the typed model.

Quantities are ``0x`` hex without leading zeros (``0x0`` for zero), data is ``0x`` hex
of even length, and addresses are ``0x`` followed by 40 hex digits. Mixed-case
addresses must carry a valid EIP-55 checksum.
"""
from dataclasses import dataclass
from typing import List, Optional, Union

from eth_typing import HexStr
from eth_utils import (
    decode_hex,
    is_checksum_address,
    is_hex,
    is_hex_address,
    to_canonical_address,
    to_checksum_address,
)

from .exceptions import EncodingTypeMismatch, MalformedInput, SigningError
from .model import CONTRACT_CREATION, Transaction

_CREATION_MARKERS = (None, '', '0x', '0x0')


def to_quantity(value: int) -> HexStr:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise EncodingTypeMismatch(f'a quantity must be a non-negative int, got {value!r}')
    return HexStr(hex(value))


def from_quantity(value: Union[str, int]) -> int:
    """
    Reads a JSON-RPC quantity. Plain ints (as some providers return) pass through.

    Raises:
        MalformedInput: If ``value`` is not ``0x`` followed by at least one hex digit.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            raise MalformedInput(f'negative quantity {value}')
        return value
    if not isinstance(value, str) or not value.startswith('0x') or len(value) < 3 or not is_hex(value):
        raise MalformedInput(f'invalid quantity {value!r}')
    return int(value, 16)


def to_data(raw: bytes) -> HexStr:
    return HexStr('0x' + bytes(raw).hex())


def from_data(value: str) -> bytes:
    if not isinstance(value, str) or not value.startswith('0x') or len(value) % 2:
        raise MalformedInput(f'invalid data {value!r}')
    try:
        return decode_hex(value)
    except ValueError as exc:
        raise MalformedInput(f'invalid data {value!r}') from exc


def parse_address(value: str) -> bytes:
    """
    Validates a ``0x`` address string and returns its 20 bytes.

    Raises:
        MalformedInput: If the string is not 40 hex digits, or mixes case without
            matching its EIP-55 checksum.
    """
    if not isinstance(value, str) or not value.startswith('0x') or not is_hex_address(value):
        raise MalformedInput(f'invalid address {value!r}')
    body = value[2:]
    if body != body.lower() and body != body.upper() and not is_checksum_address(value):
        raise MalformedInput(f'address {value} fails its EIP-55 checksum')
    return to_canonical_address(value)


def _field(obj: dict, *names):
    for name in names:
        if name in obj:
            return obj[name]
    raise MalformedInput(f'missing field {" or ".join(names)}')


def _optional_quantity(obj: dict, name: str) -> Optional[int]:
    value = obj.get(name)
    return None if value is None else from_quantity(value)


def transaction_from_json(obj: dict) -> Transaction:
    """
    Builds a :class:`Transaction` from a node's transaction object.

    Accepts ``data`` or ``input``, ``gas`` or ``gasLimit``; a ``to`` of null, ``0x``
    or ``0x0`` is a contract creation. Signature fields are optional. The chain id is
    taken from ``chainId`` when present, else inferred from ``v`` when ``v >= 37``.

    Raises:
        MalformedInput: On a missing required field or an invalid value.
    """
    if not isinstance(obj, dict):
        raise MalformedInput(f'a transaction must be a JSON object, got {type(obj).__name__}')
    to = obj.get('to')
    tx = Transaction(
        nonce=from_quantity(_field(obj, 'nonce')),
        gas_price=from_quantity(_field(obj, 'gasPrice')),
        gas_limit=from_quantity(_field(obj, 'gas', 'gasLimit')),
        to=CONTRACT_CREATION if to in _CREATION_MARKERS else parse_address(to),
        value=from_quantity(_field(obj, 'value')),
        data=from_data(_field(obj, 'data', 'input')),
        v=_optional_quantity(obj, 'v'),
        r=_optional_quantity(obj, 'r') or 0,
        s=_optional_quantity(obj, 's') or 0,
    )
    chain_id = _optional_quantity(obj, 'chainId')
    if chain_id is None and tx.v is not None and tx.v >= 37:
        chain_id = tx.inferred_chain_id
    return tx.merged_with(chain_id=chain_id) if chain_id is not None else tx


def transaction_to_json(tx: Transaction, sender: Optional[Union[str, bytes]] = None) -> dict:
    """
    The call/estimate parameter object for a transaction (``eth_call``,
    ``eth_estimateGas``): hex quantities, ``data`` of ``0x`` when empty, and no
    ``to`` for a contract creation.
    """
    params = {
        'gas': to_quantity(tx.gas_limit),
        'gasPrice': to_quantity(tx.gas_price),
        'value': to_quantity(tx.value),
        'data': to_data(tx.data),
        'nonce': to_quantity(tx.nonce),
    }
    if sender is not None:
        params['from'] = to_checksum_address(sender)
    if not tx.is_contract_creation:
        params['to'] = to_checksum_address(tx.to)
    return params


def raw_transaction_params(tx: Transaction) -> List[str]:
    """
    Parameters for ``eth_sendRawTransaction``.

    Raises:
        SigningError: If the transaction is not signed.
    """
    if not tx.is_signed:
        raise SigningError('refusing to broadcast an unsigned transaction')
    return [tx.raw_transaction]


def _optional_hash(obj: dict, name: str) -> Optional[bytes]:
    value = obj.get(name)
    return None if value is None else from_data(value)


@dataclass(frozen=True)
class TransactionDetails:
    """A transaction as returned by ``eth_getTransactionByHash``; block fields are None while pending."""

    transaction: Transaction
    block_hash: Optional[bytes] = None
    block_number: Optional[int] = None
    transaction_index: Optional[int] = None

    @classmethod
    def from_json(cls, obj: dict) -> 'TransactionDetails':
        return cls(
            transaction=transaction_from_json(obj),
            block_hash=_optional_hash(obj, 'blockHash'),
            block_number=_optional_quantity(obj, 'blockNumber'),
            transaction_index=_optional_quantity(obj, 'transactionIndex'),
        )


@dataclass(frozen=True)
class TransactionReceipt:
    """
    A receipt as returned by ``eth_getTransactionReceipt``.

    Attributes:
        status (bool, optional): Post-Byzantium success flag; None for older receipts.
        contract_address (str, optional): Checksummed address of a deployed contract.
        logs (list): The raw log objects; parsing them is left to the caller.
    """

    transaction_hash: bytes
    block_hash: bytes
    block_number: int
    transaction_index: int
    cumulative_gas_used: int
    gas_used: int
    contract_address: Optional[str] = None
    status: Optional[bool] = None
    logs: tuple = ()

    @classmethod
    def from_json(cls, obj: dict) -> 'TransactionReceipt':
        if not isinstance(obj, dict):
            raise MalformedInput(f'a receipt must be a JSON object, got {type(obj).__name__}')
        contract_address = obj.get('contractAddress')
        status = _optional_quantity(obj, 'status')
        return cls(
            transaction_hash=from_data(_field(obj, 'transactionHash')),
            block_hash=from_data(_field(obj, 'blockHash')),
            block_number=from_quantity(_field(obj, 'blockNumber')),
            transaction_index=from_quantity(_field(obj, 'transactionIndex')),
            cumulative_gas_used=from_quantity(_field(obj, 'cumulativeGasUsed')),
            gas_used=from_quantity(_field(obj, 'gasUsed')),
            contract_address=None if contract_address is None else to_checksum_address(
                parse_address(contract_address)),
            status=None if status is None else status == 1,
            logs=tuple(obj.get('logs') or ()),
        )
