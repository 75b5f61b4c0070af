import dataclasses
from dataclasses import dataclass
from typing import Optional, Union

from eth_hash.auto import keccak
from eth_utils import decode_hex, is_hex_address, to_canonical_address, to_checksum_address

from . import keys, rlp_codec
from .exceptions import EncodingTypeMismatch, MalformedInput

# The recipient of a transaction that deploys code; serializes as the empty RLP string.
CONTRACT_CREATION = b''

# Number of fields in the broadcast form of a legacy transaction.
TX_FIELD_COUNT = 9

_LEGACY_V = (keys.V_OFFSET, keys.V_OFFSET + 1)
# The smallest v carrying a chain id: 2 * 1 + CHAIN_ID_OFFSET.
_MIN_EIP155_V = 37


@dataclass(frozen=True)
class Transaction:
    """
    A legacy (pre-EIP-2718) Ethereum transaction, optionally signed with EIP-155
    replay protection.

    Instances are immutable: signing or overriding fields returns a new transaction.
    ``sender``, ``hash`` and ``txid`` are recomputed from the current fields on every
    access.

    Attributes:
        nonce (int): The sender's transaction count.
        gas_price (int): Price per unit of gas, in Wei.
        gas_limit (int): Maximum gas the transaction may consume.
        to (bytes): The 20-byte recipient, or ``CONTRACT_CREATION`` to deploy code.
            A ``0x`` hex address is accepted and converted.
        value (int): Wei transferred to the recipient.
        data (bytes): Calldata or contract creation code.
        v (int, optional): Signature recovery value; ``None`` while unset.
        r (int): Signature ``r``; 0 while unsigned.
        s (int): Signature ``s``; 0 while unsigned.
        chain_id (int, optional): The EIP-155 chain id, when known.
    """

    nonce: int = 0
    gas_price: int = 0
    gas_limit: int = 0
    to: bytes = CONTRACT_CREATION
    value: int = 0
    data: bytes = b''
    v: Optional[int] = None
    r: int = 0
    s: int = 0
    chain_id: Optional[int] = None

    def __post_init__(self):
        to = self.to
        if isinstance(to, str):
            if to in ('', '0x', '0x0'):
                to = CONTRACT_CREATION
            elif is_hex_address(to):
                to = to_canonical_address(to)
            else:
                raise EncodingTypeMismatch(f'invalid recipient address {to!r}')
        if not isinstance(to, (bytes, bytearray)) or len(to) not in (0, 20):
            raise EncodingTypeMismatch(f'recipient must be 20 bytes or empty, got {to!r}')
        object.__setattr__(self, 'to', bytes(to))
        if isinstance(self.data, str):
            try:
                object.__setattr__(self, 'data', decode_hex(self.data))
            except ValueError as exc:
                raise EncodingTypeMismatch(f'invalid hex data: {exc}') from exc
        if not isinstance(self.data, bytes):
            raise EncodingTypeMismatch(f'data must be bytes, got {type(self.data).__name__}')
        for name in ('nonce', 'gas_price', 'gas_limit', 'value', 'r', 's', 'v', 'chain_id'):
            number = getattr(self, name)
            if number is None and name in ('v', 'chain_id'):
                continue
            if isinstance(number, bool) or not isinstance(number, int) or number < 0:
                raise EncodingTypeMismatch(f'{name} must be a non-negative int, got {number!r}')

    @property
    def is_contract_creation(self) -> bool:
        return self.to == CONTRACT_CREATION

    @property
    def is_signed(self) -> bool:
        return self.r != 0 or self.s != 0

    @property
    def inferred_chain_id(self) -> Optional[int]:
        """
        The chain id implied by ``v``.

        An unsigned transaction carries the chain id in ``v`` itself; ``v`` of 27 or 28
        is a legacy signature with no chain id; any other ``v`` is
        ``chain_id * 2 + 35 + bit``.
        """
        if not self.is_signed:
            return self.v
        if self.v is None or self.v in _LEGACY_V:
            return None
        return (self.v - 1) // 2 - 17

    def _payload(self) -> list:
        return [self.nonce, self.gas_price, self.gas_limit, self.to, self.value, self.data]

    def encode(self, for_signature: bool = False, chain_id: Optional[int] = None) -> bytes:
        """
        RLP-encodes the transaction.

        Args:
            for_signature (bool): Produce the signing pre-image instead of the broadcast
                form. The pre-image is ``[..., chain_id, 0, 0]`` when a chain id is given
                or set on the transaction, else the six payload fields alone.
            chain_id (int, optional): Overrides ``self.chain_id`` for the pre-image.

        Returns:
            bytes: The RLP encoding. The broadcast form always has nine fields, with
            ``v`` written as 0 while unset.
        """
        if for_signature:
            chain_id = self.chain_id if chain_id is None else chain_id
            if chain_id is None:
                return rlp_codec.encode(self._payload())
            return rlp_codec.encode(self._payload() + [chain_id, 0, 0])
        return rlp_codec.encode(self._payload() + [self.v or 0, self.r, self.s])

    def signing_hash(self, chain_id: Optional[int] = None) -> bytes:
        return keccak(self.encode(for_signature=True, chain_id=chain_id))

    @property
    def hash(self) -> bytes:
        """Keccak-256 of the broadcast form."""
        return keccak(self.encode())

    @property
    def sender(self) -> Optional[bytes]:
        """The 20-byte address that signed the transaction, or ``None`` when unsigned or unrecoverable."""
        return keys.recover_sender(self)

    @property
    def txid(self) -> Optional[bytes]:
        """The network transaction hash; ``None`` unless the sender is recoverable."""
        if self.sender is None:
            return None
        return self.hash

    @property
    def raw_transaction(self) -> str:
        return '0x' + self.encode().hex()

    def merged_with(self, **overrides) -> 'Transaction':
        """Returns a copy with the given fields replaced, e.g. ``tx.merged_with(nonce=5)``."""
        return dataclasses.replace(self, **overrides)

    def sign(self, private_key, chain_id: Optional[int] = None) -> 'Transaction':
        return keys.sign_transaction(self, private_key, chain_id)

    @classmethod
    def from_raw(cls, raw: Union[bytes, str]) -> 'Transaction':
        """
        Decodes a transaction from its broadcast form.

        ``chain_id`` is taken from ``v`` only when ``v >= 37``; lower values decode as
        a transaction without a chain id.

        Args:
            raw (bytes | str): The RLP bytes, or their ``0x`` hex string.

        Raises:
            MalformedInput: If the input is not an RLP list of nine byte strings, a
                scalar has leading zeros, or ``to`` is neither empty nor 20 bytes.
        """
        if isinstance(raw, str):
            try:
                raw = decode_hex(raw)
            except ValueError as exc:
                raise MalformedInput(f'invalid hex transaction: {exc}') from exc
        item = rlp_codec.decode_all(raw)
        if not isinstance(item, list) or len(item) != TX_FIELD_COUNT:
            raise MalformedInput(f'expected an RLP list of {TX_FIELD_COUNT} fields')
        nonce, gas_price, gas_limit, to, value, data, v, r, s = item
        if not isinstance(to, bytes) or len(to) not in (0, 20):
            raise MalformedInput('recipient must be empty or 20 bytes')
        if not isinstance(data, bytes):
            raise MalformedInput('data must be an RLP byte string')
        tx = cls(
            nonce=rlp_codec.decode_int(nonce),
            gas_price=rlp_codec.decode_int(gas_price),
            gas_limit=rlp_codec.decode_int(gas_limit),
            to=to,
            value=rlp_codec.decode_int(value),
            data=data,
            v=rlp_codec.decode_int(v),
            r=rlp_codec.decode_int(r),
            s=rlp_codec.decode_int(s),
        )
        if tx.v >= _MIN_EIP155_V:
            return tx.merged_with(chain_id=tx.inferred_chain_id)
        return tx

    def __str__(self) -> str:
        to = 'contract creation' if self.is_contract_creation else to_checksum_address(self.to)
        lines = [
            'Transaction',
            f'  nonce: {self.nonce}',
            f'  gas_price: {self.gas_price}',
            f'  gas_limit: {self.gas_limit}',
            f'  to: {to}',
            f'  value: {self.value}',
            f'  data: 0x{self.data.hex()}',
            f'  v: {self.v}',
            f'  r: {self.r:#x}',
            f'  s: {self.s:#x}',
            f'  chain_id: {self.chain_id}',
        ]
        sender = self.sender
        if sender is not None:
            lines.append(f'  sender: {to_checksum_address(sender)}')
            lines.append(f'  hash: 0x{self.hash.hex()}')
        return '\n'.join(lines)
