import logging
from typing import Optional

from eth_account import Account
from eth_keys import keys as ec_keys
from eth_keys.exceptions import BadSignature
from eth_utils import ValidationError, decode_hex
from web3 import Web3

from .exceptions import SigningError

logger = logging.getLogger(__name__)

# --- Module-level Constants ---
CHAIN_ID_OFFSET = 35  # v = recovery bit + 2 * chain id + 35 for EIP-155 signatures
V_OFFSET = 27  # v = recovery bit + 27 for legacy signatures


def to_eth_v(v_raw: int, chain_id: int = None) -> int:
    """
    Turns a raw recovery bit (0 or 1) into the ``v`` written in a transaction.

    Args:
        v_raw (int): The recovery bit from the signing algorithm.
        chain_id (int, optional): The EIP-155 chain id. If None, the legacy
                                  ``27``/``28`` form is produced.

    Returns:
        int: ``v_raw + 2 * chain_id + 35``, or ``v_raw + 27`` without a chain id.
    """
    if chain_id is None:
        return v_raw + V_OFFSET
    return v_raw + CHAIN_ID_OFFSET + 2 * chain_id


def from_eth_v(v: int, chain_id: int = None) -> int:
    """Inverse of :func:`to_eth_v`: the recovery bit carried by ``v``."""
    if chain_id is None:
        return v - V_OFFSET
    return v - CHAIN_ID_OFFSET - 2 * chain_id


def private_key_to_address(private_key) -> str:
    """
    Derives the checksummed address of a secp256k1 private key.

    Raises:
        SigningError: If the key is not a valid 32-byte secp256k1 scalar.
    """
    try:
        return Account.from_key(private_key).address
    except (ValueError, TypeError, ValidationError) as exc:
        raise SigningError(f'invalid private key: {exc}') from exc


def sign_transaction(tx, private_key, chain_id: Optional[int] = None):
    """
    Signs a transaction with RFC 6979 deterministic ECDSA over secp256k1.

    Args:
        tx (Transaction): The transaction to sign. Existing signature fields are replaced.
        private_key: The key as ``0x`` hex, bytes or an ``eth_keys`` PrivateKey.
        chain_id (int, optional): The chain id to sign for; defaults to ``tx.chain_id``.
            Without either, a legacy (pre-EIP-155) signature is produced.

    Returns:
        Transaction: A copy of ``tx`` with ``v``, ``r``, ``s`` and ``chain_id`` set.

    Raises:
        SigningError: If the private key is invalid.
    """
    chain_id = tx.chain_id if chain_id is None else chain_id
    msg_hash = tx.signing_hash(chain_id)
    try:
        signed = Account.unsafe_sign_hash(msg_hash, private_key)
    except (ValueError, TypeError, ValidationError) as exc:
        raise SigningError(f'cannot sign transaction: {exc}') from exc
    # eth_account always reports the legacy 27/28 form
    v = to_eth_v(from_eth_v(signed.v), chain_id)
    return tx.merged_with(v=v, r=signed.r, s=signed.s, chain_id=chain_id)


def recover_address(msg_hash: bytes, v_raw: int, r: int, s: int) -> Optional[bytes]:
    """
    Recovers the 20-byte address that produced a signature over ``msg_hash``.

    Returns:
        bytes | None: The canonical address, or None when the signature values are
        out of range or do not resolve to a curve point.
    """
    try:
        signature = ec_keys.Signature(vrs=(v_raw, r, s))
        public_key = signature.recover_public_key_from_msg_hash(msg_hash)
    except (BadSignature, ValidationError) as exc:
        logger.debug('Signature recovery failed for v=%s: %s', v_raw, exc)
        return None
    return public_key.to_canonical_address()


def recover_sender(tx) -> Optional[bytes]:
    """
    Recovers the sender of a signed transaction.

    ``v`` is normalized with the transaction's ``chain_id`` when it is set and non-zero,
    else with the chain id inferred from ``v``; a ``v`` of 27 or 28 is always a legacy
    signature, whatever ``chain_id`` says.

    Returns:
        bytes | None: The sender's 20-byte address; None for unsigned transactions, for
        a ``v`` that does not match the chain id, or when recovery fails.
    """
    if not tx.is_signed or tx.v is None:
        return None
    if tx.v in (V_OFFSET, V_OFFSET + 1):
        msg_hash = tx.merged_with(chain_id=None).signing_hash()
        return recover_address(msg_hash, from_eth_v(tx.v), tx.r, tx.s)
    chain_id = tx.chain_id or tx.inferred_chain_id
    if chain_id is None or chain_id < 0:
        logger.debug('v=%s carries no valid chain id', tx.v)
        return None
    v_raw = from_eth_v(tx.v, chain_id)
    if v_raw not in (0, 1):
        logger.debug('v=%s does not belong to chain %s', tx.v, chain_id)
        return None
    return recover_address(tx.signing_hash(chain_id), v_raw, tx.r, tx.s)


class Keys:
    """
    Holds an account address and its private key.

    Keys are handed to :class:`ethkit.ec.Client` through suppliers: callables taking
    the client's ``Web3`` instance and returning a ``Keys``, so loading can be deferred
    until the client exists.
    """

    def __init__(self, addr, priv_key):
        """
        Args:
            addr (str): The account address (``0x...``).
            priv_key (str): The ``0x`` hex private key.

        Raises:
            SigningError: If the key is invalid or does not belong to ``addr``.
        """
        self.address = Web3.to_checksum_address(addr)
        if private_key_to_address(priv_key) != self.address:
            raise SigningError(f'private key does not belong to {self.address}')
        self.priv_key = priv_key
        self.priv_key_bytes = decode_hex(priv_key)

    @staticmethod
    def from_private_key(priv_key: str) -> callable:
        """A supplier deriving the address from ``priv_key``."""
        return lambda _: Keys(private_key_to_address(priv_key), priv_key)

    @staticmethod
    def from_address_and_private_key(address: str, priv_key: str) -> callable:
        return lambda _: Keys(address, priv_key)

    @staticmethod
    def from_settings(settings) -> callable:
        """
        A supplier reading the key from :class:`ethkit.config.Settings`.

        Raises:
            SigningError: When the supplier runs and no private key is configured.
        """
        def supplier(_):
            if not settings.private_key:
                raise SigningError('no private key configured (set ETHKIT_PRIVATE_KEY)')
            return Keys(private_key_to_address(settings.private_key), settings.private_key)
        return supplier

    def sign_transaction(self, tx, chain_id: Optional[int] = None):
        return sign_transaction(tx, self.priv_key, chain_id)

    def sign_hash(self, hashed: bytes):
        """Signs a raw 32-byte hash; returns eth_account's ``SignedMessage`` (``v`` is 27/28)."""
        return Account.unsafe_sign_hash(hashed, self.priv_key)
