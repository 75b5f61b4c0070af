import pytest
from eth_hash.auto import keccak
from eth_utils import to_checksum_address

from ethkit import rlp_codec
from ethkit.exceptions import EncodingTypeMismatch, MalformedInput
from ethkit.model import CONTRACT_CREATION, Transaction

from .vectors import EIP155_ADDRESS, EIP155_SIGNED_TX, EIP155_SIGNING_DATA, EIP155_SIGNING_HASH


class TestEncoding:
    def test_eip155_signing_preimage(self, unsigned_tx):
        assert unsigned_tx.encode(for_signature=True).hex() == EIP155_SIGNING_DATA
        assert unsigned_tx.signing_hash().hex() == EIP155_SIGNING_HASH

    def test_preimage_without_chain_id_has_six_fields(self, unsigned_tx):
        legacy = unsigned_tx.merged_with(chain_id=None)
        assert len(rlp_codec.decode_all(legacy.encode(for_signature=True))) == 6
        assert legacy.signing_hash(1) == unsigned_tx.signing_hash()

    def test_broadcast_form_writes_unset_v_as_zero(self, unsigned_tx):
        fields = rlp_codec.decode_all(unsigned_tx.encode())
        assert len(fields) == 9
        assert fields[6:] == [b'', b'', b'']

    def test_contract_creation_encodes_empty_recipient(self):
        tx = Transaction(nonce=1, gas_limit=100000, data=b'\x60\x80')
        assert tx.is_contract_creation
        assert rlp_codec.decode_all(tx.encode())[3] == b''

    def test_identical_fields_hash_identically(self, unsigned_tx):
        twin = Transaction(nonce=9, gas_price=20 * 10 ** 9, gas_limit=21000, to='0x' + '35' * 20,
                           value=10 ** 18, chain_id=1)
        assert twin == unsigned_tx
        assert twin.signing_hash() == unsigned_tx.signing_hash()
        assert twin.hash == unsigned_tx.hash


class TestChainIdInference:
    @pytest.mark.parametrize('v, r, s, expected', [
        (4, 0, 0, 4),
        (None, 0, 0, None),
        (27, 1, 1, None),
        (28, 1, 1, None),
        (37, 1, 1, 1),
        (38, 1, 1, 1),
        (2709, 1, 1, 1337),
        (2710, 1, 1, 1337),
    ])
    def test_inferred_chain_id(self, v, r, s, expected):
        assert Transaction(v=v, r=r, s=s).inferred_chain_id == expected


class TestFromRaw:
    def test_eip155_reference_transaction(self, sender_address):
        tx = Transaction.from_raw(EIP155_SIGNED_TX)
        assert tx.nonce == 9
        assert tx.gas_price == 20 * 10 ** 9
        assert tx.gas_limit == 21000
        assert tx.to == b'\x35' * 20
        assert tx.value == 10 ** 18
        assert tx.data == b''
        assert tx.v == 37
        assert tx.chain_id == 1
        assert tx.r == 0x28ef61340bd939bc2195fe537567866003e1a15d3c71ff63e1590620aa636276
        assert tx.sender == sender_address
        assert tx.raw_transaction == EIP155_SIGNED_TX
        assert tx.hash == keccak(bytes.fromhex(EIP155_SIGNED_TX[2:]))
        assert tx.txid == tx.hash

    def test_accepts_bytes(self):
        assert Transaction.from_raw(bytes.fromhex(EIP155_SIGNED_TX[2:])).v == 37

    def test_legacy_v_has_no_chain_id(self, unsigned_tx, private_key, sender_address):
        signed = unsigned_tx.merged_with(chain_id=None).sign(private_key)
        decoded = Transaction.from_raw(signed.raw_transaction)
        assert decoded.v in (27, 28)
        assert decoded.chain_id is None
        assert decoded.sender == sender_address

    @pytest.mark.parametrize('v', [0, 1, 29, 30])
    def test_v_below_eip155_range(self, unsigned_tx, private_key, v):
        signed = unsigned_tx.sign(private_key)
        raw = rlp_codec.encode([9, 1, 1, b'5' * 20, 0, b'', v, signed.r, signed.s])
        decoded = Transaction.from_raw(raw)
        assert decoded.chain_id is None
        assert decoded.sender is None
        assert decoded.txid is None
        assert 'sender' not in str(decoded)

    def test_unsigned_round_trip(self, unsigned_tx):
        decoded = Transaction.from_raw(unsigned_tx.encode())
        assert decoded.v == 0
        assert not decoded.is_signed
        assert decoded.chain_id is None

    @pytest.mark.parametrize('raw', [
        rlp_codec.encode(b'abc'),
        rlp_codec.encode([1, 2, 3, b'', 4, b'', 5, 6]),
        rlp_codec.encode([1, 2, 3, b'\x35' * 19, 4, b'', 37, 1, 1]),
        rlp_codec.encode([1, 2, 3, [b''], 4, b'', 37, 1, 1]),
        rlp_codec.encode([1, 2, 3, b'', 4, [b''], 37, 1, 1]),
        rlp_codec.encode([b'\x00\x01', 2, 3, b'', 4, b'', 37, 1, 1]),
        rlp_codec.encode([1, 2, 3, b'', 4, b'', 37, 1, 1]) + b'\x00',
        bytes.fromhex(EIP155_SIGNED_TX[2:-2]),
        '0xzz',
    ])
    def test_malformed(self, raw):
        with pytest.raises(MalformedInput):
            Transaction.from_raw(raw)


class TestSignedProperties:
    def test_unsigned_has_no_sender(self, unsigned_tx):
        assert not unsigned_tx.is_signed
        assert unsigned_tx.sender is None
        assert unsigned_tx.txid is None

    def test_sign_then_recover(self, unsigned_tx, private_key, sender_address):
        signed = unsigned_tx.sign(private_key)
        assert signed.is_signed
        assert signed.v in (37, 38)
        assert signed.chain_id == 1
        assert signed.sender == sender_address
        assert signed.txid == keccak(signed.encode())
        assert Transaction.from_raw(signed.raw_transaction) == signed

    def test_signature_change_changes_sender(self, unsigned_tx, private_key, sender_address):
        signed = unsigned_tx.sign(private_key)
        assert signed.merged_with(s=signed.s - 1).sender != sender_address
        # v=99 belongs to chain 32, not to the chain 1 the transaction is marked with
        assert signed.merged_with(v=99).sender is None
        assert signed.merged_with(v=99, chain_id=None).sender != sender_address

    def test_merged_with_leaves_original(self, unsigned_tx):
        bumped = unsigned_tx.merged_with(nonce=10)
        assert bumped.nonce == 10
        assert unsigned_tx.nonce == 9

    def test_str(self, unsigned_tx, private_key):
        assert 'contract creation' in str(Transaction())
        text = str(unsigned_tx.sign(private_key))
        assert to_checksum_address(b'\x35' * 20) in text
        assert f'sender: {to_checksum_address(EIP155_ADDRESS)}' in text


class TestValidation:
    @pytest.mark.parametrize('fields', [
        {'to': b'\x01' * 19},
        {'to': '0x1234'},
        {'to': 5},
        {'nonce': -1},
        {'value': 1.5},
        {'gas_limit': True},
        {'data': 'nothex'},
        {'data': [1]},
        {'v': -1},
    ])
    def test_rejects_invalid_fields(self, fields):
        with pytest.raises(EncodingTypeMismatch):
            Transaction(**fields)

    def test_hex_inputs(self):
        tx = Transaction(to='0x' + 'ab' * 20, data='0x6080')
        assert tx.to == b'\xab' * 20
        assert tx.data == b'\x60\x80'
        assert Transaction(to='0x').to == CONTRACT_CREATION
