import pytest

from ethkit import rlp_codec
from ethkit.exceptions import EncodingTypeMismatch, MalformedInput
from ethkit.rlp_codec import LONG_LIST_BASE, LONG_STRING_BASE, SHORT_LIST_PREFIX, SHORT_MAX_LEN, SHORT_STRING_PREFIX


class TestEncode:
    @pytest.mark.parametrize('item, expected', [
        (b'dog', '83646f67'),
        ([b'cat', b'dog'], 'c88363617483646f67'),
        (b'', '80'),
        ([], 'c0'),
        (0, '80'),
        (15, '0f'),
        (1024, '820400'),
        (b'\x00', '00'),
        (b'\x7f', '7f'),
        (b'\x80', '8180'),
        ([[], [[]], [[], [[]]]], 'c7c0c1c0c3c0c1c0'),
    ])
    def test_known_vectors(self, item, expected):
        assert rlp_codec.encode(item).hex() == expected

    def test_string_length_boundary(self):
        assert rlp_codec.encode(b'a' * SHORT_MAX_LEN) == bytes([SHORT_STRING_PREFIX + SHORT_MAX_LEN]) + b'a' * 55
        assert rlp_codec.encode(b'a' * 56) == bytes([LONG_STRING_BASE + 1, 56]) + b'a' * 56

    def test_list_length_boundary(self):
        # one 54-byte string encodes to exactly 55 payload bytes
        assert rlp_codec.encode([b'a' * 54])[:1] == bytes([SHORT_LIST_PREFIX + SHORT_MAX_LEN])
        assert rlp_codec.encode([b'a' * 55])[:2] == bytes([LONG_LIST_BASE + 1, 56])

    def test_long_string_with_two_length_bytes(self):
        encoded = rlp_codec.encode(b'x' * 1024)
        assert encoded[:3] == bytes([LONG_STRING_BASE + 2, 0x04, 0x00])
        assert len(encoded) == 1027

    @pytest.mark.parametrize('item', [-1, 1.5, None, [b'ok', object()]])
    def test_rejects_unencodable(self, item):
        with pytest.raises(EncodingTypeMismatch):
            rlp_codec.encode(item)


class TestDecode:
    @pytest.mark.parametrize('item', [
        b'',
        b'\x00',
        b'dog',
        b'a' * 55,
        b'a' * 56,
        b'z' * 70000,
        [],
        [b'cat', [b'dog', [b'']], b'\x01'],
        [b'a' * 54],
        [b'a' * 55],
    ])
    def test_round_trip(self, item):
        encoded = rlp_codec.encode(item)
        assert rlp_codec.decode(encoded) == (item, len(encoded))
        assert rlp_codec.decode_all(encoded) == item

    def test_decode_reports_consumed_bytes(self):
        assert rlp_codec.decode(bytes.fromhex('83646f67ff')) == (b'dog', 4)

    @pytest.mark.parametrize('data', [
        '',
        '83646f',  # string shorter than its prefix claims
        'c88363617483646f',  # list payload cut short
        'c4836461',  # list claims more than the buffer
        'b90400',  # long string length with no payload
        '81',  # prefix with nothing after it
    ])
    def test_truncated_input(self, data):
        with pytest.raises(MalformedInput):
            rlp_codec.decode(bytes.fromhex(data))

    @pytest.mark.parametrize('data', [
        '8105',  # single byte below 0x80 must not be prefixed
        'b803646f67',  # long form for a 3-byte string
        'b90038' + '61' * 56,  # length with a leading zero byte
        'f803c0c0c0',  # long form for a short list
        'c2836f6f',  # inner item overruns the list
    ])
    def test_non_canonical_input(self, data):
        with pytest.raises(MalformedInput):
            rlp_codec.decode(bytes.fromhex(data))

    def test_rejects_non_bytes(self):
        with pytest.raises(MalformedInput):
            rlp_codec.decode('83646f67')

    def test_decode_all_rejects_trailing_bytes(self):
        with pytest.raises(MalformedInput):
            rlp_codec.decode_all(bytes.fromhex('83646f6700'))


class TestDecodeInt:
    def test_values(self):
        assert rlp_codec.decode_int(b'') == 0
        assert rlp_codec.decode_int(b'\x04\x00') == 1024

    def test_leading_zero(self):
        with pytest.raises(MalformedInput):
            rlp_codec.decode_int(b'\x00\x01')

    def test_list(self):
        with pytest.raises(MalformedInput):
            rlp_codec.decode_int([b'\x01'])
