import pytest

from ethkit.model import Transaction

from .vectors import EIP155_ADDRESS, EIP155_PRIVATE_KEY


@pytest.fixture
def private_key():
    return EIP155_PRIVATE_KEY


@pytest.fixture
def sender_address():
    return bytes.fromhex(EIP155_ADDRESS[2:])


@pytest.fixture
def unsigned_tx():
    return Transaction(
        nonce=9,
        gas_price=20 * 10 ** 9,
        gas_limit=21000,
        to=b'\x35' * 20,
        value=10 ** 18,
        data=b'',
        chain_id=1,
    )
