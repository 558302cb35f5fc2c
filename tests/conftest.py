import pytest
from Crypto.PublicKey import RSA
from Crypto.Util.number import inverse

from bleichenbacher.PKCS_1_5 import encode

# 128-bit toy key (k = 16), small enough for the attack to finish in a test run
TOY_P = 0xecb899b84ed5ba2d
TOY_Q = 0xb4fa6502ea5ece1d
TOY_E = 65537


@pytest.fixture(scope="session")
def toy_key():
    n = TOY_P * TOY_Q
    d = inverse(TOY_E, (TOY_P - 1) * (TOY_Q - 1))
    return RSA.construct((n, TOY_E, d, TOY_P, TOY_Q))


@pytest.fixture(scope="session")
def toy_pub(toy_key):
    return toy_key.n, toy_key.e


@pytest.fixture
def conforming_block():
    """
    A fixed PKCS #1 v1.5 block for the toy key with payload b"hello".
    """
    return encode(b"hello", 16, padding=bytes(range(0x41, 0x49)))
