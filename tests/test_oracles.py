import pytest

from bleichenbacher.errors import (BleichenbacherError, InvariantViolation, MalformedInput,
                                   OracleError, QueryBudgetExceeded)
from bleichenbacher.oracles import BudgetOracle, CipherOracle, DecryptionOracle, PlaintextOracle
from bleichenbacher.PKCS_1_5 import OracleType


def encrypt(key, block):
    c = pow(int.from_bytes(block, byteorder="big"), key.e, key.n)
    return c.to_bytes(16, byteorder="big")


def test_plaintext_oracle(toy_pub, conforming_block):
    oracle = PlaintextOracle(toy_pub)
    assert oracle.is_plaintext_oracle
    assert oracle.block_size == 16
    assert oracle.query(conforming_block)
    assert not oracle.query(b"\x00\x03" + conforming_block[2:])
    assert oracle.num_queries == 2
    oracle.reset_queries()
    assert oracle.num_queries == 0


def test_oracle_type_by_name(toy_pub):
    oracle = PlaintextOracle(toy_pub, "FFF", expected_length=5)
    block = b"\x00\x02" + b"\x11" * 3 + b"\x00" + b"\x11" * 9 + b"\x00"
    assert not oracle.query(block)
    assert PlaintextOracle(toy_pub, OracleType.TTT).query(block)


def test_candidate_length_is_checked(toy_pub, conforming_block):
    oracle = PlaintextOracle(toy_pub)
    with pytest.raises(MalformedInput):
        oracle.query(conforming_block[1:])
    with pytest.raises(MalformedInput):
        oracle.query(b"\x00" + conforming_block)
    assert oracle.num_queries == 0


def test_backend_failure_becomes_oracle_error(toy_pub, conforming_block):
    def broken(eb):
        raise ConnectionResetError("peer went away")

    oracle = PlaintextOracle(toy_pub, predicate=broken)
    with pytest.raises(OracleError) as info:
        oracle.query(conforming_block)
    assert isinstance(info.value.__cause__, ConnectionResetError)
    assert isinstance(info.value, BleichenbacherError)


def test_engine_errors_pass_through(toy_pub, conforming_block):
    def inconsistent(eb):
        raise InvariantViolation("inconsistent")

    oracle = PlaintextOracle(toy_pub, predicate=inconsistent)
    with pytest.raises(InvariantViolation):
        oracle.query(conforming_block)


def test_decryption_oracle(toy_key, conforming_block):
    oracle = DecryptionOracle(toy_key)
    assert not oracle.is_plaintext_oracle
    c = encrypt(toy_key, conforming_block)
    assert oracle.decrypt(c) == conforming_block
    assert oracle.query(c)
    assert not oracle.query(encrypt(toy_key, b"\x00\x01" + conforming_block[2:]))
    # values at or above the modulus never decrypt
    assert oracle.decrypt(toy_key.n.to_bytes(16, byteorder="big")) is None
    assert not oracle.query(toy_key.n.to_bytes(16, byteorder="big"))
    assert oracle.num_queries == 3


def test_decryption_oracle_strictness(toy_key):
    short_padding = b"\x00\x02" + b"\x5a" * 7 + b"\x00" + b"\xde\xad\xbe\xef\x01\x02"
    c = encrypt(toy_key, short_padding)
    assert DecryptionOracle(toy_key, OracleType.TTT).query(c)
    assert not DecryptionOracle(toy_key, OracleType.FTT).query(c)
    assert DecryptionOracle(toy_key, OracleType.TTF, expected_length=6).query(c)
    assert not DecryptionOracle(toy_key, OracleType.TTF, expected_length=5).query(c)


def test_decryption_oracle_needs_private_key(toy_key):
    with pytest.raises(MalformedInput):
        DecryptionOracle(toy_key.public_key())
    with pytest.raises(MalformedInput):
        CipherOracle(toy_key.public_key())


def test_cipher_oracle(toy_key, conforming_block):
    oracle = CipherOracle(toy_key)
    assert oracle.query(encrypt(toy_key, conforming_block))
    assert not oracle.query(encrypt(toy_key, b"\x00\x03" + conforming_block[2:]))
    assert not oracle.query(toy_key.n.to_bytes(16, byteorder="big"))
    assert oracle.num_queries == 3


def test_budget_oracle(toy_pub, conforming_block):
    inner = PlaintextOracle(toy_pub)
    oracle = BudgetOracle(inner, 3)
    assert oracle.is_plaintext_oracle
    assert oracle.public_key == toy_pub
    for _ in range(3):
        assert oracle.query(conforming_block)
    with pytest.raises(QueryBudgetExceeded) as info:
        oracle.query(conforming_block)
    assert info.value.budget == 3
    assert isinstance(info.value, OracleError)
    assert inner.num_queries == 3
