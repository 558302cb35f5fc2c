"""
Oracles for chosen-ciphertext attacks on PKCS #1

An oracle answers one question: does this candidate decrypt to a PKCS #1 conforming block?
Network, timing or protocol backends subclass Oracle and implement _is_conforming; the
reference oracles below answer from a local key or directly from plaintexts.
"""
import abc

from Crypto.Cipher import PKCS1_v1_5

from .bounds import ModulusContext
from .errors import BleichenbacherError, MalformedInput, OracleError, QueryBudgetExceeded
from .PKCS_1_5 import OracleType


class Oracle(abc.ABC):
    """
    Base class of every oracle. Counts queries and turns backend failures into OracleError.
    """
    is_plaintext_oracle = False

    def __init__(self, public_key):
        """
        :param public_key: a pycryptodome RsaKey or an (n, e) pair.
        """
        self.ctx = ModulusContext.from_key(public_key)
        self.num_queries = 0

    @property
    def block_size(self):
        """
        Byte width k of a candidate.
        """
        return self.ctx.k

    @property
    def public_key(self):
        return self.ctx.public_key

    def check_pkcs_conformity(self, content):
        """
        Query the oracle with the candidate given.
        :param content: the candidate, exactly block_size bytes.
        :return: whether the candidate is PKCS #1 conforming (boolean).
        """
        if len(content) != self.block_size:
            raise MalformedInput("candidate of %d bytes, oracle expects %d"
                                 % (len(content), self.block_size))
        self.num_queries += 1
        try:
            return bool(self._is_conforming(bytes(content)))
        except BleichenbacherError:
            raise
        except Exception as ex:
            raise OracleError("oracle failed on query %d: %s" % (self.num_queries, ex)) from ex

    def query(self, content):
        return self.check_pkcs_conformity(content)

    def reset_queries(self):
        self.num_queries = 0

    @abc.abstractmethod
    def _is_conforming(self, content):
        """
        Backend-specific verdict for a candidate of the right length.
        """


def _make_predicate(oracle_type, expected_length, predicate):
    if predicate is not None:
        return predicate
    return OracleType(oracle_type).predicate(expected_length)


class PlaintextOracle(Oracle):
    """
    Oracle that receives plaintexts directly, so the search can be exercised without any
        RSA operation.
    """
    is_plaintext_oracle = True

    def __init__(self, public_key, oracle_type=OracleType.TTT, expected_length=None,
                 predicate=None):
        """
        :param public_key: a pycryptodome RsaKey or an (n, e) pair.
        :param oracle_type: OracleType (or its name) selecting the conformity check.
        :param expected_length: payload length for the strict length check.
        :param predicate: a custom function block -> bool, overrides oracle_type.
        """
        super().__init__(public_key)
        self.predicate = _make_predicate(oracle_type, expected_length, predicate)

    def _is_conforming(self, content):
        return self.predicate(content)


class DecryptionOracle(Oracle):
    """
    Oracle holding the private key: decrypts the candidate and checks the resulting block.
    """

    def __init__(self, key, oracle_type=OracleType.TTT, expected_length=None, predicate=None):
        """
        :param key: pycryptodome RsaKey with its private part.
        """
        if not key.has_private():
            raise MalformedInput("a decryption oracle needs a private key")
        super().__init__(key)
        self.key = key
        self.predicate = _make_predicate(oracle_type, expected_length, predicate)

    def decrypt(self, content):
        """
        Raw RSA decryption of a candidate to a k byte block, None if it is not below n.
        """
        c = int.from_bytes(content, byteorder="big")
        if c >= self.key.n:
            return None
        return pow(c, self.key.d, self.key.n).to_bytes(self.block_size, byteorder="big")

    def _is_conforming(self, content):
        block = self.decrypt(content)
        return block is not None and self.predicate(block)


class CipherOracle(Oracle):
    """
    Oracle answering with pycryptodome's own PKCS #1 v1.5 decryption: invalid padding
        yields the sentinel, anything else is a valid message.
    """

    def __init__(self, key):
        if not key.has_private():
            raise MalformedInput("a decryption oracle needs a private key")
        super().__init__(key)
        self.pkcs = PKCS1_v1_5.new(key)

    def _is_conforming(self, content):
        if int.from_bytes(content, byteorder="big") >= self.ctx.n:
            return False
        sentinel = object()
        return self.pkcs.decrypt(content, sentinel) is not sentinel


class BudgetOracle(Oracle):
    """
    Wraps an oracle and refuses to query it more than max_queries times.
    """

    def __init__(self, oracle, max_queries):
        super().__init__(oracle.public_key)
        self.oracle = oracle
        self.max_queries = max_queries
        self.is_plaintext_oracle = oracle.is_plaintext_oracle

    @property
    def block_size(self):
        return self.oracle.block_size

    def check_pkcs_conformity(self, content):
        if self.num_queries >= self.max_queries:
            raise QueryBudgetExceeded(self.max_queries)
        return super().check_pkcs_conformity(content)

    def _is_conforming(self, content):
        return self.oracle.check_pkcs_conformity(content)
