"""
Python implementation of PKCS-1.5 RSA encryption blocks
https://tools.ietf.org/html/rfc2313

Besides encoding and parsing encryption blocks, this module holds the conformity
predicates the oracles answer with. How strict an oracle is differs between
implementations, so the strictness is a property of the oracle, not of the attack.
"""
import enum
from os import urandom

from .errors import MalformedInput

MIN_PADDING_LENGTH = 8  # RFC 2313: at least 8 bytes of padding string


def _nonzero_bytes(count, rand=urandom):
    """
    Draws `count' random non-zero bytes.
    """
    out = bytearray()
    while len(out) < count:
        out.extend(b for b in rand(count - len(out)) if b != 0)
    return bytes(out)


def encode(data, k, padding=None, rand=urandom):
    """
    Build a block type 2 encryption block 00 02 PS 00 D.
    :param data: the payload D.
    :param k: length of the modulus in bytes.
    :param padding: an explicit padding string PS (must be non-zero bytes); random if not given.
    :param rand: source of random bytes, for reproducible blocks.
    :return: a bytes object of exactly k bytes.
    """
    ps_len = k - 3 - len(data)
    if ps_len < MIN_PADDING_LENGTH:
        raise MalformedInput("payload of %d bytes too long for a %d byte block" % (len(data), k))
    if padding is None:
        padding = _nonzero_bytes(ps_len, rand)
    if len(padding) != ps_len or 0 in padding:
        raise MalformedInput("padding string must be %d non-zero bytes" % ps_len)
    return b"\x00\x02" + bytes(padding) + b"\x00" + bytes(data)


def parse(eb):
    """
    Parse encryption block
    :param eb: encryption block
    :return: parsed data, None if the block cannot be parsed
    """
    # Make sure that EB starts with 0 and a valid BT
    if len(eb) < 3 or eb[0] != 0 or eb[1] not in (0, 1, 2):
        return None
    firstzero = eb.find(0, 2)  # first zero byte after BT
    if firstzero == -1:  # gotta have a zero byte
        return None
    if eb[1] == 0:
        if firstzero != 2:  # first byte after BT has to be zero; data starts after zeros
            return None
        return eb[3:].lstrip(b"\x00")
    elif eb[1] == 1:
        if not all(c == 0xFF for c in eb[2:firstzero]):  # FFs until first zero, then data
            return None
        return eb[firstzero + 1:]
    return eb[firstzero + 1:]  # BT 2: data starts after first zero


def conforms(eb, zero_in_padding=True, missing_separator=True, any_length=True,
             expected_length=None):
    """
    Check an encryption block for PKCS #1 v1.5 conformity.
    Every variant requires the block to start with 00 02; the flags say what else is tolerated.
    :param eb: the decrypted block, already k bytes long.
    :param zero_in_padding: tolerate a zero byte among the first 8 padding bytes.
    :param missing_separator: tolerate blocks with no 00 separator after the padding.
    :param any_length: tolerate payloads whose length differs from expected_length.
    :param expected_length: expected payload length; the length check is skipped if None.
    :return: whether the block conforms.
    """
    if len(eb) < 2 or eb[0] != 0 or eb[1] != 2:
        return False
    if not zero_in_padding and 0 in eb[2:2 + MIN_PADDING_LENGTH]:
        return False
    separator = eb.find(0, 2)
    if separator == -1:
        return missing_separator and (any_length or expected_length is None)
    if not any_length and expected_length is not None:
        return len(eb) - separator - 1 == expected_length
    return True


def second_byte_conforms(eb):
    """
    Permissive check of an oracle that ignores the leading byte and only looks for 02 in
        the second one.
    """
    return len(eb) >= 2 and eb[1] == 2


class OracleType(enum.Enum):
    """
    Oracle strength classification. Each letter says whether the oracle is tolerant (T) or
        strict (F) about, in order: a zero byte among the first 8 padding bytes, a missing
        separator, and a payload of unexpected length. TTT is the weakest check (00 02 only),
        FFF the strictest.
    """
    TTT = "TTT"
    TTF = "TTF"
    TFT = "TFT"
    TFF = "TFF"
    FTT = "FTT"
    FTF = "FTF"
    FFT = "FFT"
    FFF = "FFF"

    def predicate(self, expected_length=None):
        """
        :param expected_length: payload length enforced by the third letter (e.g. 48 for a TLS PMS).
        :return: a function block -> bool.
        """
        zero_in_padding, missing_separator, any_length = (c == "T" for c in self.value)

        def check(eb):
            return conforms(eb, zero_in_padding, missing_separator, any_length, expected_length)

        check.__name__ = "conforms_%s" % self.value
        return check

    def __str__(self):
        return self.value
