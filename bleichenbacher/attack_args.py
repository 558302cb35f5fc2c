import argparse

from Crypto.PublicKey import RSA

from .errors import MalformedInput
from .PKCS_1_5 import OracleType


def parse_args(argv=None):
    """
    Parses command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Run Bleichenbacher's attack against a local PKCS #1 v1.5 decryption oracle.")
    parser.add_argument("--private-key", "-k", help="Oracle's private RSA key file (.pem).",
                        required=True)
    parser.add_argument("--given-enc", "-c",
                        help="Encrypted file to decrypt; a random secret is encrypted if not given.")
    parser.add_argument("--oracle-type", "-t", type=OracleType, choices=list(OracleType),
                        default=OracleType.TTT, help="Strictness of the oracle's padding check.")
    parser.add_argument("--expected-length", "-l", type=int,
                        help="Payload length checked by strict-length oracle types.")
    parser.add_argument("--conforming", action="store_true",
                        help="The given encryption is known to be PKCS conforming; skip blinding.")
    parser.add_argument("--windowed", action="store_true",
                        help="Probe small multipliers for windows before the first search.")
    parser.add_argument("--max-queries", "-q", type=int, help="Abort after this many queries.")
    parser.add_argument("--max-rounds", "-r", type=int, help="Abort after this many rounds.")
    parser.add_argument("--verbose", "-v", action="count", default=0)
    return parser.parse_args(argv)


def read_key(path):
    with open(path, "rb") as keyfile:
        return RSA.import_key(keyfile.read())


def read_ciphertext(path, n_bytes):
    """
    Reads an encryption of exactly n_bytes bytes.
    """
    with open(path, "rb") as f:
        c = f.read()
    if len(c) != n_bytes:
        raise MalformedInput("%s holds %d bytes, expected %d" % (path, len(c), n_bytes))
    return c
