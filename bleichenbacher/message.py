"""
Preparation of the candidate ciphertexts sent to the oracle.
"""


def blind(ctx, c, s, plaintext_oracle=False):
    """
    Multiply c by the blinding factor of s.
    :param ctx: ModulusContext
    :param c: ciphertext (or plaintext, for a plaintext oracle) as an integer
    :param s: the multiplier
    :param plaintext_oracle: if True, s is used as is instead of being encrypted first
    :return: (c * (s ** e)) mod n, or (c * s) mod n for a plaintext oracle
    """
    factor = s if plaintext_oracle else pow(s, ctx.e, ctx.n)
    return (c * factor) % ctx.n


def prepare(ctx, c, s, plaintext_oracle=False, block_size=None):
    """
    Build the candidate for multiplier s, serialized to exactly block_size bytes.
    Raises OverflowError if the candidate does not fit; it is never truncated.
    """
    return ctx.to_bytes(blind(ctx, c, s, plaintext_oracle), block_size)


class Preparer:
    """
    Binds a modulus context to an oracle's view of candidates (plaintext or ciphertext,
        block size).
    """

    def __init__(self, ctx, oracle):
        self.ctx = ctx
        self.plaintext_oracle = oracle.is_plaintext_oracle
        self.block_size = oracle.block_size

    def __call__(self, c, s):
        return prepare(self.ctx, c, s, self.plaintext_oracle, self.block_size)
