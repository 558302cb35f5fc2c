"""
Modulus context and the bound arithmetic of the attack.
http://archiv.infsec.ethz.ch/education/fs08/secsem/bleichenbacher98.pdf

Everything here is pure integer arithmetic. Every division is an explicit floor or ceiling;
using the wrong rounding anywhere breaks the attack.
"""
from Crypto.Util.number import size

from .errors import MalformedInput
from .intervals import Interval, IntervalSet


def divceil(a, b):
    """
    Accurate division with ceil, to avoid floating point errors
    :param a: numerator
    :param b: denominator
    :return: ceil(a / b)
    """
    q, r = divmod(a, b)
    if r:
        return q + 1
    return q


def divfloor(a, b):
    """
    Accurate division with floor, to avoid floating point errors
    :param a: numerator
    :param b: denominator
    :return: floor(a / b)
    """
    q, r = divmod(a, b)
    return q


class ModulusContext:
    """
    RSA public modulus and exponent together with the constants derived from them.
    Built once per attack and passed to whatever needs it; never mutated.
    """
    __slots__ = ("n", "e", "k", "B", "B2", "B3", "B256")

    def __init__(self, n, e):
        if n < 1 << 16:
            raise MalformedInput("modulus too small: need at least 3 bytes")
        n = int(n)
        e = int(e)
        k = divceil(size(n), 8)
        B = 1 << (8 * (k - 2))
        for name, value in (("n", n), ("e", e), ("k", k), ("B", B), ("B2", 2 * B),
                            ("B3", 3 * B), ("B256", 256 * B)):
            object.__setattr__(self, name, value)

    def __setattr__(self, name, value):
        raise AttributeError("ModulusContext is immutable")

    @classmethod
    def from_key(cls, key):
        """
        :param key: a pycryptodome RsaKey or an (n, e) pair.
        """
        if hasattr(key, "n") and hasattr(key, "e"):
            return cls(key.n, key.e)
        n, e = key
        return cls(n, e)

    @property
    def public_key(self):
        return self.n, self.e

    @property
    def window_count(self):
        """
        Number of 256B-wide windows that fit under the modulus.
        """
        return self.n // self.B256

    def initial_interval(self):
        return Interval(self.B2, self.B3 - 1)

    def to_bytes(self, x, length=None):
        """
        Serialize x big-endian to exactly `length' (default k) bytes, zero-padded on the left.
        Raises OverflowError if x does not fit.
        """
        if length is None:
            length = self.k
        return x.to_bytes(length, byteorder="big")

    def from_bytes(self, data):
        """
        Parse a k byte big-endian block.
        """
        if len(data) != self.k:
            raise MalformedInput("expected %d bytes, got %d" % (self.k, len(data)))
        return int.from_bytes(data, byteorder="big")

    def __eq__(self, other):
        return isinstance(other, ModulusContext) and self.public_key == other.public_key

    def __hash__(self):
        return hash(self.public_key)

    def __repr__(self):
        return "ModulusContext(k=%d, n=%#x, e=%d)" % (self.k, self.n, self.e)


def step2a_start(ctx):
    """
    Step 2.a of the attack: the smallest s that can map [2B, 3B) onto a conforming value.
    :return: ceil(n / 3B)
    """
    return divceil(ctx.n, ctx.B3)


def step2c_r_start(ctx, upper, prev_s):
    """
    Step 2.c of the attack: the first r to try when a single interval is left.
    :param upper: upper bound of the interval
    :param prev_s: s value of the previous round
    :return: ceil(2 * (upper * prev_s - 2B) / n)
    """
    return divceil(2 * (upper * prev_s - ctx.B2), ctx.n)


def step2c_s_range(ctx, lower, upper, r):
    """
    Step 2.c of the attack: multipliers worth trying for a given r.
    :return: inclusive range (ceil((2B + r * n) / upper), floor((3B - 1 + r * n) / lower))
    """
    return divceil(ctx.B2 + r * ctx.n, upper), divfloor(ctx.B3 - 1 + r * ctx.n, lower)


def step2x_bound(ctx, s, lower, upper):
    """
    Windowed early-search bound. If s * m lands in the window [i * 256B + 2B, i * 256B + 3B]
        for some i, m lies in [(i * 256B + 2B) / s, (i * 256B + 3B) / s]. Windows are tried from
        i = 1 up to the number of windows under the modulus. Only meaningful while s * upper
        does not exceed n, so that s * m never wraps around the modulus.
    :param s: a multiplier the oracle accepted
    :param lower: previous lower bound of m
    :param upper: previous upper bound of m
    :return: (new_lower, new_upper) of the first window strictly inside (lower, upper), or None
    """
    for i in range(1, ctx.window_count + 1):
        new_lower = divfloor(i * ctx.B256 + ctx.B2, s)
        new_upper = divfloor(i * ctx.B256 + ctx.B3, s)
        if new_lower > lower and new_upper < upper:
            return new_lower, new_upper
    return None


def step3_r_range(ctx, lower, upper, s):
    """
    Step 3 of the attack: the values of r for which s * m - r * n may conform.
    :return: inclusive range (ceil((lower * s - 3B + 1) / n), floor((upper * s - 2B) / n))
    """
    return divceil(lower * s - ctx.B3 + 1, ctx.n), divfloor(upper * s - ctx.B2, ctx.n)


def compute_step3_bounds(ctx, lower, upper, s):
    """
    Step 3 of the attack for a single interval
    :param lower: minimum of interval
    :param upper: maximum of interval
    :param s: s value of the current round
    :return: list of narrowed sub-intervals, clipped to [lower, upper]; empty ones dropped
    """
    intervals = []
    min_r, max_r = step3_r_range(ctx, lower, upper, s)
    for r in range(min_r, max_r + 1):
        start = max(lower, divceil(ctx.B2 + r * ctx.n, s))
        end = min(upper, divfloor(ctx.B3 - 1 + r * ctx.n, s))
        if start <= end:
            intervals.append(Interval(start, end))
    return intervals


def narrow(ctx, m_prev, s):
    """
    Step 3 of the attack
    :param m_prev: previous range (IntervalSet or iterable of (a, b) pairs)
    :param s: s value of the current round
    :return: New narrowed-down IntervalSet; empty if no interval survived
    """
    m = IntervalSet()
    for a, b in m_prev:
        m.update(compute_step3_bounds(ctx, a, b, s))
    return m
