"""
Error kinds raised by the attack engine.

Nothing in the engine recovers from these silently; they all reach the caller.
"""


class BleichenbacherError(Exception):
    """
    Base class of every error raised by the attack engine.
    """


class OracleError(BleichenbacherError):
    """
    The oracle could not produce a conformity verdict (I/O failure, malformed target
        response, decryption backend exception). Fatal to the current attack attempt.
    """


class QueryBudgetExceeded(OracleError):
    """
    The oracle refuses further queries because the caller-imposed query budget is spent.
    """

    def __init__(self, budget):
        super().__init__("query budget of %d oracle queries exhausted" % budget)
        self.budget = budget


class InvariantViolation(BleichenbacherError):
    """
    An internally detected impossibility, e.g. a narrowing round that leaves no interval.
    Either the oracle answered inconsistently or a bound was misapplied.
    """


class MalformedInput(BleichenbacherError, ValueError):
    """
    Ciphertext, candidate or key sizes inconsistent with the modulus.
    """


class AttackAbandoned(BleichenbacherError):
    """
    The caller-imposed round budget ran out before the interval set collapsed.
    """

    def __init__(self, rounds, queries):
        super().__init__("attack abandoned after %d rounds (%d queries)" % (rounds, queries))
        self.rounds = rounds
        self.queries = queries
