"""
Bleichenbacher's adaptive chosen-ciphertext attack on RSA PKCS #1 v1.5 encryption.
"""
from .attack import (AttackConfig, AttackResult, Bleichenbacher, RoundOutcome,
                     bleichenbacher_attack)
from .bounds import ModulusContext, compute_step3_bounds, divceil, divfloor, narrow, step2x_bound
from .errors import (AttackAbandoned, BleichenbacherError, InvariantViolation, MalformedInput,
                     OracleError, QueryBudgetExceeded)
from .intervals import Interval, IntervalSet, merge_intervals
from .message import blind, prepare
from .oracles import BudgetOracle, CipherOracle, DecryptionOracle, Oracle, PlaintextOracle
from .PKCS_1_5 import OracleType
