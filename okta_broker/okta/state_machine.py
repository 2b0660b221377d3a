"""Transitions of the Okta authentication state machine.

The transition function is pure: it looks at the state the client is in and
the transaction the IdP just returned, and decides where to go next. The
network calls that produce those transactions live in
:mod:`okta_broker.okta.authenticator`.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from okta_broker.errors import (
    ChallengeRejected,
    ChallengeTimeout,
    ProtocolViolation,
    UnimplementedState,
)
from okta_broker.okta.transaction import FactorResult, TransactionStatus


class StateKind(enum.Enum):
    AUTHORIZE = "authorize"
    MFA_REQUIRED = "mfa_required"
    MFA_CHALLENGE = "mfa_challenge"
    SUCCESS = "success"
    FAILED = "failed"


TERMINAL = (StateKind.SUCCESS, StateKind.FAILED)


@dataclass(frozen=True)
class State:
    kind: StateKind
    transaction: Optional[object] = None
    error: Optional[Exception] = None

    @property
    def terminal(self):
        return self.kind in TERMINAL


INITIAL = State(StateKind.AUTHORIZE)


def failed(error):
    return State(StateKind.FAILED, error=error)


def step(state, transaction):
    """Return the state entered after receiving *transaction* in *state*."""
    if state.terminal:
        return failed(ProtocolViolation(f"no transition out of {state.kind.value}"))

    status = transaction.status
    if status == TransactionStatus.MFA_REQUIRED:
        return State(StateKind.MFA_REQUIRED, transaction)
    if status == TransactionStatus.SUCCESS:
        return State(StateKind.SUCCESS, transaction)
    if status == TransactionStatus.MFA_CHALLENGE:
        return _challenge_step(transaction)
    return failed(UnimplementedState(f"unimplemented transaction status {transaction.raw_status!r}"))


def _challenge_step(transaction):
    result = transaction.factor_result
    if result is None:
        return failed(ProtocolViolation("required key 'factorResult' not in response"))
    if result in (FactorResult.CHALLENGE, FactorResult.WAITING):
        return State(StateKind.MFA_CHALLENGE, transaction)
    if result == FactorResult.REJECTED:
        return failed(ChallengeRejected("MFA challenge was rejected"))
    if result == FactorResult.TIMEOUT:
        return failed(ChallengeTimeout("MFA challenge timed out"))
    return failed(UnimplementedState("unimplemented MFA factor result"))
