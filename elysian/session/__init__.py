from elysian.session.orchestrator import KeySelector, TherapySession
from elysian.session.state import ErrorKind, SessionError, classify_error

__all__ = [
    "ErrorKind",
    "KeySelector",
    "SessionError",
    "TherapySession",
    "classify_error",
]
