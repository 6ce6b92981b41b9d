from .audit import log_audit
from .identity import Identity, current_identity
from .meeting import generate_meet_link
from .retry import Outcome, poll_until_terminal
from .signatures import verify_signature

__all__ = [
    # Audit
    "log_audit",
    # Identity
    "Identity",
    "current_identity",
    # Booking helpers
    "generate_meet_link",
    "Outcome",
    "poll_until_terminal",
    "verify_signature",
]
