from .event_sink import EventSinkPort
from .link_prober import LinkProberPort
from .session_verifier import SessionVerifierPort

__all__ = [
    "EventSinkPort",
    "LinkProberPort",
    "SessionVerifierPort",
]
