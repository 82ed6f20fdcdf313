from .channel import EventChannel
from .encoding import encode_event

__all__ = ["EventChannel", "encode_event"]
