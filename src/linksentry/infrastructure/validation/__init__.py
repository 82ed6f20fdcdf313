from .http_link_prober import HttpLinkProber
from .retry import RetryingLinkProber

__all__ = ["HttpLinkProber", "RetryingLinkProber"]
