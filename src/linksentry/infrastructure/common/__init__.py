from .domain_pacer import DomainPacer
from .url_normalizer import UrlNormalizer, extract_domain, is_http_url

__all__ = ["DomainPacer", "UrlNormalizer", "extract_domain", "is_http_url"]
