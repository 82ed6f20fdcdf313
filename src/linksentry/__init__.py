"""linksentry: streaming link-validation service."""

__version__ = "0.1.0"
