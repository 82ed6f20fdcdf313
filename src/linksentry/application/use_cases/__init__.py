from .link_check import LinkCheckUseCase

__all__ = ["LinkCheckUseCase"]
