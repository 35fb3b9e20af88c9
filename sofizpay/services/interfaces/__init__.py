# sofizpay/services/interfaces/__init__.py
"""Service interfaces (Protocols) for dependency injection."""

from .horizon import IHorizonGateway

__all__ = [
    "IHorizonGateway",
]
