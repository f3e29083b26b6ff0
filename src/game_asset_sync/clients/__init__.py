"""Remote API client abstractions.

Backend implementations live in the platforms/ package and register
themselves with ClientRegistry.
"""

from .base import ApiClient

__all__ = ["ApiClient"]
