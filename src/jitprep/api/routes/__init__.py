"""Route group exports."""

from . import health, orders, tracking

__all__ = ["health", "orders", "tracking"]
