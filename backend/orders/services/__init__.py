"""
Orders services package.

- OrderService: creation of fulfillment orders for the kitchen
"""

from .order_service import OrderService

__all__ = [
    'OrderService',
]
