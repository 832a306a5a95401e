"""
Repository modules for database operations
"""

from .base import BaseRepository
from .attribute_repository import CategoryRepository, SizeRepository, ColorRepository
from .order_repository import OrderRepository, WebhookEventRepository
from .product_repository import ProductRepository
from .store_repository import StoreRepository

__all__ = [
    'BaseRepository',
    'CategoryRepository',
    'ColorRepository',
    'OrderRepository',
    'ProductRepository',
    'SizeRepository',
    'StoreRepository',
    'WebhookEventRepository'
]
