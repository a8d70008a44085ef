"""Store gateways: the key-value store primitives hashsync is built on."""

from hashsync.gateway.base import StoreGateway
from hashsync.gateway.memory import InMemoryGateway
from hashsync.gateway.redis_gateway import RedisGateway

__all__ = ["StoreGateway", "InMemoryGateway", "RedisGateway"]
