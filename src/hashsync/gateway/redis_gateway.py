"""Redis store gateway (redis-py).

Every method is one Redis command (or one MULTI/EXEC transaction, or one
script), so each keeps the server's single-command atomicity. Client
failures are translated into the hashsync taxonomy with the original
exception chained.
"""

import contextlib
import logging
from typing import Dict, Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from hashsync.errors import InvalidArgumentError, ParseError, StoreUnavailableError

logger = logging.getLogger(__name__)

# Refuse / increment / clamp in one server-side step.
# KEYS[1] = hash key, ARGV = field, delta, bound. A refusal is a nil reply.
BOUNDED_INCREMENT_LUA = """
local cur = redis.call('HGET', KEYS[1], ARGV[1])
if not cur then
  return false
end
if not string.match(cur, '^%-?%d+$') then
  return redis.error_reply('ERR hash value is not an integer')
end
cur = tonumber(cur)
local delta = tonumber(ARGV[2])
local bound = tonumber(ARGV[3])
if (delta > 0 and cur >= bound) or (delta < 0 and cur <= bound) then
  return false
end
local new = cur + delta
if (delta > 0 and new > bound) or (delta < 0 and new < bound) then
  new = bound
end
redis.call('HSET', KEYS[1], ARGV[1], string.format('%d', new))
return new
"""


class RedisGateway:
    """StoreGateway over a ``redis.Redis`` client created with decode_responses=True."""

    def __init__(self, client: redis.Redis):
        self._client = client
        self._bounded_increment = client.register_script(BOUNDED_INCREMENT_LUA)

    @classmethod
    def from_url(
        cls,
        url: str,
        socket_timeout: Optional[float] = None,
        socket_connect_timeout: Optional[float] = None,
    ) -> "RedisGateway":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
        )
        return cls(client)

    @classmethod
    def from_settings(cls, settings) -> "RedisGateway":
        """Build a gateway from HashSyncSettings."""
        return cls.from_url(
            settings.redis_url,
            socket_timeout=settings.socket_timeout,
            socket_connect_timeout=settings.socket_connect_timeout,
        )

    @property
    def client(self) -> redis.Redis:
        return self._client

    @contextlib.contextmanager
    def _translate(self, op: str, key: str, field: Optional[str] = None):
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError) as exc:
            logger.warning("redis %s on %s failed: %s", op, key, exc)
            raise StoreUnavailableError(
                f"Redis {op} on '{key}' failed: {exc}", key=key, field=field
            ) from exc
        except ResponseError as exc:
            message = str(exc)
            if "not an integer" in message or "overflow" in message:
                raise ParseError(
                    f"Redis {op} on '{key}' rejected the value: {message}", key=key, field=field
                ) from exc
            if message.startswith("WRONGTYPE"):
                raise InvalidArgumentError(message, key=key, field=field) from exc
            raise

    # ---- hash primitives ----

    def hash_set_all(self, key: str, mapping: Dict[str, str]) -> None:
        with self._translate("hash_set_all", key):
            pipe = self._client.pipeline(transaction=True)
            pipe.delete(key)
            if mapping:
                pipe.hset(key, mapping=mapping)
            pipe.execute()

    def hash_set_field(self, key: str, field: str, value: str) -> int:
        with self._translate("hset", key, field):
            return int(self._client.hset(key, field, value))

    def hash_get_field(self, key: str, field: str) -> Optional[str]:
        with self._translate("hget", key, field):
            return self._client.hget(key, field)

    def hash_get_all(self, key: str) -> Dict[str, str]:
        with self._translate("hgetall", key):
            return dict(self._client.hgetall(key))

    def hash_field_exists(self, key: str, field: str) -> bool:
        with self._translate("hexists", key, field):
            return bool(self._client.hexists(key, field))

    def hash_increment_field(self, key: str, field: str, delta: int) -> int:
        with self._translate("hincrby", key, field):
            return int(self._client.hincrby(key, field, delta))

    def hash_increment_bounded(self, key: str, field: str, delta: int, bound: int) -> Optional[int]:
        with self._translate("bounded_increment", key, field):
            result = self._bounded_increment(keys=[key], args=[field, delta, bound])
        return None if result is None else int(result)

    def hash_delete_fields(self, key: str, *fields: str) -> int:
        if not fields:
            return 0
        with self._translate("hdel", key):
            return int(self._client.hdel(key, *fields))

    # ---- key / string primitives ----

    def get(self, key: str) -> Optional[str]:
        with self._translate("get", key):
            return self._client.get(key)

    def set(self, key: str, value: str) -> bool:
        with self._translate("set", key):
            return bool(self._client.set(key, value))

    def incr(self, key: str) -> int:
        with self._translate("incr", key):
            return int(self._client.incr(key))

    def expire(self, key: str, seconds: int) -> int:
        with self._translate("expire", key):
            return 1 if self._client.expire(key, seconds) else 0

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with self._translate("delete", keys[0]):
            return int(self._client.delete(*keys))

    def exists(self, key: str) -> bool:
        with self._translate("exists", key):
            return bool(self._client.exists(key))

    def ttl(self, key: str) -> int:
        with self._translate("ttl", key):
            return int(self._client.ttl(key))
