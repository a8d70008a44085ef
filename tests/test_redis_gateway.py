"""Tests for the Redis gateway against mock clients (no live server)."""

from unittest import mock

import fakeredis
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from hashsync.config import HashSyncSettings
from hashsync.errors import InvalidArgumentError, ParseError, StoreUnavailableError
from hashsync.gateway.base import StoreGateway
from hashsync.gateway.redis_gateway import BOUNDED_INCREMENT_LUA, RedisGateway
from hashsync.synchronizer import SATURATED, BoundedHashSynchronizer, StepOutcome

from sample_records import Player


@pytest.fixture
def client():
    return mock.MagicMock(name="redis")


@pytest.fixture
def redis_gateway(client):
    return RedisGateway(client)


def test_satisfies_protocol(redis_gateway):
    assert isinstance(redis_gateway, StoreGateway)


def test_registers_bounded_script(client, redis_gateway):
    client.register_script.assert_called_once_with(BOUNDED_INCREMENT_LUA)


class TestCommands:

    def test_hash_set_all_is_one_transaction(self, client, redis_gateway):
        pipe = client.pipeline.return_value
        redis_gateway.hash_set_all("k", {"a": "1"})
        client.pipeline.assert_called_once_with(transaction=True)
        pipe.delete.assert_called_once_with("k")
        pipe.hset.assert_called_once_with("k", mapping={"a": "1"})
        pipe.execute.assert_called_once_with()

    def test_hash_set_field(self, client, redis_gateway):
        client.hset.return_value = 1
        assert redis_gateway.hash_set_field("k", "f", "v") == 1
        client.hset.assert_called_once_with("k", "f", "v")

    def test_hash_get_field(self, client, redis_gateway):
        client.hget.return_value = None
        assert redis_gateway.hash_get_field("k", "f") is None

    def test_hash_increment_field(self, client, redis_gateway):
        client.hincrby.return_value = 12
        assert redis_gateway.hash_increment_field("k", "f", 3) == 12
        client.hincrby.assert_called_once_with("k", "f", 3)

    def test_bounded_script_arguments(self, client, redis_gateway):
        script = client.register_script.return_value
        script.return_value = 10
        assert redis_gateway.hash_increment_bounded("k", "f", 3, 10) == 10
        script.assert_called_once_with(keys=["k"], args=["f", 3, 10])

    def test_bounded_script_nil_reply_is_refusal(self, client, redis_gateway):
        client.register_script.return_value.return_value = None
        assert redis_gateway.hash_increment_bounded("k", "f", 1, 10) is None

    def test_delete_fields_without_fields_skips_store(self, client, redis_gateway):
        assert redis_gateway.hash_delete_fields("k") == 0
        client.hdel.assert_not_called()

    def test_key_commands(self, client, redis_gateway):
        client.expire.return_value = True
        client.ttl.return_value = -1
        client.exists.return_value = 1
        client.delete.return_value = 2
        assert redis_gateway.expire("k", 5) == 1
        assert redis_gateway.ttl("k") == -1
        assert redis_gateway.exists("k") is True
        assert redis_gateway.delete("a", "b") == 2


class TestErrorTranslation:

    @pytest.mark.parametrize("exc", [RedisConnectionError("down"), RedisTimeoutError("slow")])
    def test_unreachable_store(self, client, redis_gateway, exc):
        client.hget.side_effect = exc
        with pytest.raises(StoreUnavailableError) as excinfo:
            redis_gateway.hash_get_field("k", "f")
        assert excinfo.value.__cause__ is exc
        assert excinfo.value.key == "k"

    def test_not_an_integer(self, client, redis_gateway):
        client.hincrby.side_effect = ResponseError("hash value is not an integer")
        with pytest.raises(ParseError):
            redis_gateway.hash_increment_field("k", "f", 1)

    def test_wrong_type(self, client, redis_gateway):
        client.hget.side_effect = ResponseError(
            "WRONGTYPE Operation against a key holding the wrong kind of value"
        )
        with pytest.raises(InvalidArgumentError):
            redis_gateway.hash_get_field("k", "f")

    def test_other_response_errors_propagate(self, client, redis_gateway):
        client.get.side_effect = ResponseError("ERR something else")
        with pytest.raises(ResponseError):
            redis_gateway.get("k")


class TestWithSynchronizer:

    def test_read_clamp_protocol_issues_clamp(self, client, redis_gateway):
        client.hget.return_value = "9"
        client.hincrby.return_value = 12
        sync = BoundedHashSynchronizer(redis_gateway)
        assert sync.bounded_increment(Player, "p", "hp", 3, 10) == 10
        client.hset.assert_called_once_with("p", "hp", "10")

    def test_saturated_read_skips_increment(self, client, redis_gateway):
        client.hget.return_value = "10"
        sync = BoundedHashSynchronizer(redis_gateway)
        assert sync.bounded_increment(Player, "p", "hp", 1, 10) == SATURATED
        client.hincrby.assert_not_called()

    def test_store_failure_propagates(self, client, redis_gateway):
        client.hget.side_effect = RedisConnectionError("down")
        sync = BoundedHashSynchronizer(redis_gateway)
        with pytest.raises(StoreUnavailableError):
            sync.bounded_decrement(Player, "p", "hp", 1, 0)


def test_from_settings_builds_decoding_client():
    settings = HashSyncSettings(redis_url="redis://cache:6380/2", socket_timeout=1.5)
    with mock.patch("hashsync.gateway.redis_gateway.redis.Redis.from_url") as from_url:
        RedisGateway.from_settings(settings)
    from_url.assert_called_once_with(
        "redis://cache:6380/2",
        decode_responses=True,
        socket_timeout=1.5,
        socket_connect_timeout=5.0,
    )


class TestAgainstFakeRedis:
    """Both bounded modes against a Redis implementation that runs the Lua script."""

    KEY = "player:1"

    @pytest.fixture
    def fake_client(self):
        return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)

    @pytest.fixture(params=[False, True], ids=["read-clamp", "strict"])
    def redis_sync(self, request, fake_client):
        return BoundedHashSynchronizer(RedisGateway(fake_client), strict=request.param)

    def _seed(self, fake_client, value):
        fake_client.hset(self.KEY, "hp", str(value))

    def test_within_range(self, redis_sync, fake_client):
        self._seed(fake_client, 5)
        assert redis_sync.bounded_increment(Player, self.KEY, "hp", 3, 10) == 8
        assert fake_client.hget(self.KEY, "hp") == "8"

    def test_overshoot_clamped(self, redis_sync, fake_client):
        self._seed(fake_client, 9)
        assert redis_sync.bounded_increment(Player, self.KEY, "hp", 3, 10) == 10
        assert fake_client.hget(self.KEY, "hp") == "10"

    def test_saturated_refused(self, redis_sync, fake_client):
        self._seed(fake_client, 10)
        assert redis_sync.bounded_increment(Player, self.KEY, "hp", 1, 10) == SATURATED
        assert fake_client.hget(self.KEY, "hp") == "10"

    def test_undershoot_clamped_to_min(self, redis_sync, fake_client):
        self._seed(fake_client, 2)
        assert redis_sync.bounded_decrement(Player, self.KEY, "hp", 5, 0) == 0
        assert fake_client.hget(self.KEY, "hp") == "0"

    def test_clamp_to_minus_one_not_refused(self, redis_sync, fake_client):
        self._seed(fake_client, 3)
        outcome = redis_sync.try_decrement(Player, self.KEY, "hp", 10, -1)
        assert outcome == StepOutcome(refused=False, value=-1)
        assert fake_client.hget(self.KEY, "hp") == "-1"

    def test_unset_field_refused(self, redis_sync, fake_client):
        assert redis_sync.try_increment(Player, self.KEY, "hp", 1, 10).refused
        assert not fake_client.exists(self.KEY)

    def test_non_integer_value(self, redis_sync, fake_client):
        self._seed(fake_client, "lots")
        with pytest.raises(ParseError):
            redis_sync.bounded_increment(Player, self.KEY, "hp", 1, 10)
        assert fake_client.hget(self.KEY, "hp") == "lots"

    def test_full_sync_round_trip(self, redis_sync, fake_client):
        fake_client.hset(self.KEY, "legacy", "x")
        player = Player(name="ana", hp=4)
        field_map = redis_sync.full_sync(player, self.KEY)
        assert fake_client.hgetall(self.KEY) == field_map
        assert redis_sync.load(Player, self.KEY) == player
