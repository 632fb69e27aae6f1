"""
Unit tests for the runtime config stores.
"""

import json
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from inbox_relay.models.enums import InboundMode
from inbox_relay.persistence.config_store import MemoryConfigStore, RedisConfigStore


class TestMemoryConfigStore:
    def test_defaults_come_from_settings(self, test_settings):
        config = MemoryConfigStore(test_settings).load()

        assert config.instance_name == "alpha"
        assert config.channel_url == test_settings.CHANNEL_URL
        assert config.batch_size == 10
        assert config.inbound_mode == InboundMode.WEBHOOK
        assert config.registered is False

    def test_update_persists(self, test_settings):
        store = MemoryConfigStore(test_settings)

        store.update(batch_size=3, channel_url="https://other.example.com")

        config = store.load()
        assert config.batch_size == 3
        assert config.channel_url == "https://other.example.com"

    def test_unknown_key_rejected(self, test_settings):
        with pytest.raises(ValueError, match="Unknown config keys"):
            MemoryConfigStore(test_settings).update(colour="blue")

    def test_invalid_value_rejected_and_not_persisted(self, test_settings):
        store = MemoryConfigStore(test_settings)

        with pytest.raises(ValidationError):
            store.update(batch_size=0)

        assert store.load().batch_size == 10

    def test_label_inventory(self, test_settings):
        store = MemoryConfigStore(test_settings)
        assert store.get_label_inventory() == []

        store.save_label_inventory(["Work", "Personal"])

        assert store.get_label_inventory() == ["Work", "Personal"]


class TestRedisConfigStore:
    @pytest.fixture
    def mock_redis(self):
        mock = MagicMock()
        mock.hgetall.return_value = {}
        return mock

    def test_load_merges_stored_values(self, mock_redis, test_settings):
        mock_redis.hgetall.return_value = {
            "batch_size": "5",
            "registered": "true",
            "channel_url": json.dumps("https://stored.example.com"),
        }

        config = RedisConfigStore(mock_redis, test_settings).load()

        assert config.batch_size == 5
        assert config.registered is True
        assert config.channel_url == "https://stored.example.com"
        assert config.instance_name == "alpha"

    def test_undecodable_values_are_ignored(self, mock_redis, test_settings):
        mock_redis.hgetall.return_value = {"batch_size": "{broken"}

        assert RedisConfigStore(mock_redis, test_settings).load().batch_size == 10

    def test_update_writes_only_changed_keys(self, mock_redis, test_settings):
        RedisConfigStore(mock_redis, test_settings).update(batch_size=4)

        mock_redis.hset.assert_called_once_with("relay:config", mapping={"batch_size": "4"})

    def test_save_label_inventory_replaces_list(self, mock_redis, test_settings):
        pipe = mock_redis.pipeline.return_value

        RedisConfigStore(mock_redis, test_settings).save_label_inventory(["Work", "Receipts"])

        pipe.delete.assert_called_once_with("relay:labels")
        pipe.rpush.assert_called_once_with("relay:labels", "Work", "Receipts")
        pipe.execute.assert_called_once()
