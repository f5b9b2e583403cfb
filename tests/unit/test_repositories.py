"""Tests for the key-value stores and repositories."""

import json
from datetime import timedelta

import pytest

from otplink.core.exceptions import InvalidConfigError, StorageError
from otplink.models.configuration import Configuration
from otplink.models.otp_record import ForwardingMethod, OTPRecord
from otplink.repositories import (
    ConfigRepository,
    InMemoryStore,
    JsonFileStore,
    OTPRecordRepository,
)


def _record(otp="123456", sender="BANK", **kwargs) -> OTPRecord:
    return OTPRecord(otp=otp, sender=sender, message=f"Your code is {otp}", **kwargs)


class TestInMemoryStore:
    """Tests for InMemoryStore."""

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        store = InMemoryStore()
        value = {"a": [1]}
        await store.set_item("k", value)
        value["a"].append(2)

        loaded = await store.get_item("k")
        loaded["a"].append(3)

        assert await store.get_item("k") == {"a": [1]}

    @pytest.mark.asyncio
    async def test_remove_missing_key(self):
        store = InMemoryStore({"k": 1})
        await store.remove_item("k")
        await store.remove_item("k")
        assert await store.get_item("k") is None


class TestJsonFileStore:
    """Tests for JsonFileStore."""

    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        store = JsonFileStore(tmp_path / "data")
        await store.set_item("otp_link_config", {"keywords": ["otp"]})

        assert (tmp_path / "data" / "otp_link_config.json").exists()
        assert await store.get_item("otp_link_config") == {"keywords": ["otp"]}
        assert list((tmp_path / "data").glob("*.tmp")) == []

    @pytest.mark.asyncio
    async def test_missing_key(self, tmp_path):
        assert await JsonFileStore(tmp_path).get_item("nothing") is None

    @pytest.mark.asyncio
    async def test_remove(self, tmp_path):
        store = JsonFileStore(tmp_path)
        await store.set_item("k", [1, 2])
        await store.remove_item("k")
        await store.remove_item("k")
        assert await store.get_item("k") is None

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path):
        (tmp_path / "k.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError) as exc_info:
            await JsonFileStore(tmp_path).get_item("k")
        assert exc_info.value.details["key"] == "k"

    @pytest.mark.asyncio
    async def test_unserialisable_value_raises(self, tmp_path):
        with pytest.raises(StorageError):
            await JsonFileStore(tmp_path).set_item("k", {"bad": object()})

    @pytest.mark.asyncio
    async def test_path_traversal_key_rejected(self, tmp_path):
        with pytest.raises(StorageError):
            await JsonFileStore(tmp_path).get_item("../etc/passwd")


class TestOTPRecordRepository:
    """Tests for OTPRecordRepository."""

    @pytest.mark.asyncio
    async def test_save_newest_first(self, record_repository):
        first, second = _record("1111"), _record("2222")
        await record_repository.save(first)
        await record_repository.save(second)

        records = await record_repository.load_all()
        assert [r.otp for r in records] == ["2222", "1111"]

    @pytest.mark.asyncio
    async def test_history_capped(self, store):
        repository = OTPRecordRepository(store, limit=100)
        for i in range(105):
            await repository.save(_record(f"{i:04d}"))

        records = await repository.load_all()
        assert len(records) == 100
        assert records[0].otp == "0104"
        assert records[-1].otp == "0005"

    @pytest.mark.asyncio
    async def test_update_and_get(self, record_repository):
        record = _record()
        await record_repository.save(record)

        record.mark_forwarded(ForwardingMethod.EMAIL)
        assert await record_repository.update(record) is True

        stored = await record_repository.get(record.id)
        assert stored.forwarded is True
        assert stored.forwarding_method == ForwardingMethod.EMAIL

    @pytest.mark.asyncio
    async def test_update_unknown_record(self, record_repository):
        assert await record_repository.update(_record()) is False
        assert await record_repository.get("missing") is None

    @pytest.mark.asyncio
    async def test_malformed_entries_skipped(self, store):
        good = _record()
        await store.set_item("otp_link_records", [{"otp": "1"}, good.to_dict()])

        records = await OTPRecordRepository(store).load_all()
        assert [r.id for r in records] == [good.id]

    @pytest.mark.asyncio
    async def test_find_forwarded_duplicate(self, record_repository):
        stored = _record()
        stored.mark_forwarded(ForwardingMethod.WEBHOOK)
        await record_repository.save(stored)

        near = _record(timestamp=stored.timestamp + timedelta(seconds=60))
        far = _record(timestamp=stored.timestamp + timedelta(seconds=600))
        other_sender = _record(sender="SHOP", timestamp=stored.timestamp)

        assert (await record_repository.find_forwarded_duplicate(near, 300)).id == stored.id
        assert await record_repository.find_forwarded_duplicate(far, 300) is None
        assert await record_repository.find_forwarded_duplicate(other_sender, 300) is None

    @pytest.mark.asyncio
    async def test_unforwarded_records_are_not_duplicates(self, record_repository):
        stored = _record()
        await record_repository.save(stored)
        assert await record_repository.find_forwarded_duplicate(stored, 300) is None

    @pytest.mark.asyncio
    async def test_clear(self, record_repository):
        await record_repository.save(_record())
        await record_repository.clear()
        assert await record_repository.load_all() == []


class TestConfigRepository:
    """Tests for ConfigRepository."""

    @pytest.mark.asyncio
    async def test_defaults_when_absent(self, config_repository):
        config = await config_repository.load()
        assert config == Configuration()

    @pytest.mark.asyncio
    async def test_save_and_load(self, config_repository, store):
        config = Configuration(webhook_url="https://hooks.example.com/otp", keywords=["pin"])
        await config_repository.save(config)

        raw = await store.get_item("otp_link_config")
        assert raw["webhookUrl"] == "https://hooks.example.com/otp"
        assert await config_repository.load() == config

    @pytest.mark.asyncio
    async def test_reset(self, config_repository):
        await config_repository.save(Configuration(keywords=["pin"]))
        assert (await config_repository.reset()).keywords == Configuration().keywords

    @pytest.mark.asyncio
    async def test_non_object_raises(self, store):
        await store.set_item("otp_link_config", ["not", "an", "object"])
        with pytest.raises(StorageError):
            await ConfigRepository(store).load()

    @pytest.mark.asyncio
    async def test_invalid_stored_config_raises(self, store):
        await store.set_item("otp_link_config", {"otpMinLength": 99})
        with pytest.raises(InvalidConfigError):
            await ConfigRepository(store).load()

    @pytest.mark.asyncio
    async def test_file_backed(self, tmp_path):
        repository = ConfigRepository(JsonFileStore(tmp_path))
        await repository.save(Configuration(otp_min_length=6))

        data = json.loads((tmp_path / "otp_link_config.json").read_text(encoding="utf-8"))
        assert data["otpMinLength"] == 6
        assert (await repository.load()).otp_min_length == 6
