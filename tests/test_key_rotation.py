# -*- coding: utf-8 -*-
import pytest

from smartflow.providers import (
    ConfigValidationError,
    LocalKeyConfig,
    SharedKeyConfig,
    describe_key_config,
    mask_api_key,
)


@pytest.fixture
def rotating(manager):
    return manager.add_provider(
        "Pool",
        "https://api.example.com/v1",
        key_configs=[
            LocalKeyConfig(value="key-a"),
            LocalKeyConfig(value="key-b"),
            LocalKeyConfig(value="key-c"),
        ],
    )


def test_single_key_provider(manager, provider):
    assert manager.get_api_key(provider.id) == "sk-test-1234567890"
    assert manager.get_api_key_count(provider.id) == 1
    assert manager.has_api_key(provider.id)


def test_rotation_visits_every_key_and_wraps(manager, rotating):
    assert manager.get_api_key(rotating.id) == "key-a"
    seen = [manager.rotate_api_key(rotating.id) for _ in range(4)]
    assert seen == ["key-b", "key-c", "key-a", "key-b"]
    assert rotating.current_key_index == 1


def test_rotation_persists(manager, rotating, saved):
    count = len(saved)
    manager.rotate_api_key(rotating.id)
    assert len(saved) == count + 1
    assert saved[-1].providers[0].current_key_index == 1


def test_single_key_rotation_is_idempotent(manager, provider, saved):
    count = len(saved)
    assert manager.rotate_api_key(provider.id) == "sk-test-1234567890"
    assert manager.rotate_api_key(provider.id) == "sk-test-1234567890"
    assert provider.current_key_index == 0
    assert len(saved) == count


def test_rotation_skips_unresolvable_shared_secret(manager, secret_store):
    provider = manager.add_provider(
        "Mixed",
        "https://api.example.com",
        key_configs=[
            LocalKeyConfig(value="key-a"),
            SharedKeyConfig(secret_id="missing"),
            SharedKeyConfig(secret_id="shared-one"),
        ],
    )
    assert manager.rotate_api_key(provider.id) == "sk-shared-111"
    assert provider.current_key_index == 2
    assert "missing" in secret_store.lookups


def test_get_api_key_falls_forward_from_dead_index(manager, secret_store):
    provider = manager.add_provider(
        "Mixed",
        "https://api.example.com",
        key_configs=[
            SharedKeyConfig(secret_id="missing"),
            LocalKeyConfig(value="key-b"),
        ],
    )
    assert manager.get_api_key(provider.id) == "key-b"
    assert provider.current_key_index == 1


def test_no_resolvable_key(manager):
    provider = manager.add_provider(
        "Empty",
        "https://api.example.com",
        key_configs=[
            SharedKeyConfig(secret_id="missing"),
            LocalKeyConfig(value=""),
        ],
    )
    assert manager.get_api_key(provider.id) is None
    assert manager.rotate_api_key(provider.id) is None
    assert manager.get_api_keys(provider.id) == []


def test_out_of_range_index_is_treated_as_zero(manager, rotating):
    rotating.current_key_index = 7
    assert manager.get_api_key(rotating.id) == "key-a"
    assert rotating.current_key_index == 0


def test_shared_key_without_secret_service(manager):
    manager.set_secret_service(None)
    provider = manager.add_provider(
        "Shared",
        "https://api.example.com",
        key_config=SharedKeyConfig(secret_id="shared-one"),
    )
    assert manager.get_api_key(provider.id) is None
    # configured, just not resolvable
    assert manager.has_api_key(provider.id)


def test_get_api_keys_lists_resolvable_keys(manager, rotating):
    assert manager.get_api_keys(rotating.id) == ["key-a", "key-b", "key-c"]


def test_add_api_key_promotes_single_key(manager, provider):
    index = manager.add_api_key(provider.id, LocalKeyConfig(value="sk-two"))
    assert index == 1
    assert manager.get_api_key_count(provider.id) == 2
    assert manager.rotate_api_key(provider.id) == "sk-two"
    assert manager.rotate_api_key(provider.id) == "sk-test-1234567890"


def test_remove_api_key_keeps_cursor_on_same_key(manager, rotating):
    manager.rotate_api_key(rotating.id)
    manager.rotate_api_key(rotating.id)
    assert manager.get_api_key(rotating.id) == "key-c"

    manager.remove_api_key(rotating.id, 0)
    assert rotating.current_key_index == 1
    assert manager.get_api_key(rotating.id) == "key-c"

    manager.remove_api_key(rotating.id, 1)
    assert rotating.current_key_index == 0
    assert manager.get_api_key(rotating.id) == "key-b"

    with pytest.raises(ConfigValidationError):
        manager.remove_api_key(rotating.id, 5)


def test_unknown_provider(manager):
    assert manager.get_api_key("nope") is None
    assert manager.rotate_api_key("nope") is None
    assert manager.get_api_key_count("nope") == 0
    assert not manager.has_api_key("nope")


@pytest.mark.parametrize(
    "key, masked",
    [
        ("sk-abcdefghijk", "sk-*******hijk"),
        ("abcd", "****"),
        ("", ""),
        (None, ""),
    ],
)
def test_mask_api_key(key, masked):
    assert mask_api_key(key) == masked


def test_describe_key_config():
    assert describe_key_config(None) == "(not set)"
    assert describe_key_config(SharedKeyConfig(secret_id="x")) == "shared:x"
    assert describe_key_config(LocalKeyConfig(value="")) == "(empty)"
