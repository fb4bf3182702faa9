"""Unit tests for store options."""

import pytest

from sunduk import (
    EntityStoreOptions,
    InvalidConfigError,
    ManualScheduler,
    StoreOptions,
)


@pytest.mark.unit
def test_store_options_defaults():
    """Only the name is required"""
    options = StoreOptions(name="s")

    assert options.cache is None
    assert options.scheduler is None
    assert not options.cache_enabled


@pytest.mark.unit
@pytest.mark.parametrize("name", ["", None, 5])
def test_store_options_reject_bad_names(name):
    """Names must be non-empty strings"""
    with pytest.raises(InvalidConfigError):
        StoreOptions(name=name)


@pytest.mark.unit
@pytest.mark.parametrize("cache", [-1, 1.5, "100", True])
def test_store_options_reject_bad_cache(cache):
    """Cache durations are non-negative integers of milliseconds"""
    with pytest.raises(InvalidConfigError):
        StoreOptions(name="s", cache=cache)


@pytest.mark.unit
def test_store_options_reject_non_scheduler():
    """A scheduler must be a Scheduler"""
    with pytest.raises(InvalidConfigError):
        StoreOptions(name="s", scheduler=object())


@pytest.mark.unit
def test_invalid_config_error_is_value_error():
    """Configuration errors can be caught as ValueError"""
    with pytest.raises(ValueError):
        StoreOptions(name="")


@pytest.mark.unit
def test_coerce_from_keywords_and_mapping():
    """Options can come from keywords or a mapping"""
    scheduler = ManualScheduler()

    from_kwargs = StoreOptions.coerce(name="k", cache=10, scheduler=scheduler)
    from_mapping = StoreOptions.coerce({"name": "k", "cache": 10, "scheduler": scheduler})

    assert from_kwargs == from_mapping


@pytest.mark.unit
def test_coerce_rejects_unknown_and_mixed_options():
    """Unknown keys and mixing an object with keywords are errors"""
    with pytest.raises(InvalidConfigError, match="colour"):
        StoreOptions.coerce(name="k", colour="red")
    with pytest.raises(InvalidConfigError):
        StoreOptions.coerce(StoreOptions(name="k"), cache=5)
    with pytest.raises(InvalidConfigError):
        StoreOptions.coerce(42)


@pytest.mark.unit
def test_entity_options_upgrade_requires_id_source():
    """Plain StoreOptions cannot configure an entity store on their own"""
    with pytest.raises(InvalidConfigError):
        EntityStoreOptions.coerce(StoreOptions(name="plain"))


@pytest.mark.unit
def test_id_accessor_by_key_reads_mappings_and_attributes():
    """id_key reads items from mappings and attributes from objects"""

    class Record:
        uid = 9

    read = EntityStoreOptions(name="e", id_key="uid").id_accessor()

    assert read({"uid": 3}) == 3
    assert read(Record()) == 9


@pytest.mark.unit
def test_id_of_must_be_callable():
    """id_of has to be a function"""
    with pytest.raises(InvalidConfigError):
        EntityStoreOptions(name="e", id_of="uid")
