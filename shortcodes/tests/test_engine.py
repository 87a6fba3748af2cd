import pytest

from shortcodes.core.codec import max_ordinal
from shortcodes.core.engine import CodeAssigner
from shortcodes.core.errors import (
    CapacityExhaustedError,
    CodeCollisionError,
    EmptyValueError,
    InternalError,
    InvalidCodeError,
    InvalidValueError,
    NotFoundError,
)
from shortcodes.storage.memory_store import MemoryMappingStore
from shortcodes.storage.redis_store import RedisMappingStore
from shortcodes.storage.sqlite_store import SqliteMappingStore


@pytest.fixture(params=["memory", "sqlite", "redis"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryMappingStore()
    if request.param == "redis":
        request.getfixturevalue("fake_redis")
        return RedisMappingStore(redis_url="redis://localhost:6379/0", key_prefix="t")
    return SqliteMappingStore(db_path=str(tmp_path / "store.db"))


def test_end_to_end_example(store):
    assigner = CodeAssigner(store)

    assert assigner.assign("hello world") == "01"
    assert assigner.assign("hello world") == "01"
    assert assigner.assign("another") == "02"
    assert assigner.resolve("01") == "hello world"
    assert assigner.resolve("02") == "another"

    with pytest.raises(NotFoundError):
        assigner.resolve("zz")
    with pytest.raises(InvalidCodeError):
        assigner.resolve("1")
    assert store.count_mappings() == 2


def test_distinct_values_get_distinct_codes(store):
    assigner = CodeAssigner(store)
    values = [f"value-{i}" for i in range(100)] + ["Value-1", "value-1 ", "ünïcødé", "a" * 4096]

    codes = [assigner.assign(v) for v in values]

    assert len(set(codes)) == len(values)
    for value, code in zip(values, codes):
        assert 2 <= len(code) <= 5
        assert assigner.resolve(code) == value


def test_empty_value_is_rejected_without_a_record(store):
    assigner = CodeAssigner(store)

    with pytest.raises(EmptyValueError):
        assigner.assign("")

    assert store.count_mappings() == 0
    assert assigner.assign("first") == "01"


@pytest.mark.parametrize("code", ["", "1", "abcdef", "a-", "ab c", "ü1", "0_0"])
def test_resolve_rejects_malformed_codes(store, code):
    with pytest.raises(InvalidCodeError):
        CodeAssigner(store).resolve(code)


def test_capacity_is_highest_five_char_ordinal():
    assert CodeAssigner(MemoryMappingStore()).capacity == 62**5 - 1 == 916132831


def test_max_code_length_below_two_is_refused():
    with pytest.raises(ValueError):
        CodeAssigner(MemoryMappingStore(), max_code_length=1)


def test_capacity_exhausted_leaves_store_untouched():
    store = MemoryMappingStore(last_ordinal=max_ordinal(2) - 1)
    assigner = CodeAssigner(store, max_code_length=2)

    assert assigner.assign("last fitting") == "ZZ"
    with pytest.raises(CapacityExhaustedError):
        assigner.assign("overflow")
    with pytest.raises(CapacityExhaustedError):
        assigner.assign("overflow")

    assert store.count_mappings() == 1
    assert store.find_code("overflow") is None
    assert assigner.assign("last fitting") == "ZZ"
    assert assigner.resolve("ZZ") == "last fitting"


def test_resolve_window_follows_max_code_length():
    assigner = CodeAssigner(MemoryMappingStore(), max_code_length=6)
    with pytest.raises(NotFoundError):
        assigner.resolve("abcdef")


class _LostRaceStore(MemoryMappingStore):
    """First lookup misses as if a concurrent writer commits right after it."""

    def __init__(self, winner_value: str) -> None:
        super().__init__()
        self.lookups = 0
        self.inserts = 0
        super().insert_mapping(winner_value, lambda ordinal: f"{ordinal:02d}")

    def find_code(self, value):
        self.lookups += 1
        if self.lookups == 1:
            return None
        return super().find_code(value)

    def insert_mapping(self, value, make_code):
        self.inserts += 1
        return super().insert_mapping(value, make_code)


def test_lost_insert_race_returns_winners_code():
    store = _LostRaceStore("shared")

    assert CodeAssigner(store).assign("shared") == "01"
    assert store.lookups == 2
    assert store.inserts == 1
    assert store.count_mappings() == 1


class _VanishingStore(MemoryMappingStore):
    def find_code(self, value):
        return None

    def insert_mapping(self, value, make_code):
        return None


def test_repeated_conflict_without_visible_mapping_is_internal():
    with pytest.raises(InternalError):
        CodeAssigner(_VanishingStore()).assign("ghost")


def test_duplicate_code_is_surfaced_as_internal_error():
    store = MemoryMappingStore()
    assigner = CodeAssigner(store)
    assigner.assign("a")
    # rewind the counter so the next ordinal repeats
    store._last_ordinal = 0

    with pytest.raises(CodeCollisionError) as excinfo:
        assigner.assign("b")
    assert isinstance(excinfo.value, InternalError)
    assert store.find_code("b") is None


@pytest.mark.parametrize("value", ["a\ud800b", "\udfff"])
def test_value_that_is_not_utf8_text_is_rejected_on_every_store(store, value):
    assigner = CodeAssigner(store)

    with pytest.raises(InvalidValueError):
        assigner.assign(value)

    assert store.count_mappings() == 0
    assert assigner.assign("next") == "01"


def test_empty_value_is_an_invalid_value():
    with pytest.raises(InvalidValueError):
        CodeAssigner(MemoryMappingStore()).assign("")
