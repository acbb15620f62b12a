"""Service test fixtures — in-memory fakes for every boundary Protocol.

Invariants:
    - Fakes record write calls in order so tests can assert commit sequencing
    - fail_on names one call that raises, to exercise step attribution
    - Settings are built without reading a .env file
"""

import pytest

from binder_planner.config import Settings
from binder_planner.infrastructure.item_cache import ItemListCache


class FakeBinderRepository:
    def __init__(self, page_count: int = 1):
        self.page_count = page_count
        self.fail_on: str | None = None
        self.calls: list[tuple] = []

    def _call(self, name: str, *args) -> None:
        if name == self.fail_on:
            raise RuntimeError(f"{name} unavailable")
        if name != "get_page_count":
            self.calls.append((name, *args))

    @property
    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    async def get_page_count(self, binder_id):
        self._call("get_page_count", binder_id)
        return self.page_count

    async def update_settings(self, binder_id, *, grid_size_id=None):
        self._call("update_settings", binder_id, grid_size_id)

    async def add_pages(self, binder_id, count):
        self._call("add_pages", binder_id, count)
        self.page_count += count

    async def batch_move(self, binder_id, moves):
        self._call("batch_move", binder_id, [m.as_dict() for m in moves])

    async def clear_items(self, binder_id, reason):
        self._call("clear_items", binder_id, reason)
        return 0

    async def insert_at(self, binder_id, entries, *, is_replacement, start_position=None):
        self._call("insert_at", binder_id, [e.item_id for e in entries], is_replacement, start_position)


class FakeItemListProvider:
    def __init__(self, sets: dict[str, list[dict]] | None = None):
        self.sets = sets or {}
        self.fetch_count = 0
        self.error: Exception | None = None

    async def fetch(self, set_id):
        self.fetch_count += 1
        if self.error is not None:
            raise self.error
        return self.sets.get(set_id, [])


class FakePlacedItemsSink:
    def __init__(self):
        self.stored: dict[str, list] = {}
        self.fail = False

    async def store(self, set_id, entries):
        if self.fail:
            raise ConnectionError("cache offline")
        self.stored[set_id] = entries


class FakeHistoryStateApplier:
    def __init__(self):
        self.applied: list[tuple[str, str | None]] = []
        self.fail = False

    async def apply_history_state(self, binder_id, entry_id):
        if self.fail:
            raise RuntimeError("revert failed")
        self.applied.append((binder_id, entry_id))


def make_set(count: int, eligible: int | None = None) -> list[dict]:
    """Raw provider payload: the first `eligible` records are Common."""
    eligible = count if eligible is None else eligible
    return [
        {"id": f"sv1-{i + 1}", "rarity": "Common" if i < eligible else "Double Rare",
         "number": i + 1, "name": f"Card {i + 1}"}
        for i in range(count)
    ]


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def repository():
    return FakeBinderRepository()


@pytest.fixture
def provider():
    return FakeItemListProvider({"sv1": make_set(4), "sv2": make_set(150, eligible=90)})


@pytest.fixture
def sink():
    return FakePlacedItemsSink()


@pytest.fixture
def cache():
    return ItemListCache()


@pytest.fixture
def applier():
    return FakeHistoryStateApplier()
