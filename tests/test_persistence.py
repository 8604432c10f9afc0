# tests/test_persistence.py

from __future__ import annotations

import pytest

from punchcard.storage.errors import LoadError, StoreFormatError, StoreWriteError
from punchcard.storage.persistence import PersistenceController
from punchcard.tasks.registry import TaskRegistry

from .fakes import FakeMonotonic, RecordingStore


def test_begin_requires_dirty_and_not_saving(
    recording_store: RecordingStore, registry: TaskRegistry, monotonic: FakeMonotonic
) -> None:
    controller = PersistenceController(recording_store, monotonic=monotonic)
    assert controller.begin(registry) is None  # clean

    registry.create("a")
    snapshot = controller.begin(registry)
    assert snapshot is not None
    assert registry.is_saving and not registry.is_dirty

    registry.create("b")
    assert controller.begin(registry) is None  # one save in flight at most
    assert registry.is_dirty


@pytest.mark.asyncio
async def test_cooldown_coalesces_mutations_into_one_save(
    recording_store: RecordingStore, registry: TaskRegistry, monotonic: FakeMonotonic
) -> None:
    controller = PersistenceController(recording_store, min_interval=2.0, monotonic=monotonic)

    registry.create("a")
    snapshot = controller.begin(registry)
    assert snapshot is not None
    controller.complete(registry, await controller.save(snapshot))
    assert len(recording_store.saves) == 1

    # Two mutations inside the cooldown window.
    monotonic.advance(0.5)
    b = registry.create("b")
    assert controller.begin(registry) is None
    monotonic.advance(0.5)
    assert b is not None
    registry.start(b.id)
    assert controller.begin(registry) is None

    monotonic.advance(1.1)
    snapshot = controller.begin(registry)
    assert snapshot is not None
    controller.complete(registry, await controller.save(snapshot))

    assert len(recording_store.saves) == 2
    names = [t.name for t in recording_store.last]
    assert names == ["a", "b"]
    assert recording_store.last[1].is_active


@pytest.mark.asyncio
async def test_failed_save_clears_saving_without_cooldown(
    recording_store: RecordingStore, registry: TaskRegistry, monotonic: FakeMonotonic
) -> None:
    controller = PersistenceController(recording_store, min_interval=2.0, monotonic=monotonic)
    recording_store.fail_with = StoreWriteError("disk full")

    registry.create("a")
    snapshot = controller.begin(registry)
    assert snapshot is not None
    event = await controller.save(snapshot)
    controller.complete(registry, event)

    assert not event.ok
    assert isinstance(event.error, StoreWriteError)
    assert not registry.is_saving
    assert not registry.is_dirty  # no automatic retry

    # The next mutation retries immediately.
    recording_store.fail_with = None
    registry.create("b")
    snapshot = controller.begin(registry)
    assert snapshot is not None
    controller.complete(registry, await controller.save(snapshot))
    assert [t.name for t in recording_store.last] == ["a", "b"]


@pytest.mark.asyncio
async def test_load_degrades_to_empty(recording_store: RecordingStore) -> None:
    controller = PersistenceController(recording_store)

    missing = await controller.load()
    assert missing.tasks == []
    assert isinstance(missing.error, LoadError)

    recording_store.load_error = StoreFormatError("garbage")
    bad = await controller.load()
    assert bad.tasks == []
    assert isinstance(bad.error, StoreFormatError)


def test_flush_ignores_cooldown_and_dirtiness(
    recording_store: RecordingStore, registry: TaskRegistry, monotonic: FakeMonotonic
) -> None:
    controller = PersistenceController(recording_store, min_interval=60.0, monotonic=monotonic)
    registry.create("a")
    assert controller.flush(registry)
    assert controller.flush(registry)
    assert len(recording_store.saves) == 2
    assert not registry.is_saving

    recording_store.fail_with = StoreWriteError("read-only")
    assert not controller.flush(registry)
    assert registry.is_dirty
    assert not registry.is_saving
