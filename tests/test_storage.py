import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.services.storage import EphemeralFileStore


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path, clock):
    return EphemeralFileStore(tmp_path / "uploads", ttl_seconds=60, sweep_interval=10, clock=clock)


def test_save_then_lookup_returns_identical_file(store):
    data = b"%PDF-1.4 fake resume bytes \x00\xff"
    stored = store.save(data, "My Resume.PDF")

    path = store.lookup(stored.id)

    assert path == stored.path
    assert path.read_bytes() == data
    assert path.suffix == ".pdf"
    assert path.parent == store.base_path


def test_save_sets_expiry_in_future(store, clock):
    stored = store.save(b"x", "resume.docx")
    assert stored.expires_at == clock.now + 60


def test_repeated_saves_get_distinct_ids(store):
    ids = {store.save(b"x", "resume.docx").id for _ in range(50)}
    assert len(ids) == 50
    assert len(store) == 50


def test_lookup_unknown_id_returns_none(store):
    assert store.lookup("does-not-exist") is None


def test_lookup_slides_expiry(store, clock):
    stored = store.save(b"x", "resume.pdf")
    clock.now += 50
    store.lookup(stored.id)

    clock.now += 50  # 100s after save, 50s after the lookup
    assert store.sweep() == 0
    assert stored.id in store


def test_delete_removes_file_and_record(store):
    stored = store.save(b"x", "resume.pdf")

    assert store.delete(stored.id) is True
    assert not stored.path.exists()
    assert store.lookup(stored.id) is None
    assert store.delete(stored.id) is False


def test_delete_tolerates_file_missing_from_disk(store, caplog):
    stored = store.save(b"x", "resume.pdf")
    stored.path.unlink()

    assert store.delete(stored.id) is True
    assert stored.id not in store
    assert "already missing" in caplog.text


def test_sweep_removes_only_expired_entries(store, clock):
    old = store.save(b"old", "old.pdf")
    clock.now += 45
    fresh = store.save(b"fresh", "fresh.pdf")
    clock.now += 30  # old expired 15s ago, fresh has 15s left

    assert store.sweep() == 1

    assert old.id not in store
    assert not old.path.exists()
    assert fresh.id in store
    assert fresh.path.read_bytes() == b"fresh"


def test_delete_after_sweep_returns_false(store, clock):
    stored = store.save(b"x", "resume.pdf")
    clock.now += 120
    store.sweep()

    assert store.delete(stored.id) is False


def lock_file(monkeypatch, locked_path):
    """Make unlink fail with PermissionError for one path"""
    path_type = type(locked_path)
    original_unlink = path_type.unlink

    def flaky_unlink(self, missing_ok=False):
        if self == locked_path:
            raise PermissionError("locked")
        return original_unlink(self, missing_ok=missing_ok)

    monkeypatch.setattr(path_type, "unlink", flaky_unlink)
    return lambda: monkeypatch.setattr(path_type, "unlink", original_unlink)


def test_sweep_keeps_entry_when_unlink_fails_and_retries(store, clock, monkeypatch):
    first = store.save(b"a", "a.pdf")
    second = store.save(b"b", "b.pdf")
    clock.now += 120
    unlock = lock_file(monkeypatch, first.path)

    assert store.sweep() == 1
    assert first.id in store
    assert first.path.exists()
    assert second.id not in store
    assert not second.path.exists()

    unlock()
    assert store.sweep() == 1
    assert len(store) == 0
    assert not first.path.exists()


def test_delete_failure_keeps_record_and_does_not_raise(store, clock, monkeypatch, caplog):
    stored = store.save(b"x", "resume.pdf")
    unlock = lock_file(monkeypatch, stored.path)

    assert store.delete(stored.id) is False
    assert stored.id in store
    assert stored.path.exists()
    assert "Failed to delete file" in caplog.text

    unlock()
    clock.now += 120
    assert store.sweep() == 1
    assert not stored.path.exists()


def test_hold_cleanup_failure_does_not_replace_result(store, monkeypatch):
    def locked_everywhere(self, missing_ok=False):
        raise PermissionError("locked")

    with store.hold(b"x", "resume.docx") as stored:
        monkeypatch.setattr(type(stored.path), "unlink", locked_everywhere)
        result = "analysis done"

    assert result == "analysis done"
    assert stored.id in store


def test_failed_write_leaves_no_orphan_file(store, monkeypatch):
    real_open = open

    class FullDisk:
        def __init__(self, path, mode):
            self.handle = real_open(path, mode)

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            self.handle.close()

        def write(self, data):
            self.handle.write(data[:1])
            raise OSError(28, "No space left on device")

    monkeypatch.setattr("app.services.storage.open", FullDisk, raising=False)

    with pytest.raises(OSError):
        store.save(b"resume bytes", "resume.pdf")

    assert list(store.base_path.iterdir()) == []
    assert len(store) == 0


def test_store_is_safe_under_concurrent_use(store, clock):
    def worker(n):
        ids = []
        for i in range(20):
            stored = store.save(f"{n}-{i}".encode(), f"r{n}-{i}.pdf")
            ids.append(stored.id)
            assert store.lookup(stored.id) == stored.path
            if i % 2:
                assert store.delete(stored.id) is True
            if i % 5 == 0:
                store.sweep()
        return ids

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(worker, range(8)))

    all_ids = [file_id for ids in results for file_id in ids]
    assert len(set(all_ids)) == len(all_ids) == 160

    on_disk = {p.stem for p in store.base_path.iterdir()}
    kept = {file_id for file_id in all_ids if file_id in store}
    assert len(kept) == 80
    assert on_disk == kept

    clock.now += 120
    assert store.sweep() == 80
    assert list(store.base_path.iterdir()) == []


def test_hold_deletes_on_success_and_error(store):
    with store.hold(b"x", "resume.docx") as stored:
        assert stored.path.exists()
    assert not stored.path.exists()
    assert len(store) == 0

    with pytest.raises(RuntimeError):
        with store.hold(b"x", "resume.docx") as stored:
            raise RuntimeError("extraction failed")
    assert not stored.path.exists()
    assert len(store) == 0


def test_purge_removes_everything(store):
    paths = [store.save(b"x", f"r{i}.pdf").path for i in range(3)]

    assert store.purge() == 3
    assert len(store) == 0
    assert not any(p.exists() for p in paths)


def test_background_loop_sweeps_expired_files(tmp_path, clock):
    store = EphemeralFileStore(tmp_path, ttl_seconds=1, sweep_interval=0.01, clock=clock)

    async def scenario():
        stored = store.save(b"x", "resume.pdf")
        clock.now += 5
        store.start()
        assert store.running
        for _ in range(200):
            if stored.id not in store:
                break
            await asyncio.sleep(0.01)
        await store.stop()
        return stored

    stored = asyncio.run(scenario())

    assert stored.id not in store
    assert not stored.path.exists()
    assert store.running is False
