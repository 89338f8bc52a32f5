from __future__ import annotations

import threading
import time

import pytest

from yips.tools.staging import FileChangeStore, hash_content


def _stage(store: FileChangeStore, path: str = "/work/a.txt", before: str = "old", after: str = "new"):
    return store.create_preview(
        operation="write_file",
        absolute_path=path,
        before=before,
        after=after,
        diff_preview="diff",
    )


def test_preview_fields() -> None:
    store = FileChangeStore(ttl_seconds=60)

    preview = _stage(store)

    assert preview.token
    assert preview.content_hash_before == hash_content("old")
    assert preview.expires_at - preview.created_at == pytest.approx(60)
    assert preview.expires_at_iso.endswith("+00:00")
    assert len(store) == 1


def test_tokens_are_unique() -> None:
    store = FileChangeStore()

    tokens = {_stage(store).token for _ in range(20)}

    assert len(tokens) == 20


def test_get_does_not_consume() -> None:
    store = FileChangeStore()
    preview = _stage(store)

    assert store.get(preview.token) == preview
    assert store.get(preview.token) == preview
    assert len(store) == 1


def test_consume_is_single_use() -> None:
    store = FileChangeStore()
    preview = _stage(store)

    assert store.consume(preview.token) == preview
    assert store.consume(preview.token) is None
    assert store.get(preview.token) is None


def test_unknown_token() -> None:
    assert FileChangeStore().consume("missing") is None


def test_expired_previews_are_dropped() -> None:
    store = FileChangeStore(ttl_seconds=0.005)
    preview = _stage(store)

    time.sleep(0.02)

    assert store.get(preview.token) is None
    assert store.consume(preview.token) is None
    assert len(store) == 0


def test_cleanup_expired() -> None:
    store = FileChangeStore(ttl_seconds=0.005)
    _stage(store)
    time.sleep(0.02)

    store.cleanup_expired()

    assert len(store) == 0


def test_oldest_entries_are_evicted() -> None:
    store = FileChangeStore(max_entries=2)
    first = _stage(store, "/work/1")
    second = _stage(store, "/work/2")
    third = _stage(store, "/work/3")

    assert len(store) == 2
    assert store.get(first.token) is None
    assert store.get(second.token) == second
    assert store.get(third.token) == third


def test_concurrent_consume_resolves_once() -> None:
    store = FileChangeStore()
    preview = _stage(store)
    barrier = threading.Barrier(8)
    winners: list[object] = []

    def worker() -> None:
        barrier.wait()
        result = store.consume(preview.token)
        if result is not None:
            winners.append(result)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert winners == [preview]
