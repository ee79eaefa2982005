"""
Unit tests for the concurrent in-memory article store.
"""

from __future__ import annotations

import threading
import unittest
from datetime import datetime, timedelta, timezone

from article_store import (
    Article,
    ArticleNotFoundError,
    ArticleStore,
    ArticleUpdate,
    Snapshot,
    ValidationError,
)


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self) -> None:
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class ArticleStoreTest(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.store = ArticleStore(clock=self.clock)

    def test_ids_are_distinct_and_increasing(self) -> None:
        ids = [self.store.create(f"T{index}", "d", "c").id for index in range(20)]
        self.assertEqual(list(range(1, 21)), ids)

    def test_ids_are_never_reused(self) -> None:
        first = self.store.create("A", "d", "c")
        second = self.store.create("B", "d", "c")
        self.assertEqual((1, 2), (first.id, second.id))

        self.assertTrue(self.store.delete(1))
        third = self.store.create("C", "d", "c")

        self.assertEqual(3, third.id)
        self.assertEqual(
            [(2, "B"), (3, "C")],
            [(article.id, article.title) for article in self.store.list()],
        )

    def test_create_stamps_equal_timestamps(self) -> None:
        article = self.store.create("Title", "Desc", "Body")
        self.assertEqual(article.created_at, article.updated_at)
        self.assertEqual(self.clock.current, article.created_at)

    def test_create_rejects_empty_fields(self) -> None:
        for args in (("", "d", "c"), ("t", "", "c"), ("t", "d", "")):
            with self.subTest(args=args):
                with self.assertRaises(ValidationError):
                    self.store.create(*args)
        self.assertEqual([], self.store.list())
        self.assertEqual(1, self.store.create("t", "d", "c").id)

    def test_create_accepts_whitespace_fields(self) -> None:
        article = self.store.create("   ", "\t", "\n")
        self.assertEqual(("   ", "\t", "\n"), (article.title, article.description, article.content))

    def test_get_returns_copy(self) -> None:
        created = self.store.create("Title", "Desc", "Body")
        fetched = self.store.get(created.id)
        fetched.title = "mutated"
        self.assertEqual("Title", self.store.get(created.id).title)

    def test_get_missing_raises(self) -> None:
        with self.assertRaises(ArticleNotFoundError) as ctx:
            self.store.get(42)
        self.assertEqual(42, ctx.exception.article_id)

    def test_update_only_replaces_provided_fields(self) -> None:
        created = self.store.create("Title", "Desc", "Body")
        updated = self.store.update(created.id, ArticleUpdate(title="New title"))

        self.assertEqual("New title", updated.title)
        self.assertEqual("Desc", updated.description)
        self.assertEqual("Body", updated.content)
        self.assertEqual(created.created_at, updated.created_at)
        self.assertGreater(updated.updated_at, created.updated_at)

    def test_update_without_fields_refreshes_timestamp(self) -> None:
        created = self.store.create("Title", "Desc", "Body")
        updated = self.store.update(created.id, ArticleUpdate())
        self.assertEqual(("Title", "Desc", "Body"), (updated.title, updated.description, updated.content))
        self.assertGreater(updated.updated_at, created.updated_at)

    def test_update_empty_value_keeps_field(self) -> None:
        created = self.store.create("Title", "Desc", "Body")
        updated = self.store.update(created.id, ArticleUpdate(title="", description="New desc"))

        self.assertEqual("Title", updated.title)
        self.assertEqual("New desc", updated.description)
        self.assertEqual("Body", updated.content)
        self.assertGreater(updated.updated_at, created.updated_at)
        self.assertEqual(updated, self.store.get(created.id))

    def test_update_missing_raises(self) -> None:
        with self.assertRaises(ArticleNotFoundError):
            self.store.update(7, ArticleUpdate(title="x"))

    def test_delete_then_get(self) -> None:
        created = self.store.create("Title", "Desc", "Body")
        self.assertTrue(self.store.delete(created.id))
        with self.assertRaises(ArticleNotFoundError):
            self.store.get(created.id)

    def test_delete_missing_leaves_collection_unchanged(self) -> None:
        self.store.create("A", "d", "c")
        before = self.store.list()
        self.assertFalse(self.store.delete(99))
        self.assertEqual(before, self.store.list())

    def test_list_preserves_insertion_order(self) -> None:
        for title in "ABCDE":
            self.store.create(title, "d", "c")
        self.store.delete(2)
        self.store.delete(4)
        self.store.create("F", "d", "c")
        self.assertEqual(["A", "C", "E", "F"], [article.title for article in self.store.list()])

    def test_listeners_fire_on_committed_mutations_only(self) -> None:
        calls: list[int] = []
        self.store.add_listener(lambda: calls.append(self.store.count()))

        created = self.store.create("A", "d", "c")
        self.store.update(created.id, ArticleUpdate(title="B"))
        self.assertFalse(self.store.delete(99))
        with self.assertRaises(ValidationError):
            self.store.create("", "d", "c")
        with self.assertRaises(ArticleNotFoundError):
            self.store.update(99, ArticleUpdate(title="x"))
        self.assertTrue(self.store.delete(created.id))

        self.assertEqual([1, 1, 0], calls)

    def test_failing_listener_does_not_fail_mutation(self) -> None:
        def broken() -> None:
            raise RuntimeError("boom")

        self.store.add_listener(broken)
        with self.assertLogs("article_store.store", level="ERROR"):
            created = self.store.create("A", "d", "c")
        self.assertEqual(created, self.store.get(created.id))

    def test_snapshot_round_trip_through_store(self) -> None:
        for title in "ABC":
            self.store.create(title, "d", "c")
        self.store.delete(3)
        snapshot = self.store.create_snapshot()

        restored = ArticleStore(clock=self.clock)
        restored.load_snapshot(snapshot)

        self.assertEqual(snapshot, restored.create_snapshot())
        self.assertEqual(4, restored.create("D", "d", "c").id)

    def test_load_snapshot_repairs_stale_counter(self) -> None:
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        article = Article(5, "t", "d", "c", now, now)
        self.store.load_snapshot(Snapshot(articles=(article,), next_id=2))
        self.assertEqual(6, self.store.create("n", "d", "c").id)

    def test_snapshot_is_disconnected_from_store(self) -> None:
        created = self.store.create("A", "d", "c")
        snapshot = self.store.create_snapshot()
        self.store.update(created.id, ArticleUpdate(title="B"))
        self.assertEqual("A", snapshot.articles[0].title)

    def test_concurrent_creates_produce_unique_ids(self) -> None:
        store = ArticleStore()
        per_thread = 50
        results: list[list[int]] = []
        results_lock = threading.Lock()
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            ids = [store.create("t", "d", "c").id for _ in range(per_thread)]
            with results_lock:
                results.append(ids)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10.0)

        all_ids = [article_id for ids in results for article_id in ids]
        self.assertEqual(8 * per_thread, len(set(all_ids)))
        for ids in results:
            self.assertEqual(sorted(ids), ids)
        self.assertEqual(8 * per_thread, store.count())

    def test_concurrent_readers_and_writers(self) -> None:
        store = ArticleStore()
        stop = threading.Event()
        errors: list[BaseException] = []

        def reader() -> None:
            while not stop.is_set():
                try:
                    ids = [article.id for article in store.list()]
                    if ids != sorted(ids) or len(ids) != len(set(ids)):
                        raise AssertionError(f"inconsistent listing: {ids}")
                except BaseException as exc:  # noqa: BLE001 - surfaced by the assertion below
                    errors.append(exc)
                    return

        def writer() -> None:
            for _ in range(200):
                created = store.create("t", "d", "c")
                store.update(created.id, ArticleUpdate(content="x"))
                if created.id % 2 == 0:
                    store.delete(created.id)

        readers = [threading.Thread(target=reader) for _ in range(4)]
        writers = [threading.Thread(target=writer) for _ in range(2)]
        for thread in readers + writers:
            thread.start()
        for thread in writers:
            thread.join(timeout=20.0)
        stop.set()
        for thread in readers:
            thread.join(timeout=5.0)

        self.assertEqual([], errors)


if __name__ == "__main__":
    unittest.main()
