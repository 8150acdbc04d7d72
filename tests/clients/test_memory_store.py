"""Tests for InMemoryDocumentStore."""

import threading

from clients.memory_store import InMemoryDocumentStore
from core.store import Query


class TestCrud:

    def test_create_assigns_id_and_get_returns_copy(self):
        store = InMemoryDocumentStore()
        doc_id = store.create("c", {"a": 1, "nested": {"b": 2}})

        doc = store.get("c", doc_id)
        doc.data["nested"]["b"] = 99

        assert doc.id == doc_id
        assert store.get("c", doc_id).data == {"a": 1, "nested": {"b": 2}}

    def test_caller_mutation_after_create_does_not_leak(self):
        store = InMemoryDocumentStore()
        data = {"items": [1]}
        doc_id = store.create("c", data)

        data["items"].append(2)

        assert store.get("c", doc_id).data == {"items": [1]}

    def test_get_missing_returns_none(self):
        assert InMemoryDocumentStore().get("c", "nope") is None

    def test_update_merges_top_level_fields(self):
        store = InMemoryDocumentStore()
        doc_id = store.create("c", {"a": 1, "b": 2})

        assert store.update("c", doc_id, {"b": 3, "c": 4}) is True
        assert store.get("c", doc_id).data == {"a": 1, "b": 3, "c": 4}

    def test_update_missing_returns_false(self):
        assert InMemoryDocumentStore().update("c", "nope", {"a": 1}) is False

    def test_delete(self):
        store = InMemoryDocumentStore()
        doc_id = store.create("c", {})

        assert store.delete("c", doc_id) is True
        assert store.get("c", doc_id) is None
        assert store.delete("c", doc_id) is False


class TestQuery:

    def test_equality_filter(self):
        store = InMemoryDocumentStore()
        store.create("c", {"owner": "a", "n": 1})
        store.create("c", {"owner": "b", "n": 2})

        docs = store.query(Query("c", where={"owner": "a"}))

        assert [d.data["n"] for d in docs] == [1]

    def test_order_and_limit(self):
        store = InMemoryDocumentStore()
        for ts in ["2024-01-02", "2024-01-03", "2024-01-01"]:
            store.create("c", {"created_at": ts})

        docs = store.query(Query("c", order_by="created_at", descending=True, limit=2))

        assert [d.data["created_at"] for d in docs] == ["2024-01-03", "2024-01-02"]

    def test_ties_broken_by_insertion_order(self):
        store = InMemoryDocumentStore()
        first = store.create("c", {"created_at": "same"})
        second = store.create("c", {"created_at": "same"})

        newest_first = store.query(Query("c", order_by="created_at", descending=True))
        oldest_first = store.query(Query("c", order_by="created_at"))

        assert [d.id for d in newest_first] == [second, first]
        assert [d.id for d in oldest_first] == [first, second]

    def test_missing_order_value_sorts_last_when_descending(self):
        store = InMemoryDocumentStore()
        store.create("c", {"n": "x"})
        store.create("c", {"created_at": "2024-01-01", "n": "y"})

        docs = store.query(Query("c", order_by="created_at", descending=True))

        assert [d.data["n"] for d in docs] == ["y", "x"]

    def test_unknown_collection_is_empty(self):
        assert InMemoryDocumentStore().query(Query("nothing")) == []


class TestIncrement:

    def test_starts_at_one(self):
        assert InMemoryDocumentStore().increment("counters", "k") == 1

    def test_floor_raises_counter(self):
        store = InMemoryDocumentStore()
        store.increment("counters", "k")

        assert store.increment("counters", "k", floor=10) == 11
        assert store.increment("counters", "k", floor=3) == 12

    def test_concurrent_increments_are_distinct(self):
        store = InMemoryDocumentStore()
        values = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                value = store.increment("counters", "k")
                with lock:
                    values.append(value)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(values) == list(range(1, 201))


class TestWatch:

    def test_listener_can_write_back_into_store(self):
        """Listeners run outside the store lock."""
        store = InMemoryDocumentStore()
        seen = []

        def listener(docs):
            seen.append(len(docs))
            if len(docs) == 1:
                store.create("other", {"mirrored": True})

        store.watch(Query("c"), listener)
        store.create("c", {})

        assert seen == [0, 1]
        assert len(store.query(Query("other"))) == 1

    def test_release_detaches_listener(self):
        store = InMemoryDocumentStore()
        seen = []
        release = store.watch(Query("c"), seen.append)

        release()
        release()
        store.create("c", {})

        assert len(seen) == 1

    def test_other_collections_do_not_notify(self):
        store = InMemoryDocumentStore()
        seen = []
        store.watch(Query("c"), seen.append)

        store.create("other", {})

        assert len(seen) == 1

    def test_failing_listener_does_not_break_the_write(self, caplog):
        store = InMemoryDocumentStore()

        def listener(docs):
            if docs:
                raise RuntimeError("listener broke")

        store.watch(Query("c"), listener)
        doc_id = store.create("c", {"a": 1})

        assert store.get("c", doc_id) is not None
        assert "listener broke" in caplog.text


class TestAddToFields:

    def test_adds_deltas_and_merges_fields(self):
        store = InMemoryDocumentStore()
        doc_id = store.create("customers", {"total_invoices": 2, "total_amount": 50.0})

        doc = store.add_to_fields(
            "customers", doc_id, {"total_invoices": 1, "total_amount": 25.5}, {"updated_at": "t2"},
        )

        assert doc.data == {"total_invoices": 3, "total_amount": 75.5, "updated_at": "t2"}
        assert store.get("customers", doc_id).data == doc.data

    def test_missing_field_counts_as_zero(self):
        store = InMemoryDocumentStore()
        doc_id = store.create("customers", {})

        assert store.add_to_fields("customers", doc_id, {"total_invoices": -1}).data == {"total_invoices": -1}

    def test_missing_document_returns_none(self):
        assert InMemoryDocumentStore().add_to_fields("customers", "nope", {"n": 1}) is None

    def test_concurrent_adds_are_not_lost(self):
        store = InMemoryDocumentStore()
        doc_id = store.create("customers", {"total_invoices": 0})

        def worker():
            for _ in range(50):
                store.add_to_fields("customers", doc_id, {"total_invoices": 1})

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get("customers", doc_id).data["total_invoices"] == 200


class TestUpsert:

    def test_creates_under_given_id(self):
        store = InMemoryDocumentStore()

        doc = store.upsert("settings", "user-a", {"currency": "ZAR"})

        assert doc.id == "user-a"
        assert store.get("settings", "user-a").data == {"currency": "ZAR"}

    def test_merges_into_existing(self):
        store = InMemoryDocumentStore()
        store.upsert("settings", "user-a", {"currency": "ZAR", "theme": "light"})

        doc = store.upsert("settings", "user-a", {"theme": "dark"})

        assert doc.data == {"currency": "ZAR", "theme": "dark"}

    def test_notifies_watchers(self):
        store = InMemoryDocumentStore()
        snapshots = []
        store.watch(Query("settings"), snapshots.append)

        store.upsert("settings", "user-a", {"theme": "dark"})

        assert [d.id for d in snapshots[-1]] == ["user-a"]
