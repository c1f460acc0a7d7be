"""Tests for labsite.content.store module."""

import dataclasses
import threading

import pytest

from labsite.content.record import UNCATEGORIZED
from labsite.content.schemas import CategorySchema
from labsite.content.store import PartitionedContentStore, StoreEvent, year_sort_key
from labsite.content.tabs import Focused, Listing, TabController
from labsite.core.errors import InvalidRecord, NotFound, RemoteUnavailable

from fakes import FakeRemote, make_event

TITLE_ONLY = {"events": CategorySchema(name="events", label="Events", required=("title",))}


def ids(store, category, year):
    return [record.id for record in store.records(category, year)]


@pytest.fixture
def loose_store(fake_remote):
    """Store whose events only require a title."""
    return PartitionedContentStore(fake_remote, schemas=TITLE_ONLY, year_provider=lambda: "2025")


# ---------------------------------------------------------------------------
# year_sort_key
# ---------------------------------------------------------------------------


class TestYearOrder:
    """Tests for year display order."""

    def test_numeric_years_descending(self):
        labels = ["2019", "2024", "2021"]
        assert sorted(labels, key=year_sort_key, reverse=True) == ["2024", "2021", "2019"]

    def test_numeric_by_value_not_string(self):
        labels = ["999", "2024"]
        assert sorted(labels, key=year_sort_key, reverse=True) == ["2024", "999"]

    def test_superscript_digit_is_a_label(self):
        assert sorted(["²", "2024"], key=year_sort_key, reverse=True) == ["2024", "²"]

    def test_years_with_non_decimal_digit_label(self, store):
        store.add("events", make_event("A", year="²"))
        store.add("events", make_event("B", year="2023"))
        assert store.years("events") == ["2023", "²"]
        assert [r.title for r in store.records("events")] == ["B", "A"]

    def test_labels_after_years(self):
        labels = [UNCATEGORIZED, "2023", "Archive", "2024"]
        assert sorted(labels, key=year_sort_key, reverse=True) == [
            "2024",
            "2023",
            UNCATEGORIZED,
            "Archive",
        ]


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------


class TestAdd:
    """Tests for PartitionedContentStore.add."""

    def test_files_under_given_year(self, store, fake_remote):
        record = store.add("events", make_event(year="2023"))

        assert record.year == "2023"
        assert ids(store, "events", "2023") == [record.id]
        assert fake_remote.collections["events"][record.id]["year"] == "2023"

    def test_integer_year_is_string(self, store):
        record = store.add("events", make_event(year=2022))
        assert record.year == "2022"
        assert store.years("events") == ["2022"]

    def test_omitted_year_is_current_year(self, store):
        record = store.add("events", make_event())
        assert record.year == "2024"

    @pytest.mark.parametrize("year", ["", "   ", None])
    def test_empty_year_is_uncategorized(self, store, year):
        record = store.add("events", make_event(year=year))
        assert record.year == UNCATEGORIZED
        assert store.years("events") == [UNCATEGORIZED]

    def test_appends_to_existing_bucket(self, store):
        first = store.add("events", make_event("A", year="2023"))
        second = store.add("events", make_event("B", year="2023"))
        assert ids(store, "events", "2023") == [first.id, second.id]

    def test_missing_required_field_makes_no_remote_call(self, store, fake_remote):
        fields = make_event()
        del fields["location"]

        with pytest.raises(InvalidRecord) as exc_info:
            store.add("events", fields)

        assert any("location" in message for message in exc_info.value.errors)
        assert fake_remote.writes() == []
        assert store.snapshot() == {}

    def test_wrong_type_rejected(self, store, fake_remote):
        with pytest.raises(InvalidRecord):
            store.add("events", make_event(capacity=-5))
        assert fake_remote.writes() == []

    def test_unknown_category(self, store, fake_remote):
        with pytest.raises(InvalidRecord):
            store.add("recipes", {"title": "Soup"})
        assert fake_remote.calls == []

    def test_bad_year_type_rejected(self, store, fake_remote):
        with pytest.raises(InvalidRecord):
            store.add("events", make_event(year=["2024"]))
        assert fake_remote.writes() == []

    def test_remote_failure_leaves_map(self, store, fake_remote):
        store.add("events", make_event("A", year="2023"))
        before = store.snapshot()
        fake_remote.fail_on.add("create")

        with pytest.raises(RemoteUnavailable):
            store.add("events", make_event("B", year="2023"))

        assert store.snapshot() == before

    def test_unexpected_client_error_wrapped(self, store, fake_remote, monkeypatch):
        def boom(collection, fields):
            raise ConnectionResetError("reset by peer")

        monkeypatch.setattr(fake_remote, "create", boom)
        with pytest.raises(RemoteUnavailable):
            store.add("events", make_event())
        assert store.snapshot() == {}

    def test_caller_fields_not_aliased(self, store):
        fields = make_event(tags=["a"])
        record = store.add("events", fields)
        fields["tags"].append("b")
        assert record.get("tags") == ["a"]


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


class TestUpdate:
    """Tests for PartitionedContentStore.update."""

    def test_same_year_keeps_position(self, store):
        a = store.add("events", make_event("A", year="2023"))
        b = store.add("events", make_event("B", year="2023"))
        c = store.add("events", make_event("C", year="2023"))
        other = store.add("events", make_event("D", year="2022"))
        before_other = store.partition("events")["2022"]

        updated = store.update("events", b.id, {"title": "B2", "year": "2023"})

        assert ids(store, "events", "2023") == [a.id, b.id, c.id]
        assert store.records("events", "2023")[1].title == "B2"
        assert updated.year == "2023"
        assert store.partition("events")["2022"] == before_other
        assert store.get("events", other.id) is not None

    def test_without_year_keeps_year(self, store):
        a = store.add("events", make_event("A", year="2023"))
        updated = store.update("events", a.id, {"title": "A2"})
        assert updated.year == "2023"

    def test_move_appends_to_new_bucket(self, store, fake_remote):
        a = store.add("events", make_event("A", year="2023"))
        b = store.add("events", make_event("B", year="2024"))

        store.update("events", a.id, {"year": "2024"})

        assert "2023" not in store.years("events")
        assert ids(store, "events", "2024") == [b.id, a.id]
        assert fake_remote.collections["events"][a.id]["year"] == "2024"

    def test_move_keeps_other_records_in_old_bucket(self, store):
        a = store.add("events", make_event("A", year="2023"))
        b = store.add("events", make_event("B", year="2023"))

        store.update("events", a.id, {"year": "2021"})

        assert ids(store, "events", "2023") == [b.id]
        assert ids(store, "events", "2021") == [a.id]

    def test_move_out_of_uncategorized_prunes(self, store):
        record = store.add("events", make_event(year=""))
        assert store.years("events") == [UNCATEGORIZED]

        store.update("events", record.id, {"year": "2020"})

        assert store.years("events") == ["2020"]

    def test_merges_fields(self, store, fake_remote):
        a = store.add("events", make_event("A", year="2023", capacity=20))
        updated = store.update("events", a.id, {"registered": 5})

        assert updated.get("capacity") == 20
        assert updated.get("registered") == 5
        assert fake_remote.collections["events"][a.id]["title"] == "A"

    def test_unknown_id(self, store, fake_remote):
        store.add("events", make_event("A"))
        with pytest.raises(NotFound):
            store.update("events", "nope", {"title": "X"})
        assert [c for c in fake_remote.writes() if c[0] == "update"] == []

    def test_invalid_merge_makes_no_remote_call(self, store, fake_remote):
        a = store.add("events", make_event("A"))
        before = store.snapshot()

        with pytest.raises(InvalidRecord):
            store.update("events", a.id, {"title": "  "})

        assert store.snapshot() == before
        assert [c for c in fake_remote.writes() if c[0] == "update"] == []

    def test_remote_failure_leaves_map(self, store, fake_remote):
        a = store.add("events", make_event("A", year="2023"))
        store.add("events", make_event("B", year="2024"))
        before = store.snapshot()
        fake_remote.fail_on.add("update")

        with pytest.raises(RemoteUnavailable):
            store.update("events", a.id, {"year": "2024", "title": "A2"})

        assert store.snapshot() == before

    def test_remote_not_found_propagates(self, store, fake_remote):
        a = store.add("events", make_event("A"))
        del fake_remote.collections["events"][a.id]
        before = store.snapshot()

        with pytest.raises(NotFound):
            store.update("events", a.id, {"title": "A2"})

        assert store.snapshot() == before


# ---------------------------------------------------------------------------
# remove
# ---------------------------------------------------------------------------


class TestRemove:
    """Tests for PartitionedContentStore.remove."""

    def test_remove_with_year(self, store, fake_remote):
        a = store.add("events", make_event("A", year="2023"))
        b = store.add("events", make_event("B", year="2023"))

        store.remove("events", a.id, "2023")

        assert ids(store, "events", "2023") == [b.id]
        assert a.id not in fake_remote.collections["events"]

    def test_remove_scans_without_year(self, store):
        a = store.add("events", make_event("A", year="2023"))
        store.remove("events", a.id)
        assert store.years("events") == []

    def test_last_record_prunes_bucket(self, store):
        a = store.add("events", make_event("A", year="2023"))
        store.add("events", make_event("B", year="2022"))

        store.remove("events", a.id, "2023")

        assert store.years("events") == ["2022"]

    def test_wrong_year_is_not_found(self, store, fake_remote):
        a = store.add("events", make_event("A", year="2023"))

        with pytest.raises(NotFound):
            store.remove("events", a.id, "2022")

        assert ("delete", "events", a.id) not in fake_remote.calls
        assert store.get("events", a.id) is not None

    def test_unknown_id(self, store):
        with pytest.raises(NotFound):
            store.remove("events", "missing")

    def test_remote_failure_leaves_map(self, store, fake_remote):
        a = store.add("events", make_event("A", year="2023"))
        before = store.snapshot()
        fake_remote.fail_on.add("delete")

        with pytest.raises(RemoteUnavailable):
            store.remove("events", a.id, "2023")

        assert store.snapshot() == before


# ---------------------------------------------------------------------------
# load
# ---------------------------------------------------------------------------


class TestLoad:
    """Tests for PartitionedContentStore.load."""

    def test_groups_by_year(self):
        remote = FakeRemote(
            {
                "events": {
                    "e1": make_event("A", year="2023"),
                    "e2": make_event("B", year=2024),
                    "e3": make_event("C"),
                    "e4": make_event("D", year="2023"),
                }
            }
        )
        store = PartitionedContentStore(remote)

        result = store.load(["events"])

        assert store.years("events") == ["2024", "2023", UNCATEGORIZED]
        assert ids(store, "events", "2023") == ["e1", "e4"]
        assert [r.id for r in result["events"]["2024"]] == ["e2"]

    def test_failure_is_isolated(self):
        remote = FakeRemote(
            {
                "events": {"e1": make_event("A", year="2023")},
                "blogs": {"b1": {"title": "Post", "content": "Hi", "year": "2022"}},
            }
        )
        remote.fail_on.add("fetch_all:events")
        store = PartitionedContentStore(remote)

        result = store.load(["events", "blogs"])

        assert "events" not in result
        assert store.years("blogs") == ["2022"]
        assert store.years("events") == []
        assert isinstance(store.load_errors["events"], RemoteUnavailable)
        assert "blogs" not in store.load_errors

    def test_partial_load_keeps_other_errors(self):
        remote = FakeRemote(
            {
                "events": {"e1": make_event("A", year="2023")},
                "blogs": {"b1": {"title": "Post", "content": "Hi", "year": "2022"}},
            }
        )
        remote.fail_on.add("fetch_all:events")
        store = PartitionedContentStore(remote)
        store.load(["events", "blogs"])

        store.load(["blogs"])

        assert "events" in store.load_errors
        assert "events" not in store.categories()

    def test_successful_reload_clears_error(self):
        remote = FakeRemote({"events": {"e1": make_event("A", year="2023")}})
        remote.fail_on.add("fetch_all:events")
        store = PartitionedContentStore(remote)
        store.load(["events"])
        assert "events" in store.load_errors

        remote.fail_on.clear()
        store.load(["events"])

        assert store.load_errors == {}
        assert store.years("events") == ["2023"]

    def test_failed_reload_drops_stale_partition(self):
        remote = FakeRemote({"events": {"e1": make_event("A", year="2023")}})
        store = PartitionedContentStore(remote)
        store.load(["events"])

        remote.fail_on.add("fetch_all")
        store.load(["events"])

        assert "events" not in store.categories()

    def test_reload_replaces_partition(self):
        remote = FakeRemote({"events": {"e1": make_event("A", year="2023")}})
        store = PartitionedContentStore(remote)
        store.load(["events"])

        remote.collections["events"]["e1"]["year"] = "2021"
        store.load(["events"])

        assert store.years("events") == ["2021"]

    def test_other_categories_untouched(self):
        remote = FakeRemote(
            {
                "events": {"e1": make_event("A", year="2023")},
                "blogs": {"b1": {"title": "Post", "content": "Hi", "year": "2022"}},
            }
        )
        store = PartitionedContentStore(remote)
        store.load(["events", "blogs"])
        del remote.collections["blogs"]

        store.load(["events"])

        assert store.years("blogs") == ["2022"]

    def test_fetches_run_concurrently(self):
        barrier = threading.Barrier(2, timeout=5)

        class BlockingRemote(FakeRemote):
            def fetch_all(self, collection):
                barrier.wait()
                return super().fetch_all(collection)

        store = PartitionedContentStore(BlockingRemote(), workers=2)
        store.load(["events", "blogs"])

        assert store.load_errors == {}

    def test_unknown_category(self, store):
        with pytest.raises(InvalidRecord):
            store.load(["recipes"])

    def test_result_is_a_copy(self):
        remote = FakeRemote({"events": {"e1": make_event("A", year="2023")}})
        store = PartitionedContentStore(remote)
        result = store.load(["events"])

        result["events"]["2023"].clear()

        assert ids(store, "events", "2023") == ["e1"]


# ---------------------------------------------------------------------------
# events
# ---------------------------------------------------------------------------


class TestEvents:
    """Tests for store subscriptions."""

    def test_mutations_emit_events(self, store):
        seen = []
        store.subscribe(seen.append)

        a = store.add("events", make_event("A", year="2023"))
        store.update("events", a.id, {"year": "2024"})
        store.remove("events", a.id)

        assert [e.kind for e in seen] == ["added", "updated", "removed"]
        assert seen[1].old_year == "2023"
        assert seen[1].record.year == "2024"

    def test_failed_mutation_emits_nothing(self, store, fake_remote):
        seen = []
        store.subscribe(seen.append)
        fake_remote.fail_on.add("create")

        with pytest.raises(RemoteUnavailable):
            store.add("events", make_event())

        assert seen == []

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()

        store.add("events", make_event())

        assert seen == []

    def test_load_emits_for_each_category(self, store):
        seen: list[StoreEvent] = []
        store.subscribe(seen.append)

        store.load(["events", "blogs"])

        assert [(e.kind, e.category) for e in seen] == [("loaded", "events"), ("loaded", "blogs")]


# ---------------------------------------------------------------------------
# returned records
# ---------------------------------------------------------------------------


class TestReturnedRecords:
    """Records handed out by the store cannot change the map."""

    def test_records_are_frozen(self, store):
        record = store.add("events", make_event("A", year="2023"))
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.year = "1999"

    def test_field_edits_on_added_record_do_not_leak(self, store):
        record = store.add("events", make_event("A", year="2023"))
        before = store.snapshot()

        record.fields["title"] = "Changed"
        record.fields["year"] = "1999"

        assert store.snapshot() == before
        assert store.years("events") == ["2023"]
        assert store.get("events", record.id).title == "A"

    def test_field_edits_on_read_records_do_not_leak(self, store):
        record = store.add("events", make_event("A", year="2023"))
        before = store.snapshot()

        store.get("events", record.id).fields["title"] = "X"
        store.records("events")[0].fields["title"] = "Y"
        store.records("events", "2023")[0].fields["title"] = "Z"
        store.find("events", record.id)[2].fields["title"] = "W"

        assert store.snapshot() == before

    def test_event_records_are_copies(self, store):
        seen = []
        store.subscribe(seen.append)
        record = store.add("events", make_event("A", year="2023"))
        before = store.snapshot()

        seen[0].record.fields["title"] = "Changed"

        assert store.snapshot() == before
        assert store.get("events", record.id).title == "A"


# ---------------------------------------------------------------------------
# Scenario
# ---------------------------------------------------------------------------


def test_add_move_remove_scenario(loose_store):
    """Walk a record set through add, move and remove."""
    store = loose_store

    a = store.add("events", {"title": "A", "year": "2023"})
    assert store.partition("events") == {"2023": [a]}

    b = store.add("events", {"title": "B"})
    assert ids(store, "events", "2025") == [b.id]

    store.update("events", a.id, {"year": "2025"})
    assert "2023" not in store.years("events")
    assert ids(store, "events", "2025") == [b.id, a.id]

    store.remove("events", b.id)
    assert ids(store, "events", "2025") == [a.id]

    store.remove("events", a.id)
    assert store.years("events") == []
    assert store.partition("events") == {}


def test_remove_unfocuses_bound_tab(store):
    record = store.add("events", make_event("A", year="2023"))
    tabs = TabController(["events", "blogs"], default_category="events")
    tabs.bind(store)
    tabs.focus(record)
    assert isinstance(tabs.state, Focused)

    store.remove("events", record.id, record.year)

    assert tabs.state == Listing("events")


def test_stats(store):
    store.add("events", make_event("A", year="2023"))
    store.add("events", make_event("B", year="2024"))
    store.add("events", make_event("C", year="2024"))

    assert store.stats() == {"events": {"records": 3, "years": 2}}
