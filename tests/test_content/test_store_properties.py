"""Randomized operation sequences checking the partition map invariants."""

import random

import pytest

from labsite.content.record import UNCATEGORIZED
from labsite.content.schemas import CategorySchema
from labsite.content.store import PartitionedContentStore
from labsite.core.errors import RemoteUnavailable

from fakes import FakeRemote

SCHEMAS = {
    "events": CategorySchema(name="events", label="Events", required=("title",)),
    "blogs": CategorySchema(name="blogs", label="Blogs", required=("title",)),
}
CURRENT_YEAR = "2024"
YEARS = ["2021", "2022", "2023", "2024", 2019, 2025, "", "  "]


def effective(year) -> str:
    return str(year).strip() or UNCATEGORIZED


class Model:
    """Store plus the id -> (category, year) placement it should have."""

    def __init__(self):
        self.remote = FakeRemote()
        self.store = PartitionedContentStore(
            self.remote, schemas=SCHEMAS, year_provider=lambda: CURRENT_YEAR
        )
        self.expected: dict[str, tuple[str, str]] = {}

    def add(self, rng):
        category = rng.choice(sorted(SCHEMAS))
        fields = {"title": f"t{rng.randrange(1000)}"}
        if rng.random() < 0.7:
            fields["year"] = rng.choice(YEARS)
        record = self.store.add(category, fields)

        year = effective(fields["year"]) if "year" in fields else CURRENT_YEAR
        assert record.year == year
        assert self.store.records(category, year)[-1].id == record.id
        self.expected[record.id] = (category, year)

    def update(self, rng):
        record_id = rng.choice(sorted(self.expected))
        category, old_year = self.expected[record_id]
        raw = rng.choice(YEARS)
        new_year = effective(raw)
        position = [r.id for r in self.store.records(category, old_year)].index(record_id)
        untouched = {
            y: b for y, b in self.store.partition(category).items() if y not in (old_year, new_year)
        }

        self.store.update(category, record_id, {"title": "edited", "year": raw})

        if new_year == old_year:
            assert self.store.records(category, old_year)[position].id == record_id
        else:
            assert self.store.records(category, new_year)[-1].id == record_id
        assert self.remote.collections[category][record_id]["year"] == new_year
        partition = self.store.partition(category)
        assert {y: b for y, b in partition.items() if y not in (old_year, new_year)} == untouched
        self.expected[record_id] = (category, new_year)

    def remove(self, rng):
        record_id = rng.choice(sorted(self.expected))
        category, year = self.expected.pop(record_id)
        self.store.remove(category, record_id, year)
        assert self.store.get(category, record_id) is None

    def failing_write(self, rng):
        op = rng.choice(["create", "update", "delete"])
        before = self.store.snapshot()
        self.remote.fail_on.add(op)
        try:
            with pytest.raises(RemoteUnavailable):
                if op == "create" or not self.expected:
                    self.remote.fail_on.add("create")
                    self.store.add("events", {"title": "x", "year": "2020"})
                else:
                    record_id = rng.choice(sorted(self.expected))
                    category, year = self.expected[record_id]
                    if op == "update":
                        self.store.update(category, record_id, {"year": "1999"})
                    else:
                        self.store.remove(category, record_id, year)
        finally:
            self.remote.fail_on.clear()
        assert self.store.snapshot() == before

    def check(self):
        for category in SCHEMAS:
            seen = [r.id for bucket in self.store.partition(category).values() for r in bucket]
            # each id sits in exactly one bucket
            assert len(seen) == len(set(seen))
            assert set(seen) == {i for i, (c, _) in self.expected.items() if c == category}
            # no empty buckets survive
            for year in self.store.years(category):
                assert self.store.records(category, year)
        for record_id, (category, year) in self.expected.items():
            assert record_id in [r.id for r in self.store.records(category, year)]


@pytest.mark.parametrize("seed", range(40))
def test_random_operation_sequence(seed):
    rng = random.Random(seed)
    model = Model()

    for _ in range(60):
        if not model.expected:
            action = rng.choice([model.add, model.failing_write])
        else:
            action = rng.choice([model.add, model.add, model.update, model.update, model.remove, model.failing_write])
        action(rng)
        model.check()
