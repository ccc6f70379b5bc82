import copy
import itertools

import pytest

from app import create_app
from config import TestConfig
from errors import NetworkError
from repository import BaseRepository, Query


class FakeRepository(BaseRepository):
    """In-memory store with the referential behaviour of the hosted tables.

    Deleting a project deletes its activities; deleting a project or an
    activity clears the matching reference on beneficiaries.
    """

    def __init__(self, data=None):
        self.tables = {name: [] for name in ("projects", "activities", "beneficiaries", "indicators", "partners")}
        self.failing = set()
        self.calls = []
        self._ids = itertools.count(1)
        for name, rows in (data or {}).items():
            for row in rows:
                self.insert(name, row)

    def insert(self, collection, row):
        row = dict(row)
        row.setdefault("id", str(next(self._ids)))
        self.tables[collection].append(row)
        return row

    def _check(self, collection):
        if collection in self.failing:
            raise NetworkError(f"Network error while contacting the data store ({collection}).")

    def list(self, collection, query=None):
        self.calls.append(("list", collection))
        self._check(collection)
        return copy.deepcopy((query or Query()).apply(self.tables[collection]))

    def create(self, collection, record):
        self.calls.append(("create", collection))
        self._check(collection)
        return copy.deepcopy(self.insert(collection, record))

    def update(self, collection, record_id, patch):
        self.calls.append(("update", collection))
        self._check(collection)
        for row in self.tables[collection]:
            if row["id"] == str(record_id):
                row.update(patch)
                return copy.deepcopy(row)
        return None

    def delete(self, collection, record_id):
        self.calls.append(("delete", collection))
        self._check(collection)
        record_id = str(record_id)
        self.tables[collection] = [r for r in self.tables[collection] if r["id"] != record_id]
        if collection == "projects":
            self.tables["activities"] = [
                r for r in self.tables["activities"] if r.get("project_id") != record_id
            ]
            self._clear_reference("project_id", record_id)
        elif collection == "activities":
            self._clear_reference("activity_id", record_id)
        return True

    def _clear_reference(self, name, record_id):
        for row in self.tables["beneficiaries"]:
            if row.get(name) == record_id:
                row[name] = None

    def writes(self):
        return [c for c in self.calls if c[0] != "list"]


SAMPLE = {
    "projects": [
        {"id": "p1", "name": "Youth Skills", "responsible": "A. Diallo", "start_date": "2024-01-01",
         "end_date": "2024-12-31", "planned_budget": 10000, "realized_budget": 5000,
         "status": "active", "progress": 40, "created_at": "2024-01-01T00:00:00"},
        {"id": "p2", "name": "Women Network", "responsible": "F. Sow", "start_date": "2024-02-01",
         "end_date": "2024-11-30", "planned_budget": 20000, "realized_budget": 18000,
         "status": "completed", "progress": 100, "created_at": "2024-02-01T00:00:00"},
    ],
    "activities": [
        {"id": "a1", "name": "Sewing training", "project_id": "p1", "type": "training",
         "activity_date": "2024-03-10", "location": "Dakar", "beneficiary_count": 20,
         "status": "done", "latitude": 14.7, "longitude": -17.4},
        {"id": "a2", "name": "Digital training", "project_id": "p1", "type": "training",
         "activity_date": "2024-04-02", "location": "Thies", "beneficiary_count": 15,
         "status": "done", "latitude": 14.8, "longitude": -16.9},
        {"id": "a3", "name": "Leadership workshop", "project_id": "p2", "type": "workshop",
         "activity_date": "2024-05-20", "location": "Saint-Louis", "beneficiary_count": 30,
         "status": "planned"},
    ],
    "beneficiaries": [
        {"id": "b1", "code_name": "BEN-001", "sex": "F", "age": 24, "category": "women",
         "project_id": "p1", "activity_id": "a1", "status": "graduated", "enrollment_date": "2024-03-10"},
        {"id": "b2", "code_name": "BEN-002", "sex": "M", "age": 19, "category": "youth",
         "project_id": "p1", "activity_id": "a2", "status": "active", "enrollment_date": "2024-04-02"},
        {"id": "b3", "code_name": "BEN-003", "sex": "F", "age": 41, "category": "women",
         "project_id": "p2", "status": "active", "enrollment_date": "2024-05-20"},
    ],
    "indicators": [
        {"id": "i1", "code": "trained", "name": "People trained", "unit": "people", "target": 50},
    ],
    "partners": [
        {"id": "pa1", "name": "City Council", "type": "public", "email": "contact@city.example"},
    ],
}


@pytest.fixture
def repository():
    return FakeRepository(copy.deepcopy(SAMPLE))


@pytest.fixture
def empty_repository():
    return FakeRepository()


@pytest.fixture
def notices():
    return []


@pytest.fixture
def notifier(notices):
    def notify(message, category="info"):
        notices.append((category, message))
    return notify


@pytest.fixture
def app(repository):
    app = create_app(TestConfig, repository=repository)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def console(app):
    return app.extensions["console"]
