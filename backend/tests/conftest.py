# backend/tests/conftest.py

import copy
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient
from pymongo import ReturnDocument
from pymongo.errors import ServerSelectionTimeoutError

from ems.db import mongo
from ems.main import app
from ems.realtime.hub import hub


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    return all(doc.get(k) == v for k, v in query.items())


def _apply_update(doc: Dict[str, Any], update: Dict[str, Any]) -> None:
    for key, value in update.get("$set", {}).items():
        doc[key] = value
    for key, value in update.get("$inc", {}).items():
        doc[key] = doc.get(key, 0) + value


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    """
    In-memory stand-in for a Motor collection, covering only the calls
    ems.crud makes. Filters are plain equality matches.
    """

    def __init__(self):
        self.docs: List[Dict[str, Any]] = []

    async def insert_one(self, doc):
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    async def find_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query):
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query)])

    async def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                _apply_update(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def find_one_and_update(self, query, update, return_document=ReturnDocument.BEFORE):
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                _apply_update(doc, update)
                return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before
        return None

    async def delete_one(self, query):
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())

    async def command(self, name: str):
        return {"ok": 1}


class FailingCollection:
    async def _fail(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers available")

    insert_one = find_one = update_one = find_one_and_update = delete_one = _fail

    def find(self, query):
        raise ServerSelectionTimeoutError("no servers available")


class FailingDatabase:
    def __getitem__(self, name: str):
        return FailingCollection()

    async def command(self, name: str):
        raise ServerSelectionTimeoutError("no servers available")



@pytest.fixture(autouse=True)
def fresh_hub():
    hub.reset()
    yield hub
    hub.reset()


@pytest.fixture()
def db(monkeypatch) -> FakeDatabase:
    fake = FakeDatabase()
    monkeypatch.setattr(mongo, "db", fake)
    return fake


@pytest.fixture()
def client(db) -> TestClient:
    # not entered as a context manager: the lifespan would connect to a real MongoDB
    return TestClient(app)


def _register(client: TestClient, email: str, role: str = "employee", first_name: str = "Test") -> dict:
    response = client.post("/api/users/register", json={
        "first_name": first_name,
        "last_name": "User",
        "email": email,
        "password": "secret123",
        "role": role,
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return {
        "id": body["user"]["id"],
        "token": body["token"],
        "headers": {"Authorization": f"Bearer {body['token']}"},
    }


@pytest.fixture()
def admin(client) -> dict:
    return _register(client, "admin@example.com", role="admin", first_name="Ada")


@pytest.fixture()
def employee(client) -> dict:
    return _register(client, "emp1@example.com", first_name="Emil")


@pytest.fixture()
def register(client):
    def _do(email: str, role: str = "employee") -> dict:
        return _register(client, email, role=role)
    return _do


@pytest.fixture()
def failing_client(monkeypatch) -> TestClient:
    monkeypatch.setattr(mongo, "db", FailingDatabase())
    return TestClient(app)
