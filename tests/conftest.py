import pytest

from mongots.errors import CollectionFetchError, DocumentDecodeError


class FakeSource:
    """In-memory document source. Exceptions in a record list fail decoding."""

    def __init__(self, collections, failing=()):
        self.collections = collections
        self.failing = set(failing)

    def list_collections(self):
        return sorted(set(self.collections) | self.failing)

    def records(self, collection):
        if collection in self.failing:
            raise CollectionFetchError(collection, "connection reset")
        yield from self.collections.get(collection, [])

    def decode(self, record):
        if isinstance(record, Exception):
            raise DocumentDecodeError(str(record))
        return record


@pytest.fixture
def users_documents():
    return [
        {"name": "Al", "age": 30},
        {"name": "Bo"},
        {"name": "Cy", "age": 31, "active": True},
    ]
