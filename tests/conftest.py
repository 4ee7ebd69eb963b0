import pytest

from docvault.models import Document
from tests.stubs import RecordingStore, SleepRecorder, StubStorage


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def storage():
    return StubStorage()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def add_document(store, storage):
    """Insert a document row and, unless `content` is None, its backing file."""

    async def factory(name="notes.txt", content=b"Hello world", **fields):
        path = f"docs/{name}"
        if content is not None:
            storage.files[path] = content
        return await store.insert_document(Document(name=name, storage_path=path, **fields))

    return factory
