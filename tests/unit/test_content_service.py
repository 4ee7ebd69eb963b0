import pytest

from docvault.ai.summarizer import SummaryResult
from docvault.core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from docvault.models import ContentField, ContentSource, DocumentStatus, Group
from docvault.processing.extractor import TextExtractor
from docvault.services.content import ContentService
from tests.stubs import StubAIClient


def _service(store, storage, ai_client=None):
    return ContentService(store, storage, TextExtractor(), ai_client or StubAIClient())


async def _ready_document(add_document):
    return await add_document(
        status=DocumentStatus.READY,
        summary="Old summary",
        markdown="# Old",
        ai_model="model-a",
    )


@pytest.mark.asyncio
async def test_update_summary_marks_only_summary_user_modified(store, storage, add_document):
    document = await _ready_document(add_document)

    updated = await _service(store, storage).update_content(document.id, summary="Edited")

    assert updated.summary == "Edited"
    assert updated.summary_source == ContentSource.USER_MODIFIED
    assert updated.markdown == "# Old"
    assert updated.markdown_source == ContentSource.AI_GENERATED


@pytest.mark.asyncio
async def test_empty_string_clears_field(store, storage, add_document):
    document = await _ready_document(add_document)

    updated = await _service(store, storage).update_content(document.id, markdown="")

    assert updated.markdown is None
    assert updated.markdown_source == ContentSource.USER_MODIFIED


@pytest.mark.asyncio
async def test_update_requires_a_field(store, storage, add_document):
    document = await _ready_document(add_document)
    with pytest.raises(ValidationError):
        await _service(store, storage).update_content(document.id)


@pytest.mark.asyncio
async def test_update_missing_document(store, storage):
    with pytest.raises(NotFoundError):
        await _service(store, storage).update_content("nope", summary="x")


@pytest.mark.asyncio
async def test_regenerate_touches_only_the_target_field(store, storage, add_document):
    document = await _ready_document(add_document)
    await _service(store, storage).update_content(document.id, summary="Hand written")
    ai_client = StubAIClient(SummaryResult(summary="New summary", markdown="# New", model="model-b"))

    regenerated = await _service(store, storage, ai_client).regenerate(document.id, ContentField.MARKDOWN)

    assert ai_client.calls == [("Hello world", "notes.txt")]
    assert regenerated.markdown == "# New"
    assert regenerated.markdown_source == ContentSource.AI_GENERATED
    assert regenerated.summary == "Hand written"
    assert regenerated.summary_source == ContentSource.USER_MODIFIED
    assert regenerated.ai_model == "model-a"


@pytest.mark.asyncio
async def test_regenerate_summary_after_user_edit(store, storage, add_document):
    document = await _ready_document(add_document)
    service = _service(store, storage, StubAIClient(SummaryResult("Fresh", "# Fresh", "model-b")))
    await service.update_content(document.id, summary="Mine")

    regenerated = await service.regenerate(document.id, ContentField.SUMMARY)

    assert regenerated.summary == "Fresh"
    assert regenerated.summary_source == ContentSource.AI_GENERATED
    assert regenerated.markdown == "# Old"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [DocumentStatus.UPLOADED, DocumentStatus.PROCESSING, DocumentStatus.FAILED])
async def test_regenerate_requires_ready(store, storage, add_document, status):
    document = await add_document(status=status)
    with pytest.raises(ConflictError):
        await _service(store, storage).regenerate(document.id, ContentField.SUMMARY)


@pytest.mark.asyncio
async def test_regenerate_propagates_storage_errors(store, storage, add_document):
    document = await add_document(content=None, status=DocumentStatus.READY)
    with pytest.raises(StorageError):
        await _service(store, storage).regenerate(document.id, ContentField.SUMMARY)


@pytest.mark.asyncio
async def test_delete_removes_file_row_and_memberships(store, storage, add_document):
    document = await _ready_document(add_document)
    group = await store.insert_group(Group(name="Finance"))
    await store.add_membership(document.id, group.id)

    await _service(store, storage).delete_document(document.id)

    assert storage.deleted == [document.storage_path]
    assert document.storage_path not in storage.files
    assert await store.get_document(document.id) is None
    assert await store.list_group_documents(group.id) == []


@pytest.mark.asyncio
async def test_delete_continues_when_blob_delete_fails(store, storage, add_document):
    document = await _ready_document(add_document)
    storage.delete_error = StorageError("bucket unavailable")

    await _service(store, storage).delete_document(document.id)

    assert await store.get_document(document.id) is None


@pytest.mark.asyncio
async def test_delete_missing_document(store, storage):
    with pytest.raises(NotFoundError):
        await _service(store, storage).delete_document("nope")
