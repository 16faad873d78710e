import pytest

from leakindex.database.repositories.activity_repository import SEARCH, ActivityRepository
from leakindex.database.repositories.document_repository import DocumentRepository
from leakindex.exceptions import DocumentNotFoundError
from leakindex.ingestion.models import DocumentPatch, IngestionStatus, NewDocument


def _new_document(owner_id: int, content_hash: str = "e" * 64) -> NewDocument:
    return NewDocument(
        original_name="combo.txt",
        stored_name="1735689600000-0a1b2c3d-combo.txt",
        size_bytes=52,
        owner_id=owner_id,
        content_hash=content_hash,
    )


@pytest.mark.integration
class TestDocumentRepositoryRoundTrip:
    def test_register_then_find(
        self,
        doc_repo: DocumentRepository,
        owner_id: int,
        integration_cleanup: list[tuple[str, int]],
    ) -> None:
        document = doc_repo.register(_new_document(owner_id))
        integration_cleanup.append(("documents", document.id))

        found = doc_repo.find_by_id(document.id)

        assert found == document
        assert found.ingestion_status is IngestionStatus.PENDING
        assert found.uploaded_at is not None

    def test_find_by_id_raises_when_not_found(self, doc_repo: DocumentRepository) -> None:
        with pytest.raises(DocumentNotFoundError, match="-1 not found"):
            doc_repo.find_by_id(-1)

    def test_find_by_hash_returns_earliest(
        self,
        doc_repo: DocumentRepository,
        owner_id: int,
        integration_cleanup: list[tuple[str, int]],
    ) -> None:
        content_hash = f"{owner_id:064d}"
        first = doc_repo.register(_new_document(owner_id, content_hash))
        second = doc_repo.register(_new_document(owner_id, content_hash))
        integration_cleanup.extend([("documents", first.id), ("documents", second.id)])

        found = doc_repo.find_by_hash(content_hash)

        assert found is not None
        assert found.id == first.id

    def test_apply_patch_leaves_unset_fields(
        self,
        doc_repo: DocumentRepository,
        owner_id: int,
        integration_cleanup: list[tuple[str, int]],
    ) -> None:
        document = doc_repo.register(_new_document(owner_id))
        integration_cleanup.append(("documents", document.id))
        doc_repo.apply_patch(document.id, DocumentPatch(indexed_count=5, failed_count=1))

        updated = doc_repo.apply_patch(
            document.id, DocumentPatch(ingestion_status=IngestionStatus.PARTIAL)
        )

        assert updated.ingestion_status is IngestionStatus.PARTIAL
        assert updated.indexed_count == 5
        assert updated.failed_count == 1

    def test_list_scoped_to_owner(
        self,
        doc_repo: DocumentRepository,
        owner_id: int,
        integration_cleanup: list[tuple[str, int]],
    ) -> None:
        ids = []
        for _ in range(3):
            document = doc_repo.register(_new_document(owner_id))
            integration_cleanup.append(("documents", document.id))
            ids.append(document.id)

        page = doc_repo.list(page=1, page_size=2, owner_scope=owner_id)

        assert page.total == 3
        assert page.total_pages == 2
        assert [d.id for d in page.items] == sorted(ids, reverse=True)[:2]


@pytest.mark.integration
class TestActivityRepository:
    def test_record_and_count(self, activity_repo: ActivityRepository, owner_id: int) -> None:
        before = activity_repo.count_by_action(SEARCH)

        activity_repo.record(SEARCH, owner_id=owner_id, details={"domain": "x.test", "results": 0})

        assert activity_repo.count_by_action(SEARCH) == before + 1
        page = activity_repo.list(page=1, page_size=50)
        assert page.total >= 1
        mine = [e for e in page.items if e.owner_id == owner_id]
        assert mine[0].details == {"domain": "x.test", "results": 0}
