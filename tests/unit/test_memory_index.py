from leakindex.index.base import CONFLICT_REASON
from leakindex.index.memory_index import InMemorySearchIndex

from tests.helpers import make_record


class TestBulkWrite:
    def test_reports_written_ids(self, memory_index: InMemorySearchIndex) -> None:
        result = memory_index.bulk_write([make_record("r1"), make_record("r2")])

        assert result.indexed_ids == ["r1", "r2"]
        assert result.failures == []

    def test_existing_id_is_a_conflict_and_not_overwritten(
        self, memory_index: InMemorySearchIndex
    ) -> None:
        memory_index.bulk_write([make_record("r1", "foo.com")])

        result = memory_index.bulk_write([make_record("r1", "bar.com")])

        assert result.indexed_ids == []
        assert result.failures[0].reason == CONFLICT_REASON
        assert memory_index.query("foo.com", None, 0, 10).total == 1
        assert memory_index.query("bar.com", None, 0, 10).total == 0


class TestQuery:
    def test_matches_domain_exactly_and_case_insensitively(
        self, memory_index: InMemorySearchIndex
    ) -> None:
        memory_index.bulk_write(
            [
                make_record("r1", "example.com"),
                make_record("r2", "Example.COM"),
                make_record("r3", "sub.example.com"),
                make_record("r4", "example.co"),
            ]
        )

        result = memory_index.query("EXAMPLE.com", None, 0, 10)

        assert result.total == 2
        assert {r.record_id for r in result.records} == {"r1", "r2"}

    def test_owner_filter(self, memory_index: InMemorySearchIndex) -> None:
        memory_index.bulk_write(
            [make_record("r1", owner_id=1), make_record("r2", owner_id=2)]
        )

        assert [r.record_id for r in memory_index.query("foo.com", 2, 0, 10).records] == ["r2"]
        assert memory_index.query("foo.com", None, 0, 10).total == 2

    def test_orders_by_time_document_line_then_id(
        self, memory_index: InMemorySearchIndex
    ) -> None:
        memory_index.bulk_write(
            [
                make_record("z", seconds=0, document_id=2, line_number=1),
                make_record("b", seconds=0, document_id=1, line_number=2),
                make_record("a", seconds=0, document_id=1, line_number=2),
                make_record("c", seconds=0, document_id=1, line_number=1),
                make_record("early", seconds=-5, document_id=9, line_number=9),
            ]
        )

        ids = [r.record_id for r in memory_index.query("foo.com", None, 0, 10).records]

        assert ids == ["early", "c", "a", "b", "z"]

    def test_offset_and_limit(self, memory_index: InMemorySearchIndex) -> None:
        memory_index.bulk_write([make_record(f"r{i}", line_number=i) for i in range(5)])

        result = memory_index.query("foo.com", None, offset=3, limit=10)

        assert [r.record_id for r in result.records] == ["r3", "r4"]
        assert result.total == 5

    def test_count_for_document(self, memory_index: InMemorySearchIndex) -> None:
        memory_index.bulk_write(
            [make_record("r1", document_id=1), make_record("r2", document_id=2)]
        )

        assert memory_index.count_for_document(1) == 1
        assert memory_index.count_for_document(3) == 0
