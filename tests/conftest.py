import pytest

from leakindex.index.memory_index import InMemorySearchIndex


@pytest.fixture()
def memory_index() -> InMemorySearchIndex:
    return InMemorySearchIndex()


@pytest.fixture()
def scenario_dump() -> bytes:
    """Four-line dump: three addresses and one line without an email."""
    return b"a@foo.com:pw1\nno-email-here\nb@foo.com:pw2\nc@bar.com:pw3\n"
