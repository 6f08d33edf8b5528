import io
from contextlib import contextmanager
from pathlib import Path

import pytest

from regpeek.oci.cache import DigestCache
from regpeek.oci.descriptor import Descriptor
from regpeek.oci.errors import FetchFailure, ResolveFailure

TEST_DATA = Path(__file__).parent / "testdata"


@pytest.fixture
def testdata() -> Path:
    """Return the testdata dir for this module"""
    return TEST_DATA


@pytest.fixture
def cache() -> DigestCache:
    """A cache of our own, the process-wide one is left alone"""
    return DigestCache()


@pytest.fixture(autouse=True)
def no_proxy(monkeypatch):
    monkeypatch.delenv("DOCKERHUB_PUBLIC_PROXY", raising=False)


class FakeRegistry:
    """In-memory registry that records what it is asked for"""

    def __init__(self):
        self.references: dict[str, Descriptor] = {}
        self.content: dict[str, bytes] = {}
        self.resolved: list[str] = []
        self.fetched: list[str] = []
        self.released = 0

    def add(self, ref: str, media_type: str, digest: str, body: bytes = b"") -> Descriptor:
        descriptor = Descriptor(mediaType=media_type, digest=digest, size=len(body))
        self.references[ref] = descriptor
        self.content[digest] = body
        return descriptor

    def resolve(self, ref: str) -> tuple[str, Descriptor]:
        self.resolved.append(ref)
        if ref not in self.references:
            raise ResolveFailure(f"{ref} not found")
        return ref, self.references[ref]

    def fetcher(self, name: str):
        return self

    @contextmanager
    def fetch(self, descriptor: Descriptor):
        self.fetched.append(descriptor.digest)
        if descriptor.digest not in self.content:
            raise FetchFailure(f"{descriptor.digest} not found")
        try:
            yield io.BytesIO(self.content[descriptor.digest])
        finally:
            self.released += 1


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()
