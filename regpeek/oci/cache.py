"""Content addressed caches for inspection results

Entries are keyed by the digest of the manifest or index that was fetched.
A digest always names the same bytes, so an entry never goes stale and is
never updated or evicted.
"""
import threading
from typing import Generic, TypeVar

V = TypeVar("V")


class DigestMap(Generic[V]):
    """Append-only, thread-safe map from digest to value"""

    def __init__(self):
        self._lock = threading.Lock()
        self._data: dict[str, V] = {}

    def __len__(self):
        with self._lock:
            return len(self._data)

    def __contains__(self, digest: str):
        with self._lock:
            return digest in self._data

    def get(self, digest: str) -> V | None:
        with self._lock:
            return self._data.get(digest)

    def add(self, digest: str, value: V) -> V:
        """Store `value` unless `digest` is already present, return the stored value"""
        with self._lock:
            return self._data.setdefault(digest, value)

    def clear(self):
        with self._lock:
            self._data.clear()


class DigestCache:
    """The caches used by the inspection operations

    image_ids: manifest digest -> config digest
    manifest_lists: index digest -> child manifest digests
    """

    def __init__(self):
        self.image_ids: DigestMap[str] = DigestMap()
        self.manifest_lists: DigestMap[tuple[str, ...]] = DigestMap()

    def get_image_id(self, digest: str) -> str | None:
        return self.image_ids.get(digest)

    def add_image_id(self, digest: str, image_id: str) -> str:
        if not image_id:
            return image_id
        return self.image_ids.add(digest, image_id)

    def get_manifest_list(self, digest: str) -> list[str] | None:
        digests = self.manifest_lists.get(digest)
        if digests is None:
            return None
        return list(digests)

    def add_manifest_list(self, digest: str, digests: list[str]) -> list[str]:
        if not digests:
            return digests
        return list(self.manifest_lists.add(digest, tuple(digests)))

    def clear(self):
        """Drop every entry, only meant for tests"""
        self.image_ids.clear()
        self.manifest_lists.clear()


# Shared by every operation that is not handed a cache of its own
default_cache = DigestCache()
