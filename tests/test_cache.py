import threading

from regpeek.oci.cache import DigestCache, DigestMap


def test_digest_map_first_writer_wins():
    digests = DigestMap()
    assert digests.add("sha256:a", "first") == "first"
    assert digests.add("sha256:a", "second") == "first"
    assert digests.get("sha256:a") == "first"
    assert digests.get("sha256:b") is None
    assert "sha256:a" in digests
    assert len(digests) == 1


def test_empty_results_are_not_cached():
    cache = DigestCache()
    assert cache.add_image_id("sha256:m", "") == ""
    assert cache.add_manifest_list("sha256:i", []) == []
    assert cache.get_image_id("sha256:m") is None
    assert cache.get_manifest_list("sha256:i") is None


def test_manifest_list_is_copied():
    cache = DigestCache()
    digests = cache.add_manifest_list("sha256:i", ["sha256:a", "sha256:b"])
    digests.append("sha256:c")
    cached = cache.get_manifest_list("sha256:i")
    cached.clear()
    assert cache.get_manifest_list("sha256:i") == ["sha256:a", "sha256:b"]


def test_caches_are_independent():
    cache = DigestCache()
    cache.add_image_id("sha256:x", "sha256:config")
    assert cache.get_manifest_list("sha256:x") is None


def test_concurrent_adds():
    cache = DigestCache()
    barrier = threading.Barrier(8)

    def worker(n):
        barrier.wait()
        for i in range(200):
            cache.add_image_id(f"sha256:{i}", f"sha256:config-{i}")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(cache.image_ids) == 200
    assert cache.get_image_id("sha256:42") == "sha256:config-42"


def test_clear():
    cache = DigestCache()
    cache.add_image_id("sha256:m", "sha256:config")
    cache.add_manifest_list("sha256:i", ["sha256:a"])
    cache.clear()
    assert len(cache.image_ids) == 0
    assert len(cache.manifest_lists) == 0
