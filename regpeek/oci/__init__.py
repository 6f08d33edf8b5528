"""Read-only inspection of images on an OCI registry

Both operations are a best-effort fast path: any failure gives an
inconclusive (empty) result, which means "assume it is not up to date".
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from regpeek.config import Config
from regpeek.oci.cache import DigestCache, default_cache
from regpeek.oci.errors import InspectionError, UnsupportedMediaType
from regpeek.oci.index import decode_index
from regpeek.oci.manifest import decode_manifest
from regpeek.oci.media_types import is_index, is_manifest
from regpeek.oci.reference import normalize_reference
from regpeek.oci.resolver import RegistryResolver, Resolver
from regpeek.oci.routing import HostRouting

logger = logging.getLogger(__name__)


@contextmanager
def _open_resolver(
    resolver: RegistryResolver | None,
    username: str | None,
    password: str | None,
) -> Iterator[RegistryResolver]:
    """Use the given resolver, or one built from the environment for this call"""
    if resolver is not None:
        yield resolver
        return
    config = Config()
    routing = HostRouting.from_config(config, username=username, password=password)
    with Resolver(routing, timeout=config.TIMEOUT) as owned:
        yield owned


def get_image_id(
    image: str,
    username: str | None = None,
    password: str | None = None,
    *,
    resolver: RegistryResolver | None = None,
    cache: DigestCache | None = None,
) -> str:
    """Return the config digest (image id) of `image`, or "" when inconclusive

    `image` must not point at a manifest list, those are not unwrapped.
    """
    cache = default_cache if cache is None else cache
    try:
        return _get_image_id(image, username, password, resolver, cache)
    except InspectionError as e:
        logger.debug("No image id for %s, %s: %s", image, e.__class__.__name__, e)
        return ""


def _get_image_id(image, username, password, resolver, cache: DigestCache) -> str:
    ref = normalize_reference(image)
    with _open_resolver(resolver, username, password) as resolver:
        name, descriptor = resolver.resolve(ref)
        if not is_manifest(descriptor.mediaType):
            raise UnsupportedMediaType(descriptor.mediaType)

        if (image_id := cache.get_image_id(descriptor.digest)) is not None:
            logger.debug("Image id of %s served from cache", descriptor.digest)
            return image_id

        with resolver.fetcher(name).fetch(descriptor) as stream:
            image_id = decode_manifest(stream)
    return cache.add_image_id(descriptor.digest, image_id)


def get_manifest_list_digests(
    image: str,
    username: str | None = None,
    password: str | None = None,
    *,
    resolver: RegistryResolver | None = None,
    cache: DigestCache | None = None,
) -> list[str]:
    """Return the per-platform manifest digests of `image`, or [] when inconclusive

    When `image` is a single manifest the result is a list holding
    just its own digest.
    """
    cache = default_cache if cache is None else cache
    try:
        return _get_manifest_list_digests(image, username, password, resolver, cache)
    except InspectionError as e:
        logger.debug(
            "No manifest list digests for %s, %s: %s", image, e.__class__.__name__, e
        )
        return []


def _get_manifest_list_digests(
    image, username, password, resolver, cache: DigestCache
) -> list[str]:
    ref = normalize_reference(image)
    with _open_resolver(resolver, username, password) as resolver:
        name, descriptor = resolver.resolve(ref)
        if is_manifest(descriptor.mediaType):
            return [descriptor.digest]
        if not is_index(descriptor.mediaType):
            raise UnsupportedMediaType(descriptor.mediaType)

        if (digests := cache.get_manifest_list(descriptor.digest)) is not None:
            logger.debug("Manifest list %s served from cache", descriptor.digest)
            return digests

        with resolver.fetcher(name).fetch(descriptor) as stream:
            digests = decode_index(stream)
    # An empty list is returned but not cached, the next call fetches again
    return cache.add_manifest_list(descriptor.digest, digests)
