"""Resolve references to descriptors and fetch their content

`RegistryResolver` and `Fetcher` describe what the inspection operations need
from a registry, `Resolver` implements them on top of the registry HTTP API.
"""
from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from hashlib import sha256
from typing import BinaryIO, ContextManager, Iterator, Protocol

import httpx

from regpeek.config import DEFAULT_TIMEOUT
from regpeek.oci.client import Client
from regpeek.oci.descriptor import Descriptor
from regpeek.oci.errors import (
    AuthenticationError,
    FetchFailure,
    ResolveFailure,
)
from regpeek.oci.media_types import ACCEPT, OCI_INDEX, OCI_MANIFEST, is_index, is_manifest
from regpeek.oci.reference import Reference, parse_reference
from regpeek.oci.routing import HostRouting

logger = logging.getLogger(__name__)

# Content types some registries answer with instead of the manifest media type
_GENERIC_CONTENT_TYPES = ("", "application/json", "text/plain", "application/octet-stream")


class Fetcher(Protocol):
    def fetch(self, descriptor: Descriptor) -> ContextManager[BinaryIO]:
        """Open the content of `descriptor`, released when the context exits"""


class RegistryResolver(Protocol):
    def resolve(self, ref: str) -> tuple[str, Descriptor]:
        """Resolve `ref` to its canonical name and descriptor"""

    def fetcher(self, name: str) -> Fetcher:
        """Return a fetcher for the repository of a resolved name"""


def _media_type(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip()


def _sniff_media_type(body: bytes) -> str:
    """Guess the media type of a manifest document without one in the headers"""
    try:
        document = json.loads(body)
    except ValueError:
        return ""
    if not isinstance(document, dict):
        return ""
    if isinstance(document.get("mediaType"), str) and document["mediaType"]:
        return document["mediaType"]
    if "manifests" in document:
        return OCI_INDEX
    if "config" in document:
        return OCI_MANIFEST
    return ""


class RegistryFetcher:
    """Fetch content from one repository"""

    def __init__(self, client: Client, repository: str):
        self.client = client
        self.repository = repository

    @contextmanager
    def fetch(self, descriptor: Descriptor) -> Iterator[httpx.Response]:
        headers = {}
        if is_manifest(descriptor.mediaType) or is_index(descriptor.mediaType):
            uri = f"/v2/{self.repository}/manifests/{descriptor.digest}"
            headers["Accept"] = descriptor.mediaType
        else:
            uri = f"/v2/{self.repository}/blobs/{descriptor.digest}"
        logger.debug("Fetching %s%s", self.client.registry_url, uri)
        try:
            with self.client.stream("GET", uri, headers=headers) as response:
                if not response.is_success:
                    raise FetchFailure(
                        f"Fetching {descriptor.digest} from {self.repository} "
                        f"failed: {response.status_code}"
                    )
                yield response
        except (AuthenticationError, httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchFailure(
                f"Fetching {descriptor.digest} from {self.repository} failed: {e}"
            ) from e


class Resolver:
    """Resolve references against the registries they point at.

    One `Client` is kept per routed registry host, close the resolver to
    release them.
    """

    def __init__(
        self,
        routing: HostRouting,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.routing = routing
        self.timeout = timeout
        self.transport = transport
        self._clients: dict[str, Client] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        for client in self._clients.values():
            client.close()
        self._clients.clear()

    def client(self, domain: str) -> Client:
        if domain not in self._clients:
            self._clients[domain] = Client(
                self.routing.route(domain),
                timeout=self.timeout,
                transport=self.transport,
            )
        return self._clients[domain]

    def resolve(self, ref: str) -> tuple[str, Descriptor]:
        reference = parse_reference(ref)
        if not reference.name:
            raise ResolveFailure(f"{ref!r} does not name a repository")
        client = self.client(reference.domain)
        uri = f"/v2/{reference.repository}/manifests/{reference.object}"
        headers = {"Accept": ACCEPT}
        logger.debug("Resolving %s at %s%s", ref, client.registry_url, uri)
        try:
            response = client.head(uri, headers=headers)
            descriptor = None
            if response.status_code == 404:
                raise ResolveFailure(f"{ref} not found")
            if response.status_code != 405:
                response.raise_for_status()
                descriptor = self._from_headers(response, reference)
            if descriptor is None:
                response = client.get(uri, headers=headers)
                if response.status_code == 404:
                    raise ResolveFailure(f"{ref} not found")
                response.raise_for_status()
                descriptor = self._from_body(response, reference)
        except (AuthenticationError, httpx.HTTPError, httpx.InvalidURL) as e:
            raise ResolveFailure(f"Resolving {ref} failed: {e}") from e
        logger.debug("Resolved %s to %s (%s)", ref, descriptor.digest, descriptor.mediaType)
        return str(reference), descriptor

    @staticmethod
    def _from_headers(
        response: httpx.Response, reference: Reference
    ) -> Descriptor | None:
        """Build the descriptor from a HEAD response, None when it is incomplete"""
        media_type = _media_type(response.headers.get("Content-Type"))
        digest = response.headers.get("Docker-Content-Digest") or reference.digest
        size = response.headers.get("Content-Length", "")
        if media_type in _GENERIC_CONTENT_TYPES or not digest:
            return None
        # Header values can hold non-ASCII digits int() does not take
        if not (size.isascii() and size.isdigit()):
            return None
        return Descriptor(mediaType=media_type, digest=digest, size=int(size))

    @staticmethod
    def _from_body(response: httpx.Response, reference: Reference) -> Descriptor:
        body = response.content
        media_type = _media_type(response.headers.get("Content-Type"))
        if media_type in _GENERIC_CONTENT_TYPES:
            media_type = _sniff_media_type(body)
        digest = (
            reference.digest
            or response.headers.get("Docker-Content-Digest")
            or f"sha256:{sha256(body).hexdigest()}"
        )
        return Descriptor(mediaType=media_type, digest=digest, size=len(body))

    def fetcher(self, name: str) -> RegistryFetcher:
        reference = parse_reference(name)
        if not reference.name:
            raise FetchFailure(f"{name!r} does not name a repository")
        return RegistryFetcher(self.client(reference.domain), reference.repository)
