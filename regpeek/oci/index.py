import logging
from typing import BinaryIO

from pydantic import BaseModel, Field, ValidationError

from regpeek.oci.descriptor import Descriptor
from regpeek.oci.errors import DecodeFailure

logger = logging.getLogger(__name__)


class Platform(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/image-index.md
    """

    architecture: str = ""
    os: str = ""
    osVersion: str | None = Field(default=None, alias="os.version")
    osFeatures: list[str] | None = Field(default=None, alias="os.features")
    variant: str | None = None


class PlatformDescriptor(Descriptor):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/image-index.md
    """

    platform: Platform | None = None


class Index(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/image-index.md
    ref: https://distribution.github.io/distribution/spec/manifest-v2-2/#manifest-list
    """

    artifactType: str | None = None
    manifests: list[PlatformDescriptor] | None = None
    subject: Descriptor | None = None
    annotations: dict[str, str] | None = None
    schemaVersion: int = 2
    mediaType: str | None = None

    @property
    def digests(self) -> list[str]:
        """Child manifest digests in the order the index lists them"""
        return [m.digest for m in self.manifests or [] if m.digest]


def decode_index(stream: BinaryIO) -> list[str]:
    """Decode a multi-platform index and return its child manifest digests.

    Entries without a digest are skipped, the order is kept as published
    (usually the primary platform first) and duplicates are not removed.
    """
    try:
        index = Index.model_validate_json(stream.read())
    except ValidationError as e:
        raise DecodeFailure(f"Invalid index: {e}") from e
    digests = index.digests
    logger.debug("Decoded index with %d manifest digest(s)", len(digests))
    return digests
