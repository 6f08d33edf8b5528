import logging
from typing import BinaryIO

from pydantic import BaseModel, ValidationError

from regpeek.oci.descriptor import Descriptor
from regpeek.oci.errors import DecodeFailure

logger = logging.getLogger(__name__)


class Manifest(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/manifest.md
    ref: https://distribution.github.io/distribution/spec/manifest-v2-2/#image-manifest
    """

    config: Descriptor | None = None
    artifactType: str | None = None
    layers: list[Descriptor] | None = None
    subject: Descriptor | None = None
    annotations: dict[str, str] | None = None

    mediaType: str | None = None
    schemaVersion: int = 2


def decode_manifest(stream: BinaryIO) -> str:
    """Decode a single-platform manifest and return its config digest.

    The config digest is what `docker images` reports as the image id.
    """
    try:
        manifest = Manifest.model_validate_json(stream.read())
    except ValidationError as e:
        raise DecodeFailure(f"Invalid manifest: {e}") from e
    if manifest.config is None or not manifest.config.digest:
        raise DecodeFailure("Manifest has no config digest")
    logger.debug("Decoded manifest, config digest: %s", manifest.config.digest)
    return manifest.config.digest
