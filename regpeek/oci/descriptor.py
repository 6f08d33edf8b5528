from pydantic import BaseModel


class Descriptor(BaseModel):
    """
    ref: https://github.com/opencontainers/image-spec/blob/main/descriptor.md

    Registries are not always strict about the fields they send,
    all of them default to empty so decoding never trips over a missing one.
    """

    digest: str = ""
    size: int = 0
    mediaType: str = ""
    urls: list[str] | None = None
    annotations: dict[str, str] | None = None
    artifactType: str | None = None
