"""Image reference parsing

Follows the grammar of the distribution reference package:

    reference := name [ ":" tag ] [ "@" digest ]
    name      := [domain "/"] path-component ["/" path-component]*

ref: https://github.com/distribution/reference/blob/main/reference.go
"""
import re
from dataclasses import dataclass

from regpeek.oci.errors import InvalidReference

DEFAULT_DOMAIN = "docker.io"
LEGACY_DEFAULT_DOMAIN = "index.docker.io"
OFFICIAL_REPOSITORY_NAMESPACE = "library"
DEFAULT_TAG = "latest"
NAME_TOTAL_LENGTH_MAX = 255

DOMAIN_COMPONENT_PATTERN = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
IPV6_PATTERN = r"\[(?:[a-fA-F0-9:]+)\]"
DOMAIN_PATTERN = (
    rf"(?:{DOMAIN_COMPONENT_PATTERN}(?:\.{DOMAIN_COMPONENT_PATTERN})*|{IPV6_PATTERN})"
    r"(?::[0-9]+)?"
)
PATH_COMPONENT_PATTERN = r"[a-z0-9]+(?:(?:[._]|__|[-]+)[a-z0-9]+)*"
NAME_PATTERN = (
    rf"(?:{DOMAIN_PATTERN}/)?{PATH_COMPONENT_PATTERN}(?:/{PATH_COMPONENT_PATTERN})*"
)
TAG_PATTERN = r"[\w][\w.-]{0,127}"
DIGEST_PATTERN = r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}"
REFERENCE_PATTERN = (
    rf"^(?P<name>{NAME_PATTERN})"
    rf"(?::(?P<tag>{TAG_PATTERN}))?"
    rf"(?:@(?P<digest>{DIGEST_PATTERN}))?$"
)
REFERENCE_RE = re.compile(REFERENCE_PATTERN, re.ASCII)
IDENTIFIER_RE = re.compile(r"^[a-f0-9]{64}$")


@dataclass(slots=True, frozen=True)
class Reference:
    """A parsed image reference

    `name` is kept as written, the registry defaults are only applied
    by the `domain` and `repository` properties.
    """

    name: str = ""
    tag: str | None = None
    digest: str | None = None

    def __str__(self):
        value = self.name
        if self.tag:
            value += f":{self.tag}"
        if self.digest:
            value = f"{value}@{self.digest}" if value else self.digest
        return value

    @property
    def is_name_only(self) -> bool:
        return bool(self.name) and not self.tag and not self.digest

    @property
    def domain(self) -> str:
        """The registry host, `docker.io` when the name does not carry one"""
        domain, _ = _split_domain(self.name)
        return domain

    @property
    def repository(self) -> str:
        """The repository path on the registry"""
        _, path = _split_domain(self.name)
        return path

    @property
    def locator(self) -> str:
        return f"{self.domain}/{self.repository}"

    @property
    def object(self) -> str:
        """The manifest reference to ask the registry for, digest wins over tag"""
        return self.digest or self.tag or DEFAULT_TAG

    def with_default_tag(self) -> "Reference":
        """Return the reference with tag `latest` when it is name-only"""
        if self.is_name_only:
            return Reference(name=self.name, tag=DEFAULT_TAG)
        return self


def _split_domain(name: str) -> tuple[str, str]:
    first, sep, remainder = name.partition("/")
    if sep and (
        "." in first or ":" in first or first == "localhost" or first.lower() != first
    ):
        domain, path = first, remainder
    else:
        domain, path = DEFAULT_DOMAIN, name
    if domain == LEGACY_DEFAULT_DOMAIN:
        domain = DEFAULT_DOMAIN
    if domain == DEFAULT_DOMAIN and "/" not in path:
        path = f"{OFFICIAL_REPOSITORY_NAMESPACE}/{path}"
    return domain, path


def parse_reference(value: str) -> Reference:
    """Parse any image reference string

    A bare 64 character hex string is taken as a sha256 image identifier.
    """
    if IDENTIFIER_RE.fullmatch(value):
        return Reference(digest=f"sha256:{value}")

    match = REFERENCE_RE.fullmatch(value)
    if match is None:
        if value.lower() != value and REFERENCE_RE.fullmatch(value.lower()):
            raise InvalidReference(f"Repository name must be lowercase: {value!r}")
        raise InvalidReference(f"Invalid reference format: {value!r}")

    name = match["name"]
    if len(name) > NAME_TOTAL_LENGTH_MAX:
        raise InvalidReference(
            f"Repository name must not be more than {NAME_TOTAL_LENGTH_MAX} characters"
        )
    return Reference(name=name, tag=match["tag"], digest=match["digest"])


def normalize_reference(value: str) -> str:
    """Parse `value` and add the `latest` tag when it has no tag or digest"""
    return str(parse_reference(value).with_default_tag())
