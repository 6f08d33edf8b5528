import pytest

from regpeek.config import Config
from regpeek.oci.errors import RoutingConfigError
from regpeek.oci.routing import HostRouting


def test_route_docker_hub():
    host = HostRouting().route("docker.io")
    assert host.host == "registry-1.docker.io"
    assert host.base_url == "https://registry-1.docker.io"


def test_route_other_host_unchanged():
    host = HostRouting(proxy="http://mirror.example:5000").route("ghcr.io")
    assert host.host == "ghcr.io"
    assert host.scheme == "https"


def test_route_through_proxy():
    host = HostRouting(proxy="http://mirror.example:5000").route("docker.io")
    assert host.host == "mirror.example:5000"
    # The scheme of the proxy URL is not carried over
    assert host.scheme == "https"


@pytest.mark.parametrize("proxy", ["http://mirror.example:port", "mirror.example:5000"])
def test_route_invalid_proxy(proxy):
    with pytest.raises(RoutingConfigError):
        HostRouting(proxy=proxy).route("docker.io")


def test_invalid_proxy_only_matters_for_docker_hub():
    assert HostRouting(proxy="http://mirror:port").route("quay.io").host == "quay.io"


def test_credentials_for_every_host():
    routing = HostRouting(username="user", password="secret")
    for name in ["docker.io", "ghcr.io", "localhost:5000"]:
        host = routing.route(name)
        assert (host.username, host.password) == ("user", "secret")


def test_tls_not_verified_by_default():
    assert HostRouting().route("example.com").verify is False
    assert HostRouting(verify=True).route("example.com").verify is True


@pytest.mark.parametrize(
    "name,scheme",
    [
        ("localhost", "http"),
        ("localhost:5000", "http"),
        ("127.0.0.1:5000", "http"),
        ("[::1]:5000", "http"),
        ("registry.local:5000", "https"),
    ],
)
def test_local_registries_use_http(name, scheme):
    assert HostRouting().route(name).scheme == scheme


def test_from_config(monkeypatch):
    monkeypatch.setenv("DOCKERHUB_PUBLIC_PROXY", "http://mirror.example:5000")
    routing = HostRouting.from_config(Config(), username="user", password="secret")
    assert routing.route("docker.io").host == "mirror.example:5000"


def test_from_config_empty_proxy(monkeypatch):
    monkeypatch.setenv("DOCKERHUB_PUBLIC_PROXY", "")
    routing = HostRouting.from_config(Config())
    assert routing.route("docker.io").host == "registry-1.docker.io"


def test_config_timeout(monkeypatch):
    monkeypatch.setenv("REGPEEK_TIMEOUT", "5")
    assert Config().TIMEOUT == 5.0
    monkeypatch.setenv("REGPEEK_TIMEOUT", "soon")
    assert Config().TIMEOUT == 30.0
