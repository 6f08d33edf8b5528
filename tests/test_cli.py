from click.testing import CliRunner

import regpeek
from regpeek.__main__ import cli


def test_image_id(monkeypatch):
    calls = []

    def get_image_id(image, username=None, password=None):
        calls.append((image, username, password))
        return "sha256:config"

    monkeypatch.setattr(regpeek, "get_image_id", get_image_id)
    result = CliRunner().invoke(cli, ["image-id", "team/app", "-u", "user", "-p", "pw"])
    assert result.exit_code == 0
    assert result.output == "sha256:config\n"
    assert calls == [("team/app", "user", "pw")]


def test_image_id_inconclusive(monkeypatch):
    monkeypatch.setattr(regpeek, "get_image_id", lambda image, **kwargs: "")
    result = CliRunner().invoke(cli, ["image-id", "team/app"])
    assert result.exit_code == 1


def test_manifest_list(monkeypatch):
    monkeypatch.setattr(
        regpeek,
        "get_manifest_list_digests",
        lambda image, **kwargs: ["sha256:a", "sha256:b"],
    )
    result = CliRunner().invoke(cli, ["manifest-list", "team/app"])
    assert result.exit_code == 0
    assert result.output == "sha256:a\nsha256:b\n"


def test_manifest_list_inconclusive(monkeypatch):
    monkeypatch.setattr(regpeek, "get_manifest_list_digests", lambda image, **kwargs: [])
    assert CliRunner().invoke(cli, ["manifest-list", "team/app"]).exit_code == 1


def test_normalize():
    result = CliRunner().invoke(cli, ["normalize", "team/app"])
    assert result.exit_code == 0
    assert result.output == "team/app:latest\n"


def test_normalize_invalid():
    result = CliRunner().invoke(cli, ["normalize", "Team/App"])
    assert result.exit_code == 2
    assert "lowercase" in result.output
