"""
Tests for configuration, .env loading and credentials.
"""

import os

import pytest

from climage.core.config import Config, Credentials, HttpConfig, load_env
from climage.core.exceptions import ConfigurationError


def test_defaults(isolated_env):
    config = Config.load()
    assert config.generation.provider == "auto"
    assert config.output.out_dir == "."
    assert config.http.timeout == 300.0
    assert config.http.download_concurrency == 4


def test_load_from_working_directory(isolated_env, monkeypatch):
    monkeypatch.setenv("CLIMAGE_TEST_OUT", "/srv/renders")
    (isolated_env / "climage.yaml").write_text(
        "generation:\n"
        "  provider: fal\n"
        "output:\n"
        "  out_dir: ${CLIMAGE_TEST_OUT}\n"
        "http:\n"
        "  timeout: ${CLIMAGE_TEST_TIMEOUT:-60}\n"
    )

    config = Config.load()

    assert config.generation.provider == "fal"
    assert config.output.out_dir == "/srv/renders"
    assert config.http.timeout == 60.0


def test_explicit_path_wins(isolated_env):
    (isolated_env / "climage.yaml").write_text("generation:\n  provider: fal\n")
    explicit = isolated_env / "other.yaml"
    explicit.write_text("generation:\n  provider: google\n")

    assert Config.load(explicit).generation.provider == "google"


def test_missing_explicit_path(isolated_env):
    with pytest.raises(ConfigurationError):
        Config.load(isolated_env / "missing.yaml")


def test_invalid_yaml(isolated_env):
    path = isolated_env / "bad.yaml"
    path.write_text("generation: [unclosed\n")
    with pytest.raises(ConfigurationError):
        Config.load(path)


def test_unknown_key(isolated_env):
    path = isolated_env / "bad.yaml"
    path.write_text("output:\n  colour: blue\n")
    with pytest.raises(ConfigurationError):
        Config.load(path)


@pytest.mark.parametrize("values", [{"timeout": 0}, {"download_concurrency": 0}, {"timeout": "soon"}])
def test_invalid_http_values(values):
    with pytest.raises(ConfigurationError):
        HttpConfig(**values)


def test_to_dict_round_trip():
    config = Config.from_dict({"generation": {"provider": "xai"}})
    assert Config.from_dict(config.to_dict()) == config


def test_load_env_files(isolated_env, monkeypatch):
    # Recorded so the variables dotenv sets are removed afterwards
    for name in ("CLIMAGE_A", "CLIMAGE_B"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("CLIMAGE_C", "from-process")
    (isolated_env / ".env").write_text("CLIMAGE_A=from-env\nCLIMAGE_C=from-env\n")
    (isolated_env / ".env.local").write_text("CLIMAGE_A=from-local\nCLIMAGE_B=from-local\n")

    result = load_env(isolated_env)

    assert [os.path.basename(p) for p in result.loaded_files] == [".env", ".env.local"]
    # Earlier sources are never overridden
    assert os.environ["CLIMAGE_A"] == "from-env"
    assert os.environ["CLIMAGE_B"] == "from-local"
    assert os.environ["CLIMAGE_C"] == "from-process"
    assert result.env["CLIMAGE_B"] == "from-local"


def test_load_env_without_files(isolated_env):
    assert load_env(isolated_env).loaded_files == []


def test_credentials_first_match_wins():
    credentials = Credentials({"A": "", "B": "  ", "C": "third", "D": "fourth"})
    assert credentials.resolve(["A", "B", "C", "D"]) == "third"
    assert credentials.resolve(["D", "C"]) == "fourth"
    assert credentials.resolve(["Z"]) is None
    assert not credentials.has_any(["A", "B"])


def test_credentials_snapshot_is_isolated(monkeypatch):
    monkeypatch.setenv("CLIMAGE_SNAPSHOT", "before")
    credentials = Credentials.from_env()
    monkeypatch.setenv("CLIMAGE_SNAPSHOT", "after")
    assert credentials.resolve(["CLIMAGE_SNAPSHOT"]) == "before"


def test_credentials_repr_hides_values():
    text = repr(Credentials({"XAI_API_KEY": "xai-super-secret"}))
    assert "XAI_API_KEY" in text
    assert "super-secret" not in text
