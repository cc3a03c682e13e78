import pytest

from minrepro.config import reset_config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep .env files and MINREPRO_* variables of the host out of every test."""
    for name in ("MINREPRO_OUTPUT_DIR", "MINREPRO_STRICT", "MINREPRO_MANIFEST", "MINREPRO_SOURCE_GLOB"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()
