import os
from importlib import reload

import pytest

_CREDENTIAL_VARIABLES = ("OPENROUTER_API_KEY", "HF_API_KEY", "PORT")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer credentials and MEETING_* overrides out of the tests."""

    for name in list(os.environ):
        if name.startswith("MEETING_") or name in _CREDENTIAL_VARIABLES:
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def reload_server(monkeypatch, upload_dir):
    def _reload(**env):
        monkeypatch.setenv("MEETING_UPLOAD_DIR", str(upload_dir))
        for name, value in env.items():
            monkeypatch.setenv(name, value)

        import meeting_summarizer.api.server as server

        reload(server)
        return server

    return _reload
