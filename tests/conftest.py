import pytest

POKITDOK_ENV_VARS = (
    "POKITDOK_CLIENT_ID",
    "POKITDOK_CLIENT_SECRET",
    "POKITDOK_API_VERSION",
    "POKITDOK_BASE_URL",
    "POKITDOK_TIMEOUT",
    "POKITDOK_MAX_AUTH_RETRIES",
    "POKITDOK_REPLAY_ORDER",
    "POKITDOK_API_DEBUG",
)


@pytest.fixture
def clean_env(monkeypatch) -> pytest.MonkeyPatch:
    # setenv first so values loaded from a .env file are removed on teardown.
    for key in POKITDOK_ENV_VARS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return monkeypatch


@pytest.fixture
def credentials_env(clean_env) -> pytest.MonkeyPatch:
    clean_env.setenv("POKITDOK_CLIENT_ID", "env-client")
    clean_env.setenv("POKITDOK_CLIENT_SECRET", "env-secret")
    return clean_env
