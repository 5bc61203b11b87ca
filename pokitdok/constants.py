from __future__ import annotations

import logging

HTTP_METHODS = {
    "get",
    "post",
    "put",
    "patch",
    "delete",
}

LOGGER = logging.getLogger("pokitdok.api")
APP_VERSION = "0.1.0"
USER_AGENT = f"pokitdok-python@{APP_VERSION}"

DEFAULT_BASE_URL = "https://platform.pokitdok.com"
DEFAULT_API_VERSION = "v4"
DEFAULT_TIMEOUT = 30.0
TOKEN_PATH = "/oauth2/token"
