from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

from ..core.constants import DEFAULT_HTTP_TIMEOUT_SECONDS


@dataclass
class ApiConfig:
    base_url: str
    timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    access_token: Optional[str] = None


class ApiConnection:
    """Backend connection factory.

    Note: One instance per signed-in session so bearer tokens never leak across users.
    """

    def __init__(self, config: ApiConfig, *, session: Optional[requests.Session] = None):
        self._config = config
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json", "Content-Type": "application/json"})
        if config.access_token:
            self.set_access_token(config.access_token)

    @property
    def timeout(self) -> float:
        return float(self._config.timeout_seconds)

    @property
    def session(self) -> requests.Session:
        return self._session

    def url(self, path: str) -> str:
        return f"{self._config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def set_access_token(self, token: Optional[str]) -> None:
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"
        else:
            self._session.headers.pop("Authorization", None)

    def close(self) -> None:
        self._session.close()
