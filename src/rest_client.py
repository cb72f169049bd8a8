"""Shared plumbing for the Data Lake and Graph REST clients.

Each client owns one `requests.Session` with the bearer credential attached as session auth, so the
credential sets (and when needed refreshes) the Authorization header on every request. HTTP errors
are raised as `requests.HTTPError` straight from the response; nothing is retried or wrapped.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .auth import BearerCredential

logger = logging.getLogger(__name__)


class RestClient:
    """Base class binding a bearer credential to a `requests` session."""

    API_VERSION: str = ""

    def __init__(self, credential: BearerCredential):
        self.credential = credential
        # Reuse an HTTP session across requests for connection pooling.
        self.session = requests.Session()
        self.session.auth = credential
        self.session.headers.update({"Accept": "application/json"})

    def _request(self, method: str, url: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> requests.Response:
        params = dict(params or {})
        if self.API_VERSION and "api-version" not in params:
            params["api-version"] = self.API_VERSION
        logger.debug("%s %s", method, url)
        r = self.session.request(method, url, params=params, **kwargs)
        r.raise_for_status()
        return r

    def _get(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        return self._request("GET", url, **kwargs).json()

    def _put(self, url: str, body: Dict[str, Any], **kwargs: Any) -> Dict[str, Any]:
        return self._request("PUT", url, json=body, **kwargs).json()

    def _post(self, url: str, **kwargs: Any) -> requests.Response:
        return self._request("POST", url, **kwargs)

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
