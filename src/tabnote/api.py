"""Client for the external text enrichment service."""

from typing import Any
from urllib.parse import urljoin

import requests
from loguru import logger

from tabnote.config import API_BASE_URL, API_TIMEOUT_SECONDS

# Endpoint path and result field for each operation.
ENDPOINTS: dict[str, str] = {
    "summarize": "summarize",
    "translate": "translate",
    "proofread": "proofread",
    "paraphrase": "paraphrase",
    "keywords": "keywords",
}

RESULT_FIELDS: dict[str, str] = {
    "summarize": "summary",
    "translate": "translated_content",
    "proofread": "proofread_text",
    "paraphrase": "paraphrase",
    "keywords": "keywords",
}


class EnrichmentApiError(RuntimeError):
    """The service answered with something we cannot use."""


class EnrichmentApi:
    """Thin wrapper over the enrichment HTTP API.

    Authentication is a bearer token supplied per call, since the token is a
    user preference that may change between calls.
    """

    def __init__(self, base_url: str = API_BASE_URL, *, timeout: float = API_TIMEOUT_SECONDS) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self.sess = requests.Session()

    def submit(
        self,
        operation: str,
        content: str,
        *,
        token: str,
        language: str | None = None,
    ) -> dict[str, Any]:
        """Submit content for an operation, return json."""
        try:
            endpoint = ENDPOINTS[operation]
        except KeyError:
            msg = f"unknown operation: {operation!r}"
            raise ValueError(msg) from None

        payload: dict[str, Any] = {"content": content}
        if language:
            payload["language"] = language

        url = urljoin(self.base_url, endpoint)
        logger.debug("Submitting {} job ({} chars) to {}", operation, len(content), url)
        r = self.sess.post(url, json=payload, headers=self._headers(token), timeout=self.timeout)
        r.raise_for_status()
        return self._json(r, url)

    def status(self, status_url: str, *, token: str) -> dict[str, Any]:
        """Read job status, return json."""
        url = urljoin(self.base_url, status_url)
        r = self.sess.get(url, headers=self._headers(token), timeout=self.timeout)
        r.raise_for_status()
        return self._json(r, url)

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    @staticmethod
    def _json(r: requests.Response, url: str) -> dict[str, Any]:
        rv = r.json()
        if not isinstance(rv, dict):
            msg = f"API call failed: {url!r} returned {type(rv).__name__}, expected an object"
            raise EnrichmentApiError(msg)
        return rv


def extract_result(operation: str, response: dict[str, Any]) -> str:
    """Pull the operation's result field out of a completed response.

    The field may sit at the top level or inside a ``result`` object.
    Keyword lists are joined into one display string.
    """
    field = RESULT_FIELDS[operation]
    container = response.get("result")
    if isinstance(container, dict) and field in container:
        value = container[field]
    elif field in response:
        value = response[field]
    else:
        msg = f"Response has no {field!r} field"
        raise EnrichmentApiError(msg)

    if isinstance(value, list):
        return ", ".join(str(x) for x in value)
    if not isinstance(value, str):
        msg = f"Unexpected {field!r} value: {value!r}"
        raise EnrichmentApiError(msg)
    return value
