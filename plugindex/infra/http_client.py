"""
HTTP transport for plugindex.

Thin layer over a requests Session that turns every failure into one of the
plugindex error categories:
- TransportError: connection failure or timeout
- ProtocolError: non-2xx status, with status code and body
- ParseError: body is not the expected JSON

Nothing is retried here; retrying is the caller's decision.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from ..exit_codes import ParseError, ProtocolError, TransportError

logger = logging.getLogger(__name__)

USER_AGENT = "plugindex"

# Keep error bodies short in messages and logs
_BODY_PREVIEW = 200


@dataclass
class HttpResponse:
    """Successful response."""
    url: str
    status: int
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def content_length(self) -> Optional[int]:
        for key, value in self.headers.items():
            if key.lower() == 'content-length':
                try:
                    return int(value)
                except (TypeError, ValueError):
                    return None
        return None

    def json(self) -> Any:
        try:
            return json.loads(self.text)
        except ValueError as e:
            raise ParseError(f"Failed to parse JSON from {self.url}: {e}")


class HttpClient:
    """
    Blocking HTTP client with bounded timeouts.

    Example:
        client = HttpClient(timeout=10)
        response = client.get("https://example.com/db.json")
        data = response.json()
    """

    def __init__(
        self,
        timeout: float = 10.0,
        head_timeout: float = 5.0,
        session: Optional[requests.Session] = None,
        user_agent: str = USER_AGENT,
    ):
        """
        Initialize HttpClient.

        Args:
            timeout: Timeout in seconds for GET requests
            head_timeout: Timeout in seconds for HEAD probes
            session: requests Session to use (creates one if None)
            user_agent: User-Agent header value
        """
        self.timeout = timeout
        self.head_timeout = head_timeout
        self.session = session or requests.Session()
        self.user_agent = user_agent

    def _headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        merged = {'User-Agent': self.user_agent}
        if headers:
            merged.update(headers)
        return merged

    def _request(self, method: str, url: str, headers: Optional[Dict[str, str]],
                 timeout: float) -> HttpResponse:
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method, url, headers=self._headers(headers), timeout=timeout
            )
        except requests.Timeout as e:
            raise TransportError(f"Request to {url} timed out after {timeout}s: {e}", url=url)
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}", url=url)

        if not 200 <= response.status_code < 300:
            body = response.text or ""
            preview = body[:_BODY_PREVIEW] + ("..." if len(body) > _BODY_PREVIEW else "")
            message = f"HTTP {response.status_code} for {url}"
            if preview:
                message += f": {preview}"
            raise ProtocolError(
                message,
                status=response.status_code,
                body=body,
                url=url,
            )

        return HttpResponse(
            url=url,
            status=response.status_code,
            text=response.text if method != 'HEAD' else "",
            headers=dict(response.headers),
        )

    def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        """
        Fetch a URL.

        Raises:
            TransportError: network failure or timeout
            ProtocolError: non-2xx status
        """
        return self._request('GET', url, headers, self.timeout)

    def head(self, url: str, headers: Optional[Dict[str, str]] = None) -> HttpResponse:
        """Metadata-only probe with the shorter HEAD timeout."""
        return self._request('HEAD', url, headers, self.head_timeout)

    def content_length(self, url: str, headers: Optional[Dict[str, str]] = None) -> int:
        """
        Return the Content-Length reported by a HEAD probe.

        Raises:
            ParseError: the response carries no usable Content-Length
        """
        length = self.head(url, headers).content_length
        if length is None:
            raise ParseError(f"No content-length header in HEAD response from {url}")
        logger.debug(f"Content length of {url}: {length} bytes")
        return length

    def close(self) -> None:
        self.session.close()
