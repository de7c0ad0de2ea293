"""HTTP fetching for webpage sources."""

import logging
import time
from typing import Any, Callable

import httpx

from ..config import get_section
from ..errors import FetchFailed
from ..models import FetchResponse

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], FetchResponse]


class HttpFetcher:
    """Fetch a URL with httpx, bounded by a connect and an overall timeout.

    The overall limit is checked while the body streams in.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        connect_timeout: float = 10.0,
        max_redirects: int = 5,
        user_agent: str = "Mozilla/5.0 (compatible; ContentPrepWizard/1.0)",
    ):
        self.total_timeout = timeout
        self.timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self.max_redirects = max_redirects
        self.headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "HttpFetcher":
        cfg = get_section(config, "webpage")
        return cls(
            timeout=float(cfg["timeout"]),
            connect_timeout=float(cfg["connect_timeout"]),
            max_redirects=int(cfg["max_redirects"]),
            user_agent=cfg["user_agent"],
        )

    def __call__(self, url: str) -> FetchResponse:
        deadline = time.monotonic() + self.total_timeout
        try:
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                max_redirects=self.max_redirects,
                headers=self.headers,
            ) as client:
                with client.stream("GET", url) as resp:
                    chunks = []
                    for chunk in resp.iter_bytes():
                        if time.monotonic() > deadline:
                            raise FetchFailed(url, f"timed out after {self.total_timeout}s", resp.status_code)
                        chunks.append(chunk)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch URL {url}: {e}")
            raise FetchFailed(url, str(e)) from e
        except (httpx.InvalidURL, ValueError) as e:
            # Raised while building the request, e.g. a bad port or IDNA label
            logger.error(f"Cannot request URL {url}: {e}")
            raise FetchFailed(url, str(e)) from e

        return FetchResponse(
            status_code=resp.status_code,
            headers=dict(resp.headers),
            body=b"".join(chunks),
        )
