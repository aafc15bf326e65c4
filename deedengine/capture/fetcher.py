import asyncio
import logging
from functools import wraps
from typing import Any, Dict, List

import requests
import urllib3
from faker import Faker
from requests.cookies import RequestsCookieJar
from requests.exceptions import RequestException, Timeout

from ..exceptions import FetchError
from ..models import CandidateFailureReason, CandidateLocation, CapturedResource, SessionCredentials

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 60


def logging_requests(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        response = f(*args, **kwargs)

        if response is not None and response.status_code != 200:
            logger.warning(
                f"Fetch returned {response.status_code} for {response.url} "
                f"(Content-Type: {response.headers.get('Content-Type', '')}, "
                f"Location: {response.headers.get('Location', '')})"
            )

        return response

    return wrapper


def generated_user_agent() -> str:
    return Faker(
        providers=[
            "faker.providers.user_agent",
            "faker.providers.date_time",
            "faker.providers.misc",
        ]
    ).firefox()


def cookie_jar(cookies: List[Dict[str, Any]]) -> RequestsCookieJar:
    """
    Rebuild browser cookies as a jar that keeps their scope.

    Args:
        cookies: Cookie dicts as the browser reports them (name, value, domain, path, ...)

    Returns:
        RequestsCookieJar: requests only sends each cookie to matching hosts and paths
    """
    jar = RequestsCookieJar()
    for cookie in cookies:
        expires = cookie.get("expires")
        jar.set(
            cookie["name"],
            cookie["value"],
            domain=cookie.get("domain", ""),
            path=cookie.get("path") or "/",
            secure=bool(cookie.get("secure", False)),
            # Session cookies are reported with expires -1
            expires=int(expires) if expires is not None and expires >= 0 else None,
        )
    return jar


class CaptureFetcher:
    """
    Credentialed byte fetcher bound to one browsing session.

    Each pipeline owns its own fetcher, so cookies never leak between sessions.
    Redirects are not followed and nothing is retried here; retry policy belongs
    to the candidate loop.
    """

    def __init__(self, timeout: float = DEFAULT_FETCH_TIMEOUT, verify_tls: bool = True):
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.__session = requests.session()
        if not verify_tls:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    @property
    def base_headers(self):
        return {
            "Accept": "application/pdf,image/*,*/*;q=0.8",
            "Accept-Language": "en-US;q=0.5,en;q=0.3",
        }

    def fetch(self, candidate: CandidateLocation, credentials: SessionCredentials) -> CapturedResource:
        """
        Fetch the bytes behind one candidate location.

        Args:
            candidate: The location to fetch
            credentials: Cookies, referring page and user agent of the live session

        Returns:
            CapturedResource: Bytes, declared content type and source URL

        Raises:
            FetchError: network-error, http-error (including any 3xx) or timeout
        """
        headers = self.__get_headers(credentials)
        try:
            response = self.__get(candidate.url, headers=headers, cookies=cookie_jar(credentials.cookies))
        except Timeout as e:
            raise FetchError(
                CandidateFailureReason.TIMEOUT, f"Timed out after {self.timeout}s fetching {candidate.url}"
            ) from e
        except RequestException as e:
            raise FetchError(CandidateFailureReason.NETWORK_ERROR, f"Network error fetching {candidate.url}: {e}") from e

        if 300 <= response.status_code < 400:
            raise FetchError(
                CandidateFailureReason.HTTP_ERROR,
                f"Redirect {response.status_code} to {response.headers.get('Location', '?')} not followed",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise FetchError(
                CandidateFailureReason.HTTP_ERROR,
                f"HTTP {response.status_code} fetching {candidate.url}",
                status_code=response.status_code,
            )

        logger.info(f"📥 Fetched {len(response.content) / 1024:.2f} KB from {candidate.url}")
        return CapturedResource(
            data=response.content,
            content_type=response.headers.get("Content-Type"),
            source_url=candidate.url,
        )

    async def fetch_async(self, candidate: CandidateLocation, credentials: SessionCredentials) -> CapturedResource:
        return await asyncio.to_thread(self.fetch, candidate, credentials)

    def close(self):
        self.__session.close()

    @logging_requests
    def __get(self, url: str, **kwargs) -> requests.Response:
        return self.__session.get(
            url,
            timeout=self.timeout,
            allow_redirects=False,
            verify=self.verify_tls,
            **kwargs,
        )

    def __get_headers(self, credentials: SessionCredentials) -> dict:
        base = self.base_headers
        base["User-Agent"] = credentials.user_agent or generated_user_agent()
        if credentials.referer:
            base["Referer"] = credentials.referer
        return base
