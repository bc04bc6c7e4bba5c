"""Remote site client.

Wraps the authenticated HTTP session against the listing site: item
pages, the listing page, payload downloads and the login form. Cookies
are kept in a Mozilla-format cookie file so a session survives restarts.
"""

import time
from http.cookiejar import LoadError, MozillaCookieJar
from pathlib import Path

import requests
from loguru import logger

from wiggle.config import settings
from wiggle.core.errors import ConfigurationError, LayoutError, SessionError, SiteError, error_context
from wiggle.core.page_parser import parse_latest_id


class SiteClient:
    """Client for the listing site.

    Every request goes through one ``requests.Session`` and is rate limited,
    so the worker never has more than one request in flight.
    """

    ITEM_PAGE = "torrentprofile.php"
    LISTING_PAGE = "alltorrents.php"
    PAYLOAD = "gettorrent.php"
    LOGIN = "login.php"

    # Rate limiting: max requests per minute
    REQUESTS_PER_MINUTE = 60
    MIN_REQUEST_INTERVAL = 60.0 / REQUESTS_PER_MINUTE

    def __init__(
        self,
        base_url: str | None,
        cookie_file: str | Path | None = None,
        timeout: float | None = None,
    ):
        if not base_url:
            raise ConfigurationError("Site URL is not configured")
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout if timeout is not None else settings.request_timeout

        self.session = requests.Session()
        self.session.headers.update(
            {
                "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.5",
                "Referer": self.base_url,
            }
        )

        self.cookie_file = Path(cookie_file or settings.cookie_file).expanduser()
        self.cookie_jar = MozillaCookieJar(str(self.cookie_file))
        if self.cookie_file.exists():
            try:
                self.cookie_jar.load(ignore_discard=True, ignore_expires=True)
            except (LoadError, OSError) as e:
                logger.warning(f"Ignoring unreadable cookie file {self.cookie_file}: {e}")
        self.session.cookies = self.cookie_jar

        self._last_request_time = 0.0

    @property
    def has_session(self) -> bool:
        """True when a cookie file with at least one cookie is present."""
        return self.cookie_file.exists() and len(self.cookie_jar) > 0

    def _rate_limit(self):
        """Enforce rate limiting between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self.MIN_REQUEST_INTERVAL:
            sleep_time = self.MIN_REQUEST_INTERVAL - elapsed
            logger.debug(f"Rate limiting: sleeping {sleep_time:.2f}s")
            time.sleep(sleep_time)
        self._last_request_time = time.time()

    def _save_cookies(self) -> None:
        try:
            self.cookie_file.parent.mkdir(parents=True, exist_ok=True)
            self.cookie_jar.save(ignore_discard=True, ignore_expires=True)
        except OSError as e:
            logger.warning(f"Could not save cookie file {self.cookie_file}: {e}")

    def _request(
        self, method: str, path: str, accept_client_errors: bool = False, **kwargs
    ) -> requests.Response:
        """Make a rate-limited request against the site.

        Args:
            accept_client_errors: Return 4xx responses instead of raising, for
                pages whose body says what happened.

        Raises:
            SiteError: On connection errors, timeouts and HTTP error statuses.
        """
        self._rate_limit()
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            if accept_client_errors and 400 <= response.status_code < 500:
                logger.debug(f"{method} {url} returned {response.status_code}, keeping body")
            else:
                response.raise_for_status()
        except requests.RequestException as e:
            raise SiteError(f"{method} {url} failed: {e}") from e
        self._save_cookies()
        return response

    def fetch_item_page(self, item_id: int) -> str:
        """Return the raw HTML of an item's detail page.

        A 4xx status still returns the body; the page parser decides whether
        it is a not-found page. Connection errors and 5xx raise SiteError.
        """
        return self._request(
            "GET", self.ITEM_PAGE, accept_client_errors=True, params={"fid": item_id}
        ).text

    def fetch_latest_id(self) -> int:
        """Return the newest item id shown on the listing page.

        Raises:
            SiteError: If the site can't be reached.
            LayoutError: If the listing shows no item links.
        """
        body = self._request("GET", self.LISTING_PAGE).text
        latest_id = parse_latest_id(body)
        if latest_id is None or latest_id <= 0:
            raise LayoutError("Listing page did not contain any item links")
        return latest_id

    def download_payload(self, item_id: int, dest_dir: str | Path) -> Path:
        """Download an item's payload to ``dest_dir/<item_id>.torrent``.

        The file is written under a temporary name and renamed when complete,
        so a failed download never leaves a partial file with the final name.
        """
        response = self._request("GET", self.PAYLOAD, params={"fid": item_id})

        dest_dir = Path(dest_dir).expanduser()
        target = dest_dir / f"{item_id}.torrent"
        partial = target.with_suffix(".part")
        with error_context(
            error_types=(OSError,),
            default_message=f"Could not write payload for item {item_id}",
            wrap_as=ConfigurationError,
        ):
            dest_dir.mkdir(parents=True, exist_ok=True)
            partial.write_bytes(response.content)
            partial.replace(target)

        logger.info(f"Saved item {item_id} to {target}")
        return target

    def login(self, username: str, password: str) -> None:
        """Log in with the site's form and persist the session cookies.

        Raises:
            SessionError: If the request fails or the site sets no cookie.
        """
        form = {
            "form_sent": "1",
            "redirect_url": "index.php",
            "req_username": username,
            "req_password": password,
        }
        try:
            self._request("POST", self.LOGIN, params={"action": "in"}, data=form)
        except SiteError as e:
            raise SessionError(f"Login failed: {e}") from e

        if len(self.cookie_jar) == 0:
            raise SessionError("Login did not return a session cookie")
        self._save_cookies()
        logger.info(f"Logged in as {username}")
