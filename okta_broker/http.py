"""Thin HTTP transport shared by the IdP and AWS clients.

A single :class:`requests.Session` carries the cookie jar for a whole
transaction; the IdP pins the session to the cookies it sets during primary
authentication. The retry and cursor helpers at the bottom are also used
for the IAM Identity Center portal calls made through boto3.
"""

import enum
import logging
import time

import requests

from okta_broker.errors import HttpStatusError, TransportError

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30  # seconds, per request

RETRY_ATTEMPTS = 3  # retries after the first failure
RETRY_INITIAL_DELAY = 1  # seconds, doubled after every retry


class AcceptType(enum.Enum):
    JSON = "application/json"
    HTML = "text/html,application/xhtml+xml,application/xml"


class ApiClient:
    """Wraps a requests session with the calls the pipeline needs.

    *sleep* is used for retry back-off and can be replaced in tests.
    """

    def __init__(self, session=None, timeout=DEFAULT_TIMEOUT, sleep=time.sleep):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.sleep = sleep

    # -- raw calls ----------------------------------------------------------

    def get(self, url, params=None, headers=None, accept=AcceptType.JSON):
        """GET *url* and return the response whatever its status."""
        request_headers = {"Accept": accept.value}
        request_headers.update(headers or {})
        log.debug("GET %s", url)
        try:
            response = self.session.get(
                url,
                params=params,
                headers=request_headers,
                allow_redirects=True,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"GET {url} failed: {type(exc).__name__}") from exc
        log.debug("GET %s -> HTTP %s", url, response.status_code)
        return response

    def post_json(self, url, payload, accept=AcceptType.JSON):
        """POST *payload* as a JSON body and return the response."""
        headers = {"Content-Type": "application/json", "Accept": accept.value}
        log.debug("POST %s", url)
        try:
            response = self.session.post(
                url, json=payload, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise TransportError(f"POST {url} failed: {type(exc).__name__}") from exc
        log.debug("POST %s -> HTTP %s", url, response.status_code)
        return response

    def post_form(self, url, form, accept=AcceptType.HTML):
        """POST *form* url-encoded, following redirects, and return the response."""
        log.debug("POST (form) %s", url)
        try:
            response = self.session.post(
                url,
                data=form,
                headers={"Accept": accept.value},
                allow_redirects=True,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"POST {url} failed: {type(exc).__name__}") from exc
        log.debug("POST (form) %s -> HTTP %s", url, response.status_code)
        return response

    # -- disciplined calls --------------------------------------------------

    def get_ok(self, url, params=None, headers=None, accept=AcceptType.JSON):
        """GET *url* once; anything but HTTP 200 raises :class:`HttpStatusError`."""
        response = self.get(url, params=params, headers=headers, accept=accept)
        ensure_ok(response, url)
        return response

    def get_with_retry(self, url, params=None, headers=None, accept=AcceptType.JSON):
        """GET *url*, retrying failures with exponential back-off.

        A failure is a transport error or a status other than 200. After the
        first failure the call is retried up to ``RETRY_ATTEMPTS`` times,
        sleeping 1s, 2s, 4s in between. When every attempt fails the last
        error is raised unchanged.
        """
        return retry(
            lambda: self.get_ok(url, params=params, headers=headers, accept=accept),
            TransportError,
            self.sleep,
        )


def ensure_ok(response, url):
    """Raise :class:`HttpStatusError` unless *response* is HTTP 200."""
    if response.status_code != 200:
        raise HttpStatusError(url, response.status_code, response.text)


def decode_json(response, url):
    """Return the JSON body of *response*, raising TransportError when it is not JSON."""
    try:
        return response.json()
    except ValueError as exc:
        raise TransportError(f"{url} did not return JSON") from exc


def retry(call, retry_on, sleep=time.sleep):
    """Run *call*, retrying *retry_on* errors up to ``RETRY_ATTEMPTS`` times.

    The delay starts at ``RETRY_INITIAL_DELAY`` and doubles after every
    retry. When every attempt fails the last error is raised unchanged.
    """
    delay = RETRY_INITIAL_DELAY
    attempt = 0
    while True:
        try:
            return call()
        except retry_on as exc:
            if attempt >= RETRY_ATTEMPTS:
                log.debug("Giving up after %d retries: %s", attempt, exc)
                raise
            attempt += 1
            log.debug("Call failed (%s), retry %d in %ss", exc, attempt, delay)
            sleep(delay)
            delay *= 2


def paginate(fetch_page, item_key):
    """Follow ``nextToken`` cursors and return every item under *item_key*.

    ``fetch_page(next_token)`` returns one page; it is called with None for
    the first page. Pages are requested strictly in order and a failing page
    aborts the listing, so no partial result is returned.
    """
    items = []
    next_token = None
    while True:
        page = fetch_page(next_token)
        items.extend(page.get(item_key) or [])

        next_token = page.get("nextToken")
        if not next_token:
            break
    log.debug("Listed %d %s item(s)", len(items), item_key)
    return items
