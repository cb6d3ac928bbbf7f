import logging
import threading

import requests.exceptions
from requests_toolbelt import sessions

from couchdb import exceptions

__all__ = ['Session', 'ResponseBody']

log = logging.getLogger(__name__)


def _requests_error(exc):
    if isinstance(exc, requests.exceptions.Timeout):
        return exceptions.Timeout(str(exc))
    return exceptions.RequestsException(str(exc))


def _response_error(resp):
    """Build the exception for an error response, using CouchDB's JSON error body."""
    error = reason = None
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get('error')
        reason = body.get('reason')
    message = reason or resp.reason
    return exceptions.http_error_lookup(resp.status_code, message, error=error, reason=reason)


class ResponseBody(object):
    """Binary reader over a streamed response.

    Data is returned as it arrives, at most `chunk_size` bytes at a time, so
    continuous feeds are not held back waiting for a full buffer and large
    responses are never held in memory whole.
    """

    chunk_size = 8192

    def __init__(self, response):
        self._response = response
        self._chunks = response.iter_content(chunk_size=self.chunk_size)
        self._buffer = b''
        self._offset = 0

    def read(self, size=-1):
        if size is None or size < 0:
            parts = [self._buffer[self._offset:]]
            while True:
                chunk = self._next_chunk()
                if not chunk:
                    break
                parts.append(chunk)
            self._buffer, self._offset = b'', 0
            return b''.join(parts)
        while self._offset >= len(self._buffer):
            chunk = self._next_chunk()
            if chunk is None:
                return b''
            self._buffer, self._offset = chunk, 0
        end = self._offset + size
        data = self._buffer[self._offset:end]
        self._offset = end
        return data

    def close(self):
        self._response.close()

    def _next_chunk(self):
        try:
            return next(self._chunks, None)
        except requests.exceptions.RequestException as exc:
            raise _requests_error(exc) from exc


class Session(object):
    """Wrapper around BaseUrlSession that automatically wraps certain exceptions when making requests

    :param base_url: the server URL every request path is relative to
    :param auth: a `CookieAuth` for CouchDB session authentication, or anything
                 `requests` accepts as ``auth`` (e.g. a ``(user, password)``
                 tuple for basic authentication)
    """

    def __init__(self, base_url=None, auth=None):
        self._base_session = sessions.BaseUrlSession(base_url=base_url)
        self._cookie_auth = None
        # Serializes cookie re-authentication across threads sharing this session.
        self.auth_lock = threading.Lock()
        self.auth = auth

    @property
    def base_url(self):
        return self._base_session.base_url

    @base_url.setter
    def base_url(self, url):
        self._base_session.base_url = url

    @property
    def cookies(self):
        return self._base_session.cookies

    @property
    def auth(self):
        return self._cookie_auth or self._base_session.auth

    @auth.setter
    def auth(self, auth):
        if hasattr(auth, 'authenticate') and hasattr(auth, 'handle_response'):
            self._cookie_auth = auth
            self._base_session.auth = None
        else:
            self._cookie_auth = None
            self._base_session.auth = auth

    def mount(self, prefix, adapter):
        self._base_session.mount(prefix, adapter)

    def request(self, method, url, *args, **kwargs):
        """Send a request, raising a `CouchDBException` for error responses.

        :param authenticate: when ``False``, skip cookie re-authentication for
                             this request; used by the login request itself
        """
        authenticate = kwargs.pop('authenticate', True)
        if authenticate and self._cookie_auth is not None:
            self._cookie_auth.authenticate(self, cookies=kwargs.get('cookies'), headers=kwargs.get('headers'))
        try:
            resp = self._base_session.request(method, str(url), *args, **kwargs)
        except requests.exceptions.RequestException as exc:
            raise _requests_error(exc) from exc
        if self._cookie_auth is not None:
            self._cookie_auth.handle_response(self, resp)
        try:
            resp.raise_for_status()
        except requests.exceptions.HTTPError as exc:
            error = _response_error(exc.response)
            exc.response.close()
            log.debug("%s %s failed: %s", method, url, error)
            raise error from exc
        return resp

    def stream(self, method, url, **kwargs):
        """Send a request whose response body will be read incrementally.

        :return: ``(response, body)`` where `body` is a `ResponseBody`
        """
        resp = self.request(method, url, stream=True, **kwargs)
        return resp, ResponseBody(resp)

    def head(self, url, **kwargs):
        return self.request("HEAD", url=url, **kwargs)

    def get(self, url, **kwargs):
        return self.request("GET", url=url, **kwargs)

    def put(self, url, data=None, **kwargs):
        return self.request("PUT", url=url, data=data, **kwargs)

    def post(self, url, data=None, json=None, **kwargs):
        return self.request("POST", url=url, data=data, json=json, **kwargs)

    def delete(self, url, **kwargs):
        return self.request("DELETE", url=url, **kwargs)
