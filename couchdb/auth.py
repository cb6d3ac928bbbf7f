"""CouchDB cookie and proxy authentication.

See http://docs.couchdb.org/en/stable/api/server/authn.html

>>> server = Server('http://localhost:5984/', auth=CookieAuth('admin', 'secret'))
>>> server = Server('http://localhost:5984/', auth=ProxyAuth('bob', 'abc123', roles=['users']))

HTTP basic authentication needs no helper: pass a ``(user, password)`` tuple.
"""
import hashlib
import hmac
import logging
import time

import requests.auth

from couchdb import exceptions

__all__ = ['CookieAuth', 'ProxyAuth', 'SESSION_COOKIE_NAME']

log = logging.getLogger(__name__)

SESSION_COOKIE_NAME = 'AuthSession'


def _carries_session_cookie(cookies, headers):
    if cookies and SESSION_COOKIE_NAME in cookies:
        return True
    for name, value in (headers or {}).items():
        if name.lower() == 'cookie' and SESSION_COOKIE_NAME + '=' in value:
            return True
    return False


class CookieAuth(object):
    """Keeps a CouchDB session cookie alive for a `Session`.

    Before each request the session cookie in the jar is checked; if it is
    missing, or expires within `lookahead` seconds, a login request is made
    first. Concurrent requests share a single login. A 401 response evicts
    the cookie so that the next request logs in again.

    :param username: the user to log in as
    :param password: the user's password
    :param lookahead: seconds before expiry at which the cookie is renewed
    """

    def __init__(self, username, password, lookahead=60):
        self._username = username
        self._password = password
        self.lookahead = lookahead

    def __repr__(self):
        return '<%s user:%s pass:%s>' % (type(self).__name__, self._username, '*' * len(self._password))

    @property
    def username(self):
        return self._username

    def cookie(self, session):
        """Return the current, unexpired session cookie, or ``None``."""
        for cookie in session.cookies:
            # The jar yields None for a cookie cleared mid-iteration.
            if cookie is None:
                continue
            if cookie.name == SESSION_COOKIE_NAME and not cookie.is_expired():
                return cookie
        return None

    def _stale(self, cookie):
        if cookie is None:
            return True
        if cookie.expires is None:
            # The server sent no expiry; keep using the cookie until a 401.
            return False
        return cookie.expires < time.time() + self.lookahead

    def should_auth(self, session, cookies=None, headers=None):
        """Whether a request needs a login first.

        :param cookies: the request's own cookies, if any
        :param headers: the request's own headers, if any
        """
        if _carries_session_cookie(cookies, headers):
            return False
        return self._stale(self.cookie(session))

    def authenticate(self, session, cookies=None, headers=None):
        """Log in, if required, before a request is sent.

        :raise LoginFailed: if the server rejects the credentials
        """
        if not self.should_auth(session, cookies=cookies, headers=headers):
            return
        with session.auth_lock:
            if not self._stale(self.cookie(session)):
                log.debug("Session cookie renewed by another request")
                return
            log.debug("Logging in to CouchDB as %s", self._username)
            try:
                session.post("_session", json={'name': self._username, 'password': self._password},
                             authenticate=False)
            except (exceptions.HTTPUnauthorized, exceptions.HTTPForbidden) as exc:
                raise exceptions.LoginFailed(str(exc)) from exc

    def handle_response(self, session, response):
        """Evict the session cookie when the server answers 401."""
        if response.status_code != 401:
            return
        cookie = self.cookie(session)
        if cookie is None:
            return
        log.debug("Evicting session cookie after 401 for %s", response.url)
        try:
            session.cookies.clear(cookie.domain, cookie.path, cookie.name)
        except KeyError:
            # Already evicted by a concurrent request.
            pass


class ProxyAuth(requests.auth.AuthBase):
    """CouchDB proxy authentication.

    The user name and roles are sent in ``X-Auth-CouchDB-*`` headers; when a
    `secret` is given, an ``X-Auth-CouchDB-Token`` HMAC of the user name is
    added as well. See
    http://docs.couchdb.org/en/stable/api/server/authn.html#proxy-authentication

    :param username: the user to act as
    :param secret: the server's ``couch_httpd_auth/secret``, or ``None``
    :param roles: list of roles for the user
    :param headers: optional mapping from the default header names to the
                    names configured on the server
    """

    def __init__(self, username, secret=None, roles=(), headers=None):
        self.username = username
        self.roles = list(roles)
        self._secret = secret
        self._headers = headers or {}
        self.token = None
        if secret:
            self.token = hmac.new(secret.encode('utf-8'), username.encode('utf-8'), hashlib.sha1).hexdigest()

    def __repr__(self):
        return '<%s user:%s secret:%s>' % (type(self).__name__, self.username, '*' * len(self._secret or ''))

    def _header(self, name):
        return self._headers.get(name, name)

    def __call__(self, request):
        request.headers[self._header('X-Auth-CouchDB-UserName')] = self.username
        request.headers[self._header('X-Auth-CouchDB-Roles')] = ','.join(self.roles)
        if self.token:
            request.headers[self._header('X-Auth-CouchDB-Token')] = self.token
        return request
