class CouchDBException(Exception):
    """There was an ambiguous error interacting with CouchDB."""
    status_code = 500


class UpdateConflict(CouchDBException):
    """A revision conflict occurred."""
    status_code = 409


class MissingResource(CouchDBException):
    """A requested resource (database, document, view) does not exist"""
    status_code = 404


class MissingDocument(MissingResource):
    """A requested document does not exist."""
    pass


class MissingDatabase(MissingResource):
    """A requested database does not exist."""
    pass


class DatabaseExists(CouchDBException):
    """Could not create a database, it exists already."""
    status_code = 412


class LoginFailed(CouchDBException):
    """Could not authenticate the provided user."""
    status_code = 401


class RequestsException(CouchDBException):
    """There was an ambiguous exception that occurred while handling your request."""
    status_code = 502


class Timeout(RequestsException):
    """The request timed out."""
    status_code = 504


class HTTPError(RequestsException):
    """An HTTP error occurred."""
    def __init__(self, status_code, message=None, error=None, reason=None):
        self.status_code = status_code
        self.error = error
        self.reason = reason
        self.message = message or "HTTP error {status_code}".format(status_code=status_code)
        super(HTTPError, self).__init__(self.message)


class HTTPBadRequest(HTTPError):
    """400 Bad Request"""
    status_code = 400

    def __init__(self, message="Bad Request", **kwargs):
        super(HTTPBadRequest, self).__init__(self.__class__.status_code, message, **kwargs)


class HTTPUnauthorized(HTTPError):
    """401 Unauthorized"""
    status_code = 401

    def __init__(self, message="Unauthorized", **kwargs):
        super(HTTPUnauthorized, self).__init__(self.__class__.status_code, message, **kwargs)


class HTTPForbidden(HTTPError):
    """403 Forbidden"""
    status_code = 403

    def __init__(self, message="Forbidden", **kwargs):
        super(HTTPForbidden, self).__init__(self.__class__.status_code, message, **kwargs)


class HTTPNotFound(HTTPError):
    """404 Not Found"""
    status_code = 404

    def __init__(self, message="Not Found", **kwargs):
        super(HTTPNotFound, self).__init__(self.__class__.status_code, message, **kwargs)


class HTTPConflict(HTTPError):
    status_code = 409

    def __init__(self, message="Conflict", **kwargs):
        super(HTTPConflict, self).__init__(self.__class__.status_code, message, **kwargs)


class HTTPPreconditionFailed(HTTPError):
    status_code = 412

    def __init__(self, message="Precondition failed", **kwargs):
        super(HTTPPreconditionFailed, self).__init__(self.__class__.status_code, message, **kwargs)


_http_error_lookup = {
    exc.status_code: exc for exc in [HTTPBadRequest, HTTPUnauthorized, HTTPForbidden, HTTPNotFound, HTTPConflict, HTTPPreconditionFailed]
}


def http_error_lookup(status_code, message=None, error=None, reason=None):
    """Build the exception for an HTTP error status.

    `error` and `reason` are the fields of CouchDB's JSON error body, if the
    response carried one.
    """
    if status_code in _http_error_lookup:
        exc_type = _http_error_lookup[status_code]
        if message:
            return exc_type(message, error=error, reason=reason)
        return exc_type(error=error, reason=reason)
    else:
        return HTTPError(status_code=status_code, message=message, error=error, reason=reason)


class StreamError(CouchDBException):
    """Reading a streamed result failed."""
    pass


class DecodeError(StreamError):
    """The server sent data that could not be decoded."""
    status_code = 502


class UnexpectedEOF(StreamError):
    """The result stream ended before it was structurally complete."""
    status_code = 500

    def __init__(self, message="unexpected EOF"):
        super(UnexpectedEOF, self).__init__(message)


class IteratorClosed(StreamError):
    """The iterator, or the reader underneath it, has been closed."""

    def __init__(self, message="iterator closed"):
        super(IteratorClosed, self).__init__(message)


class Canceled(StreamError):
    """The governing context was canceled."""

    def __init__(self, message="context canceled"):
        super(Canceled, self).__init__(message)


class DeadlineExceeded(Canceled):
    """The governing context timed out."""
    status_code = 504

    def __init__(self, message="context deadline exceeded"):
        super(DeadlineExceeded, self).__init__(message)


class EndOfQuery(Exception):
    """Raised by a multi-query iterator when one query's rows are exhausted.

    This is a boundary marker, not a failure: calling ``next`` again moves on
    to the following query.
    """
    pass


_row_error_status = {
    'not_found': 404,
    'conflict': 409,
    'forbidden': 403,
    'unauthorized': 401,
    'illegal_docid': 400,
    'bad_request': 400,
}


class RowError(CouchDBException):
    """An error reported for a single row of a result set.

    Row errors are carried on the row itself; they never abort iteration.

    The message reads ``"<error>: <reason>"``. When CouchDB sends no reason,
    as for a missing key in a ``keys=`` view query, it is just ``"<error>"``.
    """

    def __init__(self, id=None, rev=None, error=None, reason=None):
        self.id = id
        self.rev = rev
        self.error = error
        self.reason = reason
        self.status_code = _row_error_status.get(error, 500)
        if reason:
            message = "{}: {}".format(error, reason)
        else:
            message = "{}".format(error)
        super(RowError, self).__init__(message)

    def __eq__(self, other):
        if not isinstance(other, RowError):
            return NotImplemented
        return (self.id, self.rev, self.error, self.reason) == (other.id, other.rev, other.error, other.reason)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = Exception.__hash__


class BulkGetError(RowError):
    """A per-document error from a ``_bulk_get`` request."""
    pass
