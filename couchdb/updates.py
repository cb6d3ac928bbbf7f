import logging

from couchdb import exceptions
from couchdb.changes import sequence_id
from couchdb.iterator import Iter, Metadata

__all__ = ['DBUpdate', 'DBUpdates']

log = logging.getLogger(__name__)


class DBUpdate(object):
    """A database event from the ``_db_updates`` feed."""

    def __init__(self, db_name=None, type=None, seq=''):
        self.db_name = db_name
        self.type = type
        self.seq = seq

    def __repr__(self):
        return '<%s %r %s>' % (type(self).__name__, self.db_name, self.type)


class UpdatesMeta(Metadata):
    fields = {
        'last_seq': ('last_seq', sequence_id, ''),
    }


def decode_update(it, update, event, value):
    data = it.read_value(event, value)
    if not isinstance(data, dict):
        raise exceptions.DecodeError("Expected a database update, got %r" % (data,))
    update.db_name = data.get('db_name')
    update.type = data.get('type')
    update.seq = sequence_id(data.get('seq'))
    return True


class DBUpdates(Iter):
    """Iterator over the ``_db_updates`` feed.

    Continuous feeds send one update object per line, normal feeds wrap them
    in ``{"results": [...], "last_seq": ...}``. The layout is detected from
    the first key of the body.
    """

    row_class = DBUpdate

    def __init__(self, ctx, body):
        super(DBUpdates, self).__init__(ctx, body, 'results', UpdatesMeta(), decode_update)

    @property
    def last_seq(self):
        return self.meta.last_seq

    def _begin(self):
        first = self._pull()
        if first is None:
            return False
        self._expect_map(*first)
        key = self.next_event()
        if key == ('map_key', 'db_name'):
            log.debug("Continuous db_updates feed")
            self._array_key = ''
            self._pushback.extend([key, first])
            return True
        if key == ('map_key', 'results'):
            self._pushback.append(key)
            return self._open_envelope(self.meta, self._array_key)
        raise exceptions.DecodeError(
            "unexpected JSON token %r in feed response, expected `db_name` or `results`" % (key[1],))
