import io
import json

from couchdb import exceptions
from couchdb.iterator import Iter, Metadata, raw_json

__all__ = ['Change', 'ChangesRows', 'sequence_id']


def sequence_id(value):
    """Normalize a sequence ID to a string.

    CouchDB 1.x sends sequence IDs as integers, later versions as opaque
    strings. Non-string values keep their JSON text, so ``42`` becomes
    ``"42"``.
    """
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(',', ':'))


class Change(object):
    """A single entry of a changes feed.

    :ivar id: the document ID
    :ivar seq: the sequence ID of the change, as a string
    :ivar changes: list of leaf revisions
    :ivar deleted: whether the change deleted the document
    :ivar doc: binary stream of the document JSON, when ``include_docs`` was
               requested
    """

    def __init__(self, id=None, seq='', changes=None, deleted=False, doc=None):
        self.id = id
        self.seq = seq
        self.changes = changes or []
        self.deleted = deleted
        self.doc = doc

    def __repr__(self):
        return '<%s %r@%s%s>' % (type(self).__name__, self.id, self.seq,
                                 ' deleted' if self.deleted else '')


class ChangesMeta(Metadata):
    fields = {
        'last_seq': ('last_seq', sequence_id, ''),
        'pending': ('pending', int, 0),
    }


def decode_change(it, change, event, value):
    data = it.read_value(event, value)
    if not isinstance(data, dict):
        raise exceptions.DecodeError("Expected a change object, got %r" % (data,))
    if 'id' not in data and 'last_seq' in data:
        # Final line of a continuous feed.
        for key in ('last_seq', 'pending'):
            if key in data:
                it.meta.parse(key, data[key])
        return False
    change.id = data.get('id')
    change.seq = sequence_id(data.get('seq'))
    change.changes = [leaf.get('rev') for leaf in data.get('changes') or []]
    change.deleted = bool(data.get('deleted', False))
    doc = data.get('doc')
    change.doc = io.BytesIO(raw_json(doc)) if doc is not None else None
    return True


class ChangesRows(Iter):
    """Iterator over a ``_changes`` response.

    :param array_key: ``"results"`` for normal and longpoll feeds, empty for
                      continuous feeds
    :param etag: the unquoted ETag of the response, if any
    """

    row_class = Change

    def __init__(self, ctx, body, array_key='results', etag=''):
        super(ChangesRows, self).__init__(ctx, body, array_key, ChangesMeta(), decode_change)
        self._etag = etag

    def next(self, change):
        # The caller's Change may still carry deleted=True from a previous row.
        change.deleted = False
        return super(ChangesRows, self).next(change)

    @property
    def etag(self):
        return self._etag

    @property
    def last_seq(self):
        return self.meta.last_seq

    @property
    def pending(self):
        return self.meta.pending
