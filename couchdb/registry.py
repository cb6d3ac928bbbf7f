"""Named connection factories.

A `Registry` maps a driver name to a callable that opens a connection for a
URL. Applications build and own their registry; nothing is registered at
import time.

>>> registry = default_registry()
>>> server = registry.connect('couch', 'http://localhost:5984/')
"""
import logging

__all__ = ['Registry', 'UnknownDriver', 'default_registry']

log = logging.getLogger(__name__)


class UnknownDriver(KeyError):
    """No factory is registered under the requested name."""

    def __str__(self):
        return "unknown driver %r" % (self.args[0],)


class Registry(object):

    def __init__(self):
        self._factories = {}

    def __contains__(self, name):
        return name in self._factories

    def register(self, name, factory):
        """Register `factory` under `name`.

        :param factory: a callable ``factory(url, **options)``
        :raise ValueError: if `name` is already registered
        """
        if name in self._factories:
            raise ValueError("driver %r is already registered" % name)
        log.debug("Registering driver %r", name)
        self._factories[name] = factory

    def connect(self, name, url, **options):
        """Open a connection with the factory registered under `name`."""
        try:
            factory = self._factories[name]
        except KeyError:
            raise UnknownDriver(name) from None
        return factory(url, **options)

    def names(self):
        return sorted(self._factories)


def default_registry():
    """Return a new registry with the CouchDB driver registered as ``couch``."""
    from couchdb.client import Server
    registry = Registry()
    registry.register('couch', Server)
    return registry
