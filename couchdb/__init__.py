# -*- coding: utf-8 -*-
#
# Copyright (C) 2007-2009 Christopher Lenz
# All rights reserved.
#
# This software is licensed as described in the file COPYING, which
# you should have received as part of this distribution.

from couchdb import exceptions
from couchdb.auth import CookieAuth, ProxyAuth
from couchdb.bulkget import BulkGetRows
from couchdb.changes import Change, ChangesRows
from couchdb.client import Database, Document, Server
from couchdb.context import Context
from couchdb.exceptions import *
from couchdb.registry import Registry, UnknownDriver, default_registry
from couchdb.rows import FindRows, MultiQueryRows, RevsDiffRows, Row, Rows
from couchdb.updates import DBUpdate, DBUpdates

__version__ = '2.0.0'
