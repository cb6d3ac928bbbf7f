#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
# Copyright (C) 2007-2009 Christopher Lenz
# All rights reserved.
#
# This software is licensed as described in the file COPYING, which
# you should have received as part of this distribution.

from setuptools import setup

setup(
    name='CouchDB-streaming',
    version='2.0.0',
    description='Streaming Python client for CouchDB',
    long_description="""
    This is a Python library for CouchDB. It provides a high level interface
    for the CouchDB server, and decodes large results (views, changes feeds,
    bulk reads) row by row as they arrive, with cancellation and cookie
    session renewal.""",
    license = 'BSD',
    classifiers = [
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Database :: Front-Ends',
        'Topic :: Software Development :: Libraries :: Python Modules',
    ],
    packages = ['couchdb', 'couchdb.tests'],
    python_requires='>=3.7',
    install_requires=[
        "furl",
        "ijson>=3.0",
        "requests",
        "requests_toolbelt",
    ],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=True,
)
