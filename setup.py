#!/usr/bin/env python
"""Setuptools distribution file."""
import os
from setuptools import setup


def _get_here(fname):
    return os.path.join(os.path.dirname(__file__), fname)


def _get_long_description(fname, encoding='utf8'):
    return open(fname, 'r', encoding=encoding).read()


setup(name='telnetneg',
      version='1.0.0',
      license='ISC',
      description="Python 3 asyncio Telnet option negotiation library",
      long_description=_get_long_description(fname=_get_here('README.rst')),
      packages=['telnetneg', 'telnetneg.tests'],
      package_data={'': ['README.rst'], },
      python_requires='>=3.8',
      extras_require={
          'test': ['pytest', 'pytest-asyncio'],
      },
      entry_points={
         'console_scripts': [
             'telnetneg-server = telnetneg.server:main',
         ]},
      platforms='any',
      zip_safe=True,
      keywords=', '.join(('telnet', 'server', 'negotiation', 'ttype',
                          'charset', 'mud', 'bbs', 'asyncio')),
      classifiers=['License :: OSI Approved :: ISC License (ISCL)',
                   'Programming Language :: Python :: 3',
                   'Intended Audience :: Developers',
                   'Development Status :: 4 - Beta',
                   'Topic :: System :: Networking',
                   'Topic :: Terminals :: Telnet',
                   'Topic :: Internet',
                   ],
      )
