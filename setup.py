# -*- coding: utf-8 -*-
"""
LDBind
======

LDBind_ binds JSON-LD_ documents to Python dataclasses.

.. _LDBind: http://github.com/ldbind/ldbind
.. _JSON-LD: http://json-ld.org/
"""

from setuptools import setup
import os

# get meta data
about = {}
with open(os.path.join(
        os.path.dirname(__file__), 'lib', 'ldbind', '__about__.py')) as fp:
    exec(fp.read(), about)

with open(os.path.join(os.path.dirname(__file__), 'README.rst')) as fp:
    long_description = fp.read()

setup(
    name='LDBind',
    version=about['__version__'],
    description='Bind JSON-LD documents to Python dataclasses',
    long_description=long_description,
    author='LDBind contributors',
    url='http://github.com/ldbind/ldbind',
    packages=['ldbind', 'ldbind.documentloader'],
    package_dir={'': 'lib'},
    python_requires='>=3.8',
    license='BSD 3-Clause license',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Web Environment',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: Internet',
        'Topic :: Software Development :: Libraries',
    ],
    install_requires=[],
    extras_require={
        'requests': ['requests'],
        'aiohttp': ['aiohttp'],
        'tests': ['pytest', 'requests', 'aiohttp'],
    }
)
