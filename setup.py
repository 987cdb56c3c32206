import io
import os
import re

from setuptools import find_packages
from setuptools import setup


# doc: https://packaging.python.org/en/latest/guides/distributing-packages-using-setuptools/
# build:
#      all: python -m build
#      wheel: python -m build --wheel
#      source: python -m build --sdist
# test: python -m unittest discover tests

def read(filename):
    filename = os.path.join(os.path.dirname(__file__), filename)
    with io.open(filename, mode="r", encoding='utf-8') as fd:
        return re.sub(r':[a-z]+:`~?(.*?)`', r'``\1``', fd.read())


setup(
    name="weak_timers",
    version="2026.10.19",
    license='MIT',

    description="Repeating and one-shot timers dispatching to weakly referenced targets",
    long_description=read("README.md"),
    long_description_content_type="text/markdown",

    packages=find_packages(exclude=('tests', 'examples')),

    install_requires=['sortedcontainers'],
    extras_require={'test': ['pytest']},
    python_requires='>=3.7',

    classifiers=[
        'Development Status :: 4 - Beta',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    test_suite="tests",

)
