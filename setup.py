#!/usr/bin/env python
import os
import sys
import subprocess

from setuptools import setup, find_packages
from setuptools.command.install import install

VERSION = '0.1.0'

class VerifyVersionCommand(install):
    """Custom command to verify that the git tag matches our version"""
    description = 'verify that the git tag matches our version'

    def run(self):
        tag = os.getenv('CAPREG_RELEASE_TAG', '')
        tag = tag.lstrip('v')

        if tag != VERSION:
            info = f"Git tag: {tag} does not match the version of this app: {VERSION}"
            sys.exit(info)

class ReplaceCommitVersion(install):
    description = 'Replace the embedded commit information with our current git commit'
    def run(self):
        try:
            ret = subprocess.run(['git', 'rev-parse', 'HEAD'],
                                 capture_output=True,
                                 timeout=15,
                                 check=False,
                                 text=True,
                                 )
        except Exception as e:
            print(f'Error grabbing commit: {e}')
            return 1
        else:
            commit = ret.stdout.strip()
        fp = './capreg/lib/version.py'
        with open(fp, 'rb') as fd:
            buf = fd.read()
        content = buf.decode()
        new_content = content.replace("commit = ''", f"commit = '{commit}'")
        if content == new_content:
            print(f'Unable to insert commit into {fp}')
            return 1
        with open(fp, 'wb') as fd:
            _ = fd.write(new_content.encode())
        print(f'Inserted commit {commit} into {fp}')
        return 0

setup(
    name='capreg',
    version=VERSION,
    description='An in-memory registry of owned entities addressed through typed capability interfaces.',
    python_requires='>=3.9',
    packages=find_packages(include=['capreg', 'capreg.*']),
    package_data={
        'capreg.tests': ['files/*.yaml'],
    },
    install_requires=[
        'regex>=2022.9.11',
        'PyYAML>=5.4',
        'msgpack>=1.0.5,<1.2.0',
        'msgspec>=0.18.5',
        'fastjsonschema>=2.18.0',
    ],
    extras_require={
        'dev': [
            'pytest>=7.2.0',
        ],
    },
    cmdclass={
        'verify': VerifyVersionCommand,
        'setcommit': ReplaceCommitVersion,
    },
)
