"""
Provides project-level commands. Commands are run via `python setup.py <command> [args]`

Commands available:

- apidoc: regenerate reST docs for inline pydoc comments
"""

from setuptools import setup, Command

import os


class RunInRootCommand(Command):
    user_options = []

    def initialize_options(self):
        self.cwd = None

    def finalize_options(self):
        self.cwd = os.getcwd()

    def run(self):
        assert os.getcwd() == self.cwd, 'Must be in package root: %s' % self.cwd
        self.runcmd()

    def runcmd(self):
        pass


class ApiDocCommand(RunInRootCommand):
    description = "regenerates the API docs"

    def runcmd(self):
        os.system('"sphinx-apidoc" -f -e -o docs/apidoc src/ariconnector "src/ariconnector/*_test.py"')


setup(
    name='ari-connector-py',
    version='0.0.1',
    description='Command correlation, event routing and resource lifecycles for Asterisk ARI clients.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['ariconnector', 'ariconnector.config', 'ariconnector.protocol', 'ariconnector.resources',
              'ariconnector.support', 'ariconnector.transport'],
    package_data={'ariconnector.config': ['*.cfg']},
    python_requires='>=3.8',
    install_requires=[
        'configobj',
        'httpx',
        'websockets>=12',
    ],
    extras_require={
        'test': ['pytest', 'PyHamcrest', 'timeout-decorator'],
    },
    zip_safe=False,
    cmdclass={
        'apidoc': ApiDocCommand,
    }
)
