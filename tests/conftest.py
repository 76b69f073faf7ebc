import os
import pathlib
import typing

import attr
import click.testing
import pytest

import envkeeper.cli


@pytest.fixture()
def workdir(tmp_path: pathlib.Path, monkeypatch) -> pathlib.Path:
    """An empty working directory with no private keys in the environment."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith('DOTENV_PRIVATE_KEY'):
            monkeypatch.delenv(name)
    return tmp_path


@pytest.fixture()
def invoke(workdir):
    def invoke_func(arguments: typing.Sequence[str], exit_code: int = 0):
        assert all(isinstance(arg, str) for arg in arguments)
        runner = click.testing.CliRunner()
        result = runner.invoke(envkeeper.cli.main, list(arguments))
        if result.exit_code != exit_code:
            message = f"Command envkeeper {' '.join(arguments)} exited with {result.exit_code}"
            raise Exception(message) from result.exception
        return result.output.splitlines()

    return invoke_func


@attr.s(frozen=True)
class ExampleEnv:
    name: str = attr.ib()
    filename: str = attr.ib()
    src: str = attr.ib()
    values: typing.Dict[str, str] = attr.ib()
    private_key_name: str = attr.ib()

    def __str__(self):
        return self.name

    def create(self, directory: pathlib.Path) -> pathlib.Path:
        path = directory / self.filename
        path.write_text(self.src)
        return path


@pytest.fixture(params=[
    ExampleEnv(
        'double-quoted',
        '.env',
        '# comment\nHELLO="world"\n',
        {'HELLO': 'world'},
        'DOTENV_PRIVATE_KEY',
    ),
    ExampleEnv(
        'unquoted',
        '.env.production',
        'DATABASE_URL=postgres://localhost/app\nAPI_KEY=sk-live-4fGhJ8kL # live key\n',
        {'DATABASE_URL': 'postgres://localhost/app', 'API_KEY': 'sk-live-4fGhJ8kL'},
        'DOTENV_PRIVATE_KEY_PRODUCTION',
    ),
    ExampleEnv(
        'single-quoted',
        '.env.staging.local',
        "\n\nexport SECRET='s3cr3t'\n\n# trailing comment\n",
        {'SECRET': 's3cr3t'},
        'DOTENV_PRIVATE_KEY_STAGING',
    ),
    ExampleEnv(
        'shebang',
        '.env.ci',
        '#!/usr/bin/env envkeeper\nHELLO=world\n',
        {'HELLO': 'world'},
        'DOTENV_PRIVATE_KEY_CI',
    ),
], ids=str)
def example(request) -> ExampleEnv:
    return request.param
