import logging
import typing

import click

from . import __doc__, __version__, api
from .services import ProcessedEnvFile, RunResult
from .source import KEYS_FILENAME
from .utils import MissingEnvFile, is_ignored

log = logging.getLogger(__name__)


def success(message: str, err: bool = False) -> None:
    click.secho(message, fg='green', err=err)


def warn(message: str) -> None:
    click.secho(message, fg='yellow', err=True)


def help_(message: str) -> None:
    click.secho(message, fg='blue', err=True)


def hint(message: str, err: bool = False) -> None:
    click.secho(message, dim=True, err=err)


env_files_option = click.option(
    '-f', '--env-file', 'env_files',
    metavar='PATH',
    envvar='ENVKEEPER_ENV_FILE',
    multiple=True,
    default=['.env'],
    show_default=True,
    type=click.STRING,
    help="Env file(s) to process.")

keys_option = click.option(
    '-k', '--key', 'keys',
    metavar='GLOB',
    multiple=True,
    type=click.STRING,
    help="Only process keys matching this pattern.")

exclude_keys_option = click.option(
    '-ek', '--exclude-key', 'exclude_keys',
    metavar='GLOB',
    multiple=True,
    type=click.STRING,
    help="Never process keys matching this pattern.")

workers_option = click.option(
    '-w', '--workers',
    envvar='ENVKEEPER_WORKERS',
    default=1,
    show_default=True,
    type=click.IntRange(min=1),
    help="Process this many files at once.")

stdout_option = click.option(
    '--stdout',
    default=False,
    is_flag=True,
    help="Print the result instead of writing it to the env files.")


def report_errors(result: RunResult, command: str) -> None:
    for processed in result.failed:
        warn(str(processed.error))
        if isinstance(processed.error, MissingEnvFile):
            help_(f'? add one with [echo "HELLO=World" > {processed.env_filepath}] '
                  f'and re-run [envkeeper {command}]')


def print_sources(result: RunResult) -> None:
    for processed in result.processed:
        if processed.env_src is not None:
            click.echo(processed.env_src, nl=False)


def write_changes(result: RunResult, done: str) -> bool:
    """Write changed env files, returning False if any of them couldn't be written."""
    failed = result.write()
    for processed in failed:
        warn(f"could not write {processed.env_filepath}: {processed.error}")

    unwritten = {processed.env_filepath for processed in failed}
    written = [path for path in result.changed_filepaths if path not in unwritten]
    if written:
        success(f"✔ {done} ({', '.join(written)})")
    elif not result.changed_filepaths and result.unchanged_filepaths:
        click.echo(f"no changes ({', '.join(result.unchanged_filepaths)})")

    return not failed


def report_added_key(processed: ProcessedEnvFile, err: bool = False) -> None:
    success(f"✔ key added to {KEYS_FILENAME} ({processed.private_key_name})", err=err)

    if not is_ignored(processed.filepath.parent / KEYS_FILENAME):
        hint(f'ℹ add {KEYS_FILENAME} to .gitignore: [echo "{KEYS_FILENAME}" >> .gitignore]', err=err)

    hint(f"ℹ run [{processed.private_key_name}='{processed.private_key}' "
         f"envkeeper decrypt --stdout] to test decryption locally", err=err)


@click.group(help=__doc__)
@click.option(
    '-d', '--debug', 'debug',
    default=False,
    is_flag=True,
    help="Enable debug logging.")
def main(debug: bool):
    logging.basicConfig(level=(logging.DEBUG if debug else logging.WARNING))


@main.command()
def version():
    """Show the application version."""
    click.echo(f"envkeeper {__version__}")


@main.command()
@env_files_option
@keys_option
@exclude_keys_option
@workers_option
@stdout_option
@click.pass_context
def encrypt(
        ctx: click.Context,
        env_files: typing.Sequence[str],
        keys: typing.Sequence[str],
        exclude_keys: typing.Sequence[str],
        workers: int,
        stdout: bool):
    """
    Encrypt the values of env files.

    A public key is added to each file and its private key to the '.env.keys' file in the same
    directory the first time a file is encrypted. Values that are already encrypted are skipped.
    """
    result = api.encrypt(env_files, keys, exclude_keys, workers)
    report_errors(result, 'encrypt')

    written = True
    if stdout:
        print_sources(result)
    else:
        written = write_changes(result, 'encrypted')

    # The key store is written either way.
    for processed in result.processed:
        if processed.private_key_added:
            report_added_key(processed, err=stdout)

    if result.failed or not written:
        ctx.exit(1)


@main.command()
@env_files_option
@keys_option
@exclude_keys_option
@workers_option
@stdout_option
@click.pass_context
def decrypt(
        ctx: click.Context,
        env_files: typing.Sequence[str],
        keys: typing.Sequence[str],
        exclude_keys: typing.Sequence[str],
        workers: int,
        stdout: bool):
    """
    Decrypt the values of env files.

    Private keys are read from the environment (e.g. $DOTENV_PRIVATE_KEY_PRODUCTION) or from the
    '.env.keys' file in the same directory, in that order.
    """
    result = api.decrypt(env_files, keys, exclude_keys, workers)
    report_errors(result, 'decrypt')

    written = True
    if stdout:
        print_sources(result)
    else:
        written = write_changes(result, 'decrypted')

    if result.failed or not written:
        ctx.exit(1)
