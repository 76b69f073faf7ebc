import re

from envkeeper import api, source
from envkeeper.crypto import decrypt_value, is_encrypted
from envkeeper.services import Encrypt, Status
from envkeeper.utils import KeyStoreIOError, MissingEnvFile


def test_encrypt(workdir, example):
    path = example.create(workdir)

    result = api.encrypt(example.filename)

    processed, = result.processed
    assert processed.status is Status.CHANGED
    assert processed.private_key_added
    assert processed.private_key_name == example.private_key_name
    assert processed.filepath == path.resolve()
    assert set(processed.keys) == set(example.values)
    assert result.changed_filepaths == [example.filename]
    assert result.unchanged_filepaths == []

    parsed = source.parse(processed.env_src)
    for name, value in example.values.items():
        assert is_encrypted(name, parsed[name])
        assert decrypt_value(parsed[name], processed.private_key) == value


def test_encrypt_writes_key_store_but_not_env_file(workdir, example):
    path = example.create(workdir)

    processed, = api.encrypt(example.filename).processed

    assert path.read_text() == example.src
    keys = source.parse((workdir / '.env.keys').read_text())
    assert keys == {example.private_key_name: processed.private_key}


def test_format_is_preserved(workdir):
    (workdir / '.env').write_text('# comment\nHELLO="world"\n')

    processed, = api.encrypt('.env').processed

    assert re.search(r'\n# \.env\n# comment\nHELLO="encrypted:[A-Za-z0-9+/=]+"\n\Z', processed.env_src)


def test_shebang_is_preserved(workdir):
    (workdir / '.env').write_text('#!/usr/bin/env envkeeper\nHELLO=world\n')

    processed, = api.encrypt('.env').processed

    lines = processed.env_src.splitlines()
    assert lines[0] == '#!/usr/bin/env envkeeper'
    assert lines[1] == source.PUBLIC_KEY_BANNER[0]
    assert lines[-1].startswith('HELLO=encrypted:')


def test_encrypt_twice(workdir, example):
    example.create(workdir)
    first = api.encrypt(example.filename)
    first.write()
    keys_src = (workdir / '.env.keys').read_text()

    second = api.encrypt(example.filename)

    processed, = second.processed
    assert processed.status is Status.UNCHANGED
    assert processed.keys == ()
    assert not processed.private_key_added
    assert processed.env_src == first.processed[0].env_src
    assert (workdir / '.env.keys').read_text() == keys_src
    assert second.unchanged_filepaths == [example.filename]


def test_new_values_are_encrypted_with_the_existing_key(workdir):
    (workdir / '.env').write_text('HELLO=world\n')
    first, = api.encrypt('.env').processed
    (workdir / '.env').write_text(first.env_src + 'NEW=value\n')

    second, = api.encrypt('.env').processed

    assert second.keys == ('NEW',)
    assert second.public_key == first.public_key
    assert source.parse(second.env_src)['HELLO'] == source.parse(first.env_src)['HELLO']


def test_filters(workdir):
    (workdir / '.env').write_text('AB=1\nAC=2\nB=3\n')

    processed, = api.encrypt('.env', keys=['A*'], exclude_keys=['AB']).processed

    parsed = source.parse(processed.env_src)
    assert processed.keys == ('AC',)
    assert parsed['AB'] == '1'
    assert parsed['B'] == '3'
    assert is_encrypted('AC', parsed['AC'])


def test_only_the_key_is_added_when_nothing_matches(workdir):
    (workdir / '.env').write_text('HELLO=world\n')

    processed, = api.encrypt('.env', keys=['NOTHING']).processed

    assert processed.status is Status.CHANGED
    assert processed.keys == ()
    assert source.parse(processed.env_src)['HELLO'] == 'world'


def test_missing_file_does_not_stop_other_files(workdir):
    (workdir / 'present.env').write_text('HELLO=world\n')

    for env_files in (['present.env', 'missing.env'], ['missing.env', 'present.env']):
        result = api.encrypt(env_files)

        assert result.changed_filepaths == ['present.env']
        assert result.unchanged_filepaths == []
        failed, = result.failed
        assert failed.env_filepath == 'missing.env'
        assert failed.env_src is None
        assert isinstance(failed.error, MissingEnvFile)
        assert failed.error.code == 'MISSING_ENV_FILE'
        assert 'missing.env' in str(failed.error)
        assert str((workdir / 'missing.env').resolve()) in str(failed.error)


def test_other_errors_are_recorded(workdir):
    (workdir / '.env').mkdir()

    failed, = api.encrypt('.env').failed

    assert isinstance(failed.error, OSError)


def test_files_in_one_directory_share_a_key_store(workdir):
    names = ['.env', '.env.production', '.env.staging', '.env.ci', '.env.test']
    for name in names:
        (workdir / name).write_text('HELLO=world\n')

    result = Encrypt(names, workers=len(names)).run()

    assert [p.env_filepath for p in result.processed] == names
    assert result.changed_filepaths == names
    keys_src = (workdir / '.env.keys').read_text()
    keys = source.parse(keys_src)
    assert keys == {p.private_key_name: p.private_key for p in result.processed}
    assert keys_src.count('DOTENV_PRIVATE_KEYS') == 1


def test_line_endings_are_preserved(workdir):
    (workdir / '.env').write_bytes(b'# comment\r\nA="1"\r\nB=2\r\nHELLO="world"\r\n')

    api.encrypt('.env', keys=['B', 'HELLO']).write()

    raw = (workdir / '.env').read_bytes()
    assert b'# comment\r\nA="1"\r\nB=encrypted:' in raw
    assert re.search(rb'\r\nHELLO="encrypted:[A-Za-z0-9+/=]+"\r\n\Z', raw)
    assert b'\n' not in raw.replace(b'\r\n', b'')


def test_write_failure_does_not_stop_other_files(workdir):
    for name in ('.env', '.env.production'):
        (workdir / name).write_text('HELLO=world\n')
    result = api.encrypt(['.env', '.env.production'])
    (workdir / '.env').unlink()
    (workdir / '.env').mkdir()

    failed, = result.write()

    assert failed.env_filepath == '.env'
    assert failed.status is Status.FAILED
    assert isinstance(failed.error, IsADirectoryError)
    assert is_encrypted('HELLO', source.parse((workdir / '.env.production').read_text())['HELLO'])


def test_unreadable_key_store_does_not_stop_other_files(workdir):
    for name in ('broken', 'other'):
        (workdir / name).mkdir()
        (workdir / name / '.env').write_text('HELLO=world\n')
    (workdir / 'broken' / '.env.keys').mkdir()

    result = api.encrypt(['broken/.env', 'other/.env'])

    assert result.changed_filepaths == ['other/.env']
    failed, = result.failed
    assert failed.env_filepath == 'broken/.env'
    assert isinstance(failed.error, KeyStoreIOError)
    assert failed.error.code == 'KEY_STORE_IO_ERROR'
    assert (workdir / 'broken' / '.env').read_text() == 'HELLO=world\n'


def test_malformed_public_key_is_recorded(workdir):
    (workdir / '.env').write_text('DOTENV_PUBLIC_KEY="zz"\nHELLO=world\n')
    (workdir / '.env.other').write_text('HELLO=world\n')

    result = api.encrypt(['.env', '.env.other'])

    assert result.changed_filepaths == ['.env.other']
    failed, = result.failed
    assert isinstance(failed.error, ValueError)
