import json

import pytest

from persistent_state import cli
from persistent_state.storage import DEFAULT_PREFIX, FilesystemStorage


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run the CLI from a temp dir with a config that disables the free-space margin."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / 'persistent_state.yml').write_text('safety_margin: 0\n')
    store = tmp_path / 'state'
    store.mkdir()
    return store


def run_cli(*argv):
    return cli.main(list(argv))


def test_set_get_list_delete(workdir, capsys):
    assert run_cli('--dir', str(workdir), 'set', 'Settings', '{"account": "Testolope"}') == cli.EXIT_OK
    assert (workdir / (DEFAULT_PREFIX + 'Settings')).read_bytes() == b'{"account":"Testolope"}'

    assert run_cli('--dir', str(workdir), 'set', 'Counter', '3') == cli.EXIT_OK
    capsys.readouterr()

    assert run_cli('--dir', str(workdir), 'get', 'Settings') == cli.EXIT_OK
    assert json.loads(capsys.readouterr().out) == {'account': 'Testolope'}

    assert run_cli('--dir', str(workdir), 'list') == cli.EXIT_OK
    assert capsys.readouterr().out.splitlines() == ['Counter', 'Settings']

    assert run_cli('--dir', str(workdir), 'delete', 'Counter') == cli.EXIT_OK
    assert not (workdir / (DEFAULT_PREFIX + 'Counter')).exists()


def test_missing_key(workdir, capsys):
    assert run_cli('--dir', str(workdir), 'get', 'nope') == cli.EXIT_MISSING
    assert run_cli('--dir', str(workdir), 'delete', 'nope') == cli.EXIT_MISSING
    assert 'No entry for key' in capsys.readouterr().err


def test_invalid_json_value(workdir):
    assert run_cli('--dir', str(workdir), 'set', 'k', '{oops') == cli.EXIT_USAGE
    assert list(workdir.iterdir()) == []


def test_missing_directory(workdir, tmp_path):
    assert run_cli('--dir', str(tmp_path / 'absent'), 'list') == cli.EXIT_USAGE


def test_hidden_prefix_is_rejected(workdir):
    assert run_cli('--dir', str(workdir), '--prefix', '.hidden', 'list') == cli.EXIT_USAGE


def test_invalid_app_id(workdir, capsys):
    assert run_cli('--app-id', 'org/example', 'list') == cli.EXIT_USAGE
    assert 'invalid application id' in capsys.readouterr().err


def test_no_store_given(workdir, capsys):
    assert run_cli('list') == cli.EXIT_USAGE
    assert 'No store given' in capsys.readouterr().err


def test_invalid_config(workdir, tmp_path):
    (tmp_path / 'persistent_state.yml').write_text('key_encoding: rot13\n')
    assert run_cli('--dir', str(workdir), 'list') == cli.EXIT_USAGE


def test_directory_from_config(workdir, tmp_path, capsys):
    (tmp_path / 'persistent_state.yml').write_text(f'directory: {workdir}\nsafety_margin: 0\n')
    assert run_cli('set', 'k', '"v"') == cli.EXIT_OK
    assert run_cli('get', 'k') == cli.EXIT_OK
    assert json.loads(capsys.readouterr().out) == 'v'


def test_key_encoding_option(workdir):
    assert run_cli('--dir', str(workdir), '--key-encoding', 'base64', 'set', 'a/b', '1') == cli.EXIT_OK
    assert (workdir / (DEFAULT_PREFIX + 'YS9i')).is_file()


def test_out_of_space(workdir, monkeypatch):
    monkeypatch.setattr(FilesystemStorage, 'available_space', lambda self: 0)
    assert run_cli('--dir', str(workdir), 'set', 'k', '1') == cli.EXIT_NO_SPACE
    assert list(workdir.iterdir()) == []


def test_undecodable_entry_is_fatal(workdir, capsys):
    (workdir / (DEFAULT_PREFIX + '%zz')).write_bytes(b'1')
    assert run_cli('--dir', str(workdir), 'list') == cli.EXIT_FATAL
    assert 'Fatal storage error' in capsys.readouterr().err


def test_corrupted_entry_is_fatal(workdir):
    (workdir / (DEFAULT_PREFIX + 'k')).write_bytes(b'{not json')
    assert run_cli('--dir', str(workdir), 'get', 'k') == cli.EXIT_FATAL


def test_dir_and_app_id_are_exclusive(workdir):
    with pytest.raises(SystemExit):
        cli.parse_args(['--dir', str(workdir), '--app-id', 'x', 'list'])
