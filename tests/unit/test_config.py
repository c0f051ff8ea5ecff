import pytest

from persistent_state.config import StoreConfig, load_config
from persistent_state.storage.file_backend import DEFAULT_PREFIX, SAFETY_MARGIN


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / 'nope.yml')
    assert cfg == StoreConfig()
    assert cfg.prefix == DEFAULT_PREFIX
    assert cfg.safety_margin == SAFETY_MARGIN
    assert cfg.key_encoding == 'percent'
    assert cfg.coder == 'json'
    assert cfg.directory is None and cfg.app_id is None


def test_empty_file_gives_defaults(tmp_path):
    p = tmp_path / 'cfg.yml'
    p.write_text('')
    assert load_config(p) == StoreConfig()


def test_valid_file(tmp_path):
    p = tmp_path / 'cfg.yml'
    p.write_text(
        'app_id: org.example.app\n'
        'key_encoding: base64\n'
        'safety_margin: 0\n'
        'log_level: DEBUG\n'
    )
    cfg = load_config(p)
    assert cfg.app_id == 'org.example.app'
    assert cfg.key_encoding == 'base64'
    assert cfg.safety_margin == 0
    assert cfg.log_level == 'DEBUG'


def test_invalid_yaml(tmp_path):
    p = tmp_path / 'cfg.yml'
    p.write_text('app_id: [unclosed\n')
    with pytest.raises(ValueError, match='parse error'):
        load_config(p)


def test_not_a_mapping(tmp_path):
    p = tmp_path / 'cfg.yml'
    p.write_text('- a\n- b\n')
    with pytest.raises(ValueError, match='expected mapping'):
        load_config(p)


@pytest.mark.parametrize('body', [
    'key_encoding: rot13\n',
    'safety_margin: -1\n',
    'prefix: ""\n',
    'prefix: .hidden\n',
    'coder: xml\n',
])
def test_invalid_values(tmp_path, body):
    p = tmp_path / 'cfg.yml'
    p.write_text(body)
    with pytest.raises(ValueError):
        load_config(p)


def test_default_path_is_relative_to_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / 'persistent_state.yml').write_text('coder: yaml\n')
    assert load_config().coder == 'yaml'
