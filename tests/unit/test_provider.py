import pytest

from persistent_state.errors import FatalStorageError
from persistent_state.provider import (
    BoxedDictionary,
    BoxedValue,
    Mapped,
    MappedDictionary,
    MappedValue,
    ValueProvider,
)
from persistent_state.storage import file_backend


def test_value_without_default(memory_storage):
    provider = ValueProvider(memory_storage)
    assert provider.value('Counter') is None
    provider.value('Counter', 0)
    mapped = provider.value('Counter')
    assert isinstance(mapped, MappedValue)
    assert mapped.load() == 0


def test_value_load_store_delete(memory_storage):
    provider = ValueProvider(memory_storage)
    counter = provider.value('Counter', 0)
    for expected in range(5):
        value = counter.load()
        assert value == expected
        counter.store(value + 1)
    assert provider.value('Counter', 0).load() == 5
    counter.delete()
    assert provider.value('Counter') is None


def test_dictionary(memory_storage):
    provider = ValueProvider(memory_storage)
    assert provider.dictionary('Settings') is None

    settings = provider.dictionary('Settings', {})
    assert isinstance(settings, MappedDictionary)
    settings['account'] = 'Testolope'
    assert settings['account'] == 'Testolope'
    assert settings.load_or_insert('theme', 'dark') == 'dark'
    assert settings.list() == {'account', 'theme'}
    assert settings.load() == {'account': 'Testolope', 'theme': 'dark'}

    # storing None removes the entry
    settings.store('theme', None)
    assert provider.dictionary('Settings').load() == {'account': 'Testolope'}
    settings.delete()
    assert provider.dictionary('Settings') is None


def test_provider_passes_on_error_handler(memory_storage):
    calls = []

    def handler(desc):
        calls.append(desc)
        return len(calls) < 3

    memory_storage.capacity = 1
    provider = ValueProvider(memory_storage, on_error=handler)
    with pytest.raises(FatalStorageError):
        provider.value('big', 'x' * 10)
    assert len(calls) == 3
    assert memory_storage.read('big') is None


def test_for_application(tmp_path, monkeypatch):
    monkeypatch.setattr(file_backend, 'application_data_dir', lambda app_id: tmp_path / app_id)
    provider = ValueProvider.for_application('org.example.provider')
    provider.value('k', 1)
    assert (tmp_path / 'org.example.provider').is_dir()
    assert provider.storage.list() == {'k'}


def test_mapped_descriptor(memory_storage):
    provider = ValueProvider(memory_storage)

    class Counter:
        value = Mapped(provider, 'Counter', default=0)

        def next(self):
            current = self.value
            self.value = current + 1
            return current

    c = Counter()
    assert [c.next() for _ in range(3)] == [0, 1, 2]
    assert Counter().value == 3
    assert memory_storage.read('Counter') == b'3'
    assert isinstance(Counter.value, Mapped)

    del c.value
    assert memory_storage.read('Counter') is None


def test_boxed_wrappers_satisfy_protocols(memory_storage):
    provider = ValueProvider(memory_storage)
    assert isinstance(provider.value('v', 1), BoxedValue)
    assert isinstance(provider.dictionary('d', {}), BoxedDictionary)
