import pytest

from persistent_state.errors import OutOfSpace
from persistent_state.storage.memory_backend import MemoryStorage


def test_memory_basic_operations():
    m = MemoryStorage()

    # write/read
    m.write('k', b'v')
    assert m.read('k') == b'v'

    # exists and list
    assert m.exists('k') is True
    assert m.list() == {'k'}

    # delete, and deleting again is a no-op
    m.delete('k')
    assert m.read('k') is None
    m.delete('k')
    assert m.list() == set()


def test_memory_keys_are_raw_bytes():
    m = MemoryStorage()
    m.write(b'\xff', b'1')
    m.write('text', b'2')
    assert m.read(b'text') == b'2'
    assert m.list() == {b'\xff', 'text'}


def test_memory_capacity():
    m = MemoryStorage(capacity=10)
    m.write('a', b'12345')
    m.write('b', b'1234')
    with pytest.raises(OutOfSpace):
        m.write('c', b'12')
    assert m.read('c') is None

    # replacing an entry only counts the new size
    m.write('a', b'123456')
    with pytest.raises(OutOfSpace):
        m.write('a', b'1234567')
    assert m.read('a') == b'123456'
