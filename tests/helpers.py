from persistent_state.errors import OutOfSpace
from persistent_state.storage import MemoryStorage


class FlakyStorage(MemoryStorage):
    """MemoryStorage whose next `failures` writes raise OutOfSpace.

    Usage in tests:
        from tests.helpers import FlakyStorage
        storage = FlakyStorage()
        storage.failures = 2
    """

    def __init__(self, failures: int = 0):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def write(self, key, data):
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise OutOfSpace(f"simulated disk pressure writing {key!r}")
        super().write(key, data)
