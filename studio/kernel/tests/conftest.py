"""
Kernel test configuration.

Kernel tests run against MemoryStorage and a private HostContainer per test;
nothing touches the filesystem unless a test asks for tmp_path.
"""

import pytest

from studio.kernel.history import MemoryStorage
from studio.kernel.host import HostContainer


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def container(request):
    # Unique target id per test so the container registry never collides
    return HostContainer(f"surface-{request.node.name}")


class BrokenStorage(MemoryStorage):
    """Storage whose writes always fail."""

    def put(self, key, value):
        raise OSError("disk full")


@pytest.fixture
def broken_storage():
    return BrokenStorage()
