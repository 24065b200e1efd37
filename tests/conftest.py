from unittest.mock import Mock

import pytest

from tests.mocks.scheduler import FakeScheduler


@pytest.fixture
def scheduler() -> FakeScheduler:
    """
    Create a virtual-clock scheduler.
    """
    return FakeScheduler()


@pytest.fixture
def target() -> Mock:
    """
    Create a spy standing in for the batched target.
    """
    return Mock(return_value=None)
