"""
Shared pytest fixtures for tests.
"""

from typing import Generator

import pytest

from jsonfunc.config import set_config
from jsonfunc.testing import LocalClient


@pytest.fixture
def lc() -> LocalClient:
    return LocalClient()


@pytest.fixture(autouse=True)
def reset_config() -> Generator[None, None, None]:
    yield
    set_config()
