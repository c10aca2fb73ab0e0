"""
Pytest configuration for the sales tests.

This file adds the project root to the Python path so that tests can import
domain, repositories, services and api, and the tests directory so that they
can import the shared test support package.
"""

import sys
from pathlib import Path

tests_dir = Path(__file__).parent
project_root = tests_dir.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(tests_dir))

import pytest  # noqa: E402

from repositories.memory_sale_repository import InMemorySaleRepository  # noqa: E402


@pytest.fixture
def repository() -> InMemorySaleRepository:
    return InMemorySaleRepository()
