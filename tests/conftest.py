"""Pytest configuration and shared fixtures."""

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tests.fixtures.test_inputs import (
    get_rollup_test_inputs,
    get_dated_test_inputs,
)


@pytest.fixture
def rollup_inputs():
    """Single-product deal for the cost/revenue roll-up."""
    return get_rollup_test_inputs()


@pytest.fixture
def dated_inputs():
    """Deal with takedowns, draws and a full timeline."""
    return get_dated_test_inputs()
