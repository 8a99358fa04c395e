"""
Shared pytest configuration for the Buddy test suite.
"""

import shutil
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


requires_node = pytest.mark.skipif(shutil.which("node") is None,
                                   reason="node is not installed")


@pytest.fixture
def build_dir(tmp_path):
    """Fresh output directory for compile commands."""
    return tmp_path / "_build"
