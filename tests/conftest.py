import sys
import os
import pytest
import logging
import faulthandler

# Enable faulthandler for better error reporting
faulthandler.enable()

# Determine the repository root (assumes tests/ is in the repository root)
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Insert the repository root at the beginning of sys.path if it's not already there
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from utils.error_handling import ErrorAudit, error_metrics

@pytest.fixture(autouse=True)
def setup_logging():
    # Configure logging for tests
    logging.getLogger().setLevel(logging.DEBUG)
    return None

@pytest.fixture(autouse=True)
def reset_error_audit():
    """Give every test a clean error audit."""
    ErrorAudit.clear()
    error_metrics.reset()
    yield
    ErrorAudit.clear()

@pytest.fixture
def python_language():
    """The tree-sitter Python grammar, skipping when the language pack is missing."""
    pytest.importorskip("tree_sitter")
    pytest.importorskip("tree_sitter_language_pack")
    from parsers.language_mapping import get_language_for_name
    return get_language_for_name("python")
