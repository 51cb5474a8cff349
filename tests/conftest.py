"""
Test configuration for the session analyzer tests.

sys.path is configured so both 'from app...' and the sibling
'from rrweb_builders import ...' resolve no matter where pytest is run from.
"""
import sys
from pathlib import Path

import pytest

_tests_dir = Path(__file__).parent
_project_root = _tests_dir.parent

for _path in (_project_root, _tests_dir):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

from app.services.behavior_engine import AnalyzerConfig, SessionAnalyzer  # noqa: E402
from app.services.behavior_engine.classifier import SessionClassifier  # noqa: E402


@pytest.fixture
def analyzer():
    return SessionAnalyzer()


@pytest.fixture
def classifier():
    return SessionClassifier(AnalyzerConfig())
