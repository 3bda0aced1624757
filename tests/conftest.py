import logging

import pytest

from field_detection import FieldDetectionEngine, parse_html
from field_detection.knowledge import clear_validation_cache, load_knowledge_base
from utils import env


@pytest.fixture(autouse=True)
def _reset_caches(monkeypatch):
    monkeypatch.delenv("BRA_DETECTOR_CONFIG_DIR", raising=False)
    monkeypatch.delenv("BRA_DETECTOR_ENV", raising=False)
    monkeypatch.delenv("BRA_DETECTOR_DEBUG", raising=False)
    env.reset_cache()
    clear_validation_cache()
    yield
    env.reset_cache()
    clear_validation_cache()


@pytest.fixture(scope="session")
def knowledge():
    return load_knowledge_base()


@pytest.fixture
def engine(knowledge):
    return FieldDetectionEngine(knowledge_base=knowledge)


@pytest.fixture
def parse():
    return parse_html


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
