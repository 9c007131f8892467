"""
Shared pytest fixtures for resilience-simulator tests.
"""

import logging
from pathlib import Path

import pytest

from resiliencesim import Metronome


@pytest.fixture(scope="session")
def test_output_root() -> Path:
    """
    Returns the root test_output directory. Created once per test session.
    Files here persist after tests complete for easy access.
    """
    output_dir = Path(__file__).parent.parent / "test_output"
    output_dir.mkdir(exist_ok=True)
    return output_dir


@pytest.fixture
def test_output_dir(request, test_output_root) -> Path:
    """
    Returns a directory for the current test to write output files.
    Directory structure: test_output/<module_name>/<test_name>/
    """
    module_name = request.module.__name__.split(".")[-1]
    test_dir = test_output_root / module_name / request.node.name
    test_dir.mkdir(parents=True, exist_ok=True)
    return test_dir


@pytest.fixture
def metronome() -> Metronome:
    """A started metronome, stopped again after the test."""
    m = Metronome()
    m.start()
    yield m
    m.stop()


@pytest.fixture(autouse=True)
def reset_resiliencesim_logging():
    """Reset the resiliencesim logger to its silent default around each test."""
    logger = logging.getLogger("resiliencesim")

    def reset():
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            if not isinstance(handler, logging.NullHandler):
                handler.close()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)

    reset()
    yield
    reset()
