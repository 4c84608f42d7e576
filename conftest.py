# conftest.py
import dataclasses

import matplotlib
import pytest

from pyfemx.parameters import PARAMETERS


@pytest.fixture(autouse=True)
def mpl_test_backend():
    """Switch to a non-interactive backend for all tests."""
    matplotlib.use('Agg')


@pytest.fixture(autouse=True)
def restore_parameters():
    """Undo edits of the global PARAMETERS made inside a test."""
    saved = dataclasses.asdict(PARAMETERS)
    yield PARAMETERS
    for name, value in saved.items():
        setattr(PARAMETERS, name, value)
