"""Shared fixtures for the vacancy simulation tests."""

import pytest

from helpers import make_grid, make_model


@pytest.fixture
def grid():
    return make_grid()


@pytest.fixture
def model(grid):
    return make_model(grid)
