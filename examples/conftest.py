"""Shared pytest configuration for boomer examples.

Each example directory holds an ``app.py`` that compiles a component and
renders it at import time. The ``example_app`` fixture executes that file
in a fresh module namespace per test, so every render uses new sinks and
a new render context.
"""

import importlib.util
from pathlib import Path

import pytest


@pytest.fixture
def example_app(request: pytest.FixtureRequest):
    """Import the app.py sibling of the requesting test as a new module."""
    app_path = Path(request.path).parent / "app.py"
    loader_spec = importlib.util.spec_from_file_location(
        f"boomer_example_{app_path.parent.name}", app_path
    )
    assert loader_spec is not None and loader_spec.loader is not None
    module = importlib.util.module_from_spec(loader_spec)
    loader_spec.loader.exec_module(module)
    return module
