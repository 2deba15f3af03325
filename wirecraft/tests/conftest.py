"""Unit tests configuration file."""

import importlib
import itertools
import os

import pytest

from wirecraft.generator import python
from wirecraft.generator.compiler import compile_protocol
from wirecraft.generator.loader import load_file

SPEC_DIR = os.path.join(os.path.dirname(os.path.realpath(__file__)), "generator")

_packages = itertools.count()


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


def _spec_path(name):
    return os.path.join(SPEC_DIR, name)


@pytest.fixture
def spec_path():
    """Path of a spec file shipped with the tests."""
    return _spec_path


@pytest.fixture
def compiled():
    """Load and compile a spec file shipped with the tests."""

    def load(name):
        return compile_protocol(load_file(_spec_path(name)))

    return load


@pytest.fixture
def generated(tmp_path, monkeypatch, compiled):
    """Render a spec to Python in a temporary package and import it."""

    def load(name):
        protocol = compiled(name)
        package = f"wirecraft_generated_{next(_packages)}"
        target = tmp_path / package
        target.mkdir()
        for filename, content in python.render(protocol).items():
            (target / filename).write_text(content, encoding="utf-8")
        monkeypatch.syspath_prepend(str(tmp_path))
        importlib.invalidate_caches()
        return importlib.import_module(package)

    return load
