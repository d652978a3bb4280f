"""Shared test fixtures for zynav."""

from pathlib import Path

import pytest

from zynav.core.config import IndexConfig

MODEL_USERS = "namespace Model\nclass Users {\n    public $age;\n    function age() {}\n}\n"
LOGIC_USERS = "namespace Logic\nclass Users {\n    public $name;\n    function age() {}\n}\n"


def write(root: Path, rel: str, text: str) -> Path:
    """Create *rel* under *root* (with parents) holding *text*."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def write_file():
    """The ``write`` helper, for tests that lay out their own tree."""
    return write


@pytest.fixture
def index_config() -> IndexConfig:
    """Index settings with the refresh throttle switched off."""
    return IndexConfig(throttle_seconds=0)


@pytest.fixture
def tmp_project(tmp_path):
    """A project with two same-named classes in different namespaces."""
    write(tmp_path, "model/Users.zy", MODEL_USERS)
    write(tmp_path, "logic/Users.zy", LOGIC_USERS)
    write(tmp_path, "README.md", "# Test Project\n")
    return tmp_path
