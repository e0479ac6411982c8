"""Shared fixtures for perch tests."""

from pathlib import Path

import pytest

from perch.app import App
from perch.config import AppConfig
from perch.templating.templates import TemplateSet

TEMPLATES_DIR = Path(__file__).parent / "templates"


@pytest.fixture
def templates_dir() -> Path:
    return TEMPLATES_DIR


@pytest.fixture
def templates() -> TemplateSet:
    return TemplateSet.load(TEMPLATES_DIR)


@pytest.fixture
def template_app() -> App:
    """An app wired to the fixture templates."""
    return App(AppConfig(template_dir=TEMPLATES_DIR))
