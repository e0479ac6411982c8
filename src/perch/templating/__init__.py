"""Template loading and rendering on top of kida."""

from perch.templating.context import build_context
from perch.templating.loader import TemplateDirectoryLoader
from perch.templating.returns import Fragment, Page, Stream, Template
from perch.templating.templates import TemplateSet

__all__ = [
    "Fragment",
    "Page",
    "Stream",
    "Template",
    "TemplateDirectoryLoader",
    "TemplateSet",
    "build_context",
]
