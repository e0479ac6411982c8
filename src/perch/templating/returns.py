"""Template, Fragment, Page, and Stream return types.

Frozen dataclasses that handlers return. The content negotiation layer
inspects these and renders them against the app's ``TemplateSet``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from perch.templating.context import build_context


@dataclass(frozen=True, slots=True)
class Template:
    """Render a full page template.

    Usage::

        return Template("base", Title="Home")
        return Template.of("pages/user", user, Title="Profile")
    """

    name: str
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, name: str, /, **context: Any) -> None:
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "context", context)

    @staticmethod
    def of(name: str, source: Any, /, **overrides: Any) -> Template:
        """Build from a mapping or dataclass instance plus overrides."""
        return Template(name, **build_context(source, **overrides))


@dataclass(frozen=True, slots=True)
class Fragment:
    """Render one named block of a template.

    Usage::

        return Fragment("pages/list", "items", items=items)
    """

    template_name: str
    block_name: str
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, template_name: str, block_name: str, /, **context: Any) -> None:
        object.__setattr__(self, "template_name", template_name)
        object.__setattr__(self, "block_name", block_name)
        object.__setattr__(self, "context", context)


@dataclass(frozen=True, slots=True)
class Page:
    """Render a full template or a named block, depending on the request.

    * Full template for normal navigations and htmx history restores.
    * Named block only for htmx fragment requests.

    Usage::

        return Page("base", "content", Title="Home")
    """

    name: str
    block_name: str
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, name: str, block_name: str, /, **context: Any) -> None:
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "block_name", block_name)
        object.__setattr__(self, "context", context)


@dataclass(frozen=True, slots=True)
class Stream:
    """Render a full template chunk by chunk.

    The status and headers are sent before rendering starts. A render
    failure part way through is logged and the response is closed with
    an HTML comment marker; it cannot turn into a 500.
    """

    name: str
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, name: str, /, **context: Any) -> None:
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "context", context)
