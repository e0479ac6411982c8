"""The process-wide template set.

``TemplateSet.load()`` compiles every template under a root directory
once, at startup. A template that fails to parse aborts startup with
``TemplateLoadError``; it is never discovered at request time. After
load the set is read-only and is shared by every in-flight request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any

from kida import Environment
from kida import Template as KidaTemplate

from perch.errors import RenderError, TemplateLoadError
from perch.templating.context import build_context
from perch.templating.loader import TemplateDirectoryLoader

logger = logging.getLogger("perch.templates")


class TemplateSet:
    """Immutable mapping of template name → compiled kida template.

    Every template is reachable by its logical name (``"base"``,
    ``"partials/item"``) and by its file name (``"base.html"``). Page
    templates and fragment templates are a naming convention only; the
    set treats them alike.

    Usage::

        templates = TemplateSet.load("templates")
        html = templates.render("base", {"Title": "Home"})
        item = templates.render_block("pages/list", "items", {"items": items})
    """

    __slots__ = ("_env", "_names", "_templates", "root")

    def __init__(
        self,
        env: Environment,
        templates: Mapping[str, KidaTemplate],
        names: frozenset[str],
        root: Path,
    ) -> None:
        self._env = env
        self._templates = MappingProxyType(dict(templates))
        self._names = names
        self.root = root

    @classmethod
    def load(
        cls,
        root: str | Path,
        *,
        autoescape: bool = True,
        trim_blocks: bool = True,
        lstrip_blocks: bool = True,
        filters: Mapping[str, Callable[..., Any]] | None = None,
        globals_: Mapping[str, Any] | None = None,
    ) -> TemplateSet:
        """Scan *root* recursively and compile every template.

        Raises:
            TemplateLoadError: If *root* is missing, holds no templates,
                or any template fails to compile.
        """
        loader = TemplateDirectoryLoader(root)
        names = loader.list_templates()
        if not names:
            msg = f"No templates found under {loader.root}"
            raise TemplateLoadError(msg)

        env = Environment(
            loader=loader,
            autoescape=autoescape,
            auto_reload=False,
            trim_blocks=trim_blocks,
            lstrip_blocks=lstrip_blocks,
        )
        if filters:
            env.update_filters(dict(filters))
        for name, value in (globals_ or {}).items():
            env.add_global(name, value)

        compiled: dict[str, KidaTemplate] = {}
        for name in names:
            try:
                template = env.get_template(name)
            except Exception as exc:
                msg = f"Failed to load template {name!r}: {exc}"
                raise TemplateLoadError(msg, template_name=name) from exc
            compiled[name] = template
            filename = loader.resolve(name)
            if filename is not None:
                compiled[filename] = template

        logger.debug("Loaded %d templates from %s", len(names), loader.root)
        return cls(env, compiled, frozenset(names), loader.root)

    # -- Introspection --

    @property
    def names(self) -> frozenset[str]:
        """Logical names of every loaded template."""
        return self._names

    @property
    def env(self) -> Environment:
        return self._env

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"<TemplateSet {len(self._names)} templates from {self.root}>"

    def get(self, name: str) -> KidaTemplate:
        """Return the compiled template for *name*.

        Raises:
            RenderError: If no template has that name.
        """
        try:
            return self._templates[name]
        except KeyError:
            msg = f"Template {name!r} is not in the template set"
            raise RenderError(msg, template_name=name) from None

    def blocks(self, name: str) -> list[str]:
        """Names of the blocks *name* defines (fragment targets)."""
        return self.get(name).list_blocks()

    # -- Rendering --

    def render(self, name: str, context: Mapping[str, Any] | None = None) -> str:
        """Render template *name* against *context*.

        Raises:
            RenderError: Unknown template, missing required field, or any
                failure while executing the template.
        """
        template = self.get(name)
        ctx = build_context(context)
        try:
            return template.render(ctx)
        except Exception as exc:
            msg = f"Error rendering template {name!r}: {exc}"
            raise RenderError(msg, template_name=name) from exc

    def render_block(
        self,
        name: str,
        block: str,
        context: Mapping[str, Any] | None = None,
    ) -> str:
        """Render only *block* of template *name* (an htmx fragment)."""
        template = self.get(name)
        ctx = build_context(context)
        try:
            return template.render_block(block, ctx)
        except KeyError as exc:
            msg = f"Template {name!r} has no block {block!r}"
            raise RenderError(msg, template_name=name) from exc
        except Exception as exc:
            msg = f"Error rendering block {block!r} of template {name!r}: {exc}"
            raise RenderError(msg, template_name=name) from exc

    def render_stream(
        self,
        name: str,
        context: Mapping[str, Any] | None = None,
    ) -> Iterator[str]:
        """Render *name* as an iterator of HTML chunks.

        The template lookup happens immediately; execution errors surface
        as ``RenderError`` while iterating.
        """
        template = self.get(name)
        ctx = build_context(context)
        return self._stream(template, name, ctx)

    @staticmethod
    def _stream(template: KidaTemplate, name: str, ctx: dict[str, Any]) -> Iterator[str]:
        try:
            yield from template.render_stream(ctx)
        except Exception as exc:
            msg = f"Error rendering template {name!r}: {exc}"
            raise RenderError(msg, template_name=name) from exc
