"""Template directory loader.

Scans a template root once and serves sources to kida by name. Each file
is addressable by its root-relative POSIX path (``pages/home.html``) and
by its logical name without the extension (``pages/home``), so templates
can write ``{% extends "base" %}`` or ``{% include "partials/nav" %}``.
"""

from pathlib import Path

from kida import TemplateNotFoundError

from perch.errors import TemplateLoadError

TEMPLATE_SUFFIXES: tuple[str, ...] = (".html",)


class TemplateDirectoryLoader:
    """kida loader over a fixed snapshot of a directory tree.

    The file list is taken at construction; templates added to the
    directory afterwards are not visible. Implements the kida loader
    protocol (``get_source`` / ``list_templates``).
    """

    __slots__ = ("_aliases", "_encoding", "_files", "root")

    def __init__(
        self,
        root: str | Path,
        *,
        suffixes: tuple[str, ...] = TEMPLATE_SUFFIXES,
        encoding: str = "utf-8",
    ) -> None:
        self.root = Path(root)
        self._encoding = encoding
        if not self.root.is_dir():
            msg = f"Template directory not found: {self.root}"
            raise TemplateLoadError(msg)

        self._files: dict[str, Path] = {}
        self._aliases: dict[str, str] = {}
        for path in sorted(self.root.rglob("*")):
            if not path.is_file() or path.suffix not in suffixes:
                continue
            name = path.relative_to(self.root).as_posix()
            self._files[name] = path
            logical = name.removesuffix(path.suffix)
            if logical in self._aliases:
                msg = (
                    f"Templates {self._aliases[logical]!r} and {name!r} share the "
                    f"logical name {logical!r}"
                )
                raise TemplateLoadError(msg, template_name=name)
            self._aliases[logical] = name

    def resolve(self, name: str) -> str | None:
        """Return the file name for *name* (file or logical), or None."""
        if name in self._files:
            return name
        return self._aliases.get(name)

    def get_source(self, name: str) -> tuple[str, str]:
        filename = self.resolve(name)
        if filename is None:
            msg = f"Template {name!r} not found in {self.root}"
            raise TemplateNotFoundError(msg)
        path = self._files[filename]
        return path.read_text(self._encoding), str(path)

    def list_templates(self) -> list[str]:
        """Logical names of every template, sorted."""
        return sorted(self._aliases)
