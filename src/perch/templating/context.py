"""Data context construction.

Handlers hand the renderer either keyword arguments or a single source
object. The source is checked and copied into a fresh ``dict`` so a
render never shares mutable state with another request.

Accepted sources:

- any ``Mapping`` with ``str`` keys
- a dataclass instance (its fields become keys, shallowly)

Fields a template needs must be present; optional ones should be guarded
in the template with ``is defined`` or ``| default(...)``.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any


def build_context(source: Any = None, /, **overrides: Any) -> dict[str, Any]:
    """Return a new context dict from *source* plus *overrides*.

    Raises:
        TypeError: If *source* is not a mapping or dataclass instance, or a
            key is not a string.
    """
    context: dict[str, Any] = {}
    if source is None:
        pass
    elif dataclasses.is_dataclass(source) and not isinstance(source, type):
        context.update(
            (f.name, getattr(source, f.name)) for f in dataclasses.fields(source)
        )
    elif isinstance(source, Mapping):
        for key, value in source.items():
            if not isinstance(key, str):
                msg = f"Template context keys must be strings, got {key!r}"
                raise TypeError(msg)
            context[key] = value
    else:
        msg = (
            "Template context must be a mapping or dataclass instance, "
            f"got {type(source).__name__}"
        )
        raise TypeError(msg)

    context.update(overrides)
    return context
