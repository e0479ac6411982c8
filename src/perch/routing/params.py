"""Path parameter converters for ``{name:type}`` segments."""

# (regex_pattern, python_type) for each supported converter
CONVERTERS: dict[str, tuple[str, type]] = {
    "str": (r"[^/]+", str),
    "int": (r"\d+", int),
    "float": (r"\d+(?:\.\d+)?", float),
    "path": (r".+", str),
}

# Parameter name a bare ``*`` wildcard segment captures into
WILDCARD_PARAM = "path"
