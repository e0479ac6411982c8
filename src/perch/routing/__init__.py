"""Routing — compiled route table with O(path-depth) matching.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes.
"""

from perch.routing.route import PathSegment, Route, RouteMatch
from perch.routing.router import Router, parse_path

__all__ = ["PathSegment", "Route", "RouteMatch", "Router", "parse_path"]
