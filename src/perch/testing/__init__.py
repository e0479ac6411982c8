"""Testing utilities for perch applications."""

from perch.testing.assertions import assert_is_error_fragment, assert_is_fragment
from perch.testing.client import TestClient

__all__ = ["TestClient", "assert_is_error_fragment", "assert_is_fragment"]
