"""API routers for maprender."""

from . import analyse, render

__all__ = ["render", "analyse"]
