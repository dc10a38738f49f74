"""Routers package."""

from . import (
    health,
    accounts,
    posts,
    report,
)
