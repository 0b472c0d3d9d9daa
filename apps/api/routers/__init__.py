"""Routers package."""

from . import (
    health,
    discovery,
    releases,
    jobs,
    internal,
    streaming,
    history,
)
