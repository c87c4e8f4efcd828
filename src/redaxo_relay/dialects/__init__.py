"""Markup dialects of the supported Redaxo releases."""

from redaxo_relay.dialects.base import CmsDialect
from redaxo_relay.dialects.redaxo4 import Redaxo4Dialect
from redaxo_relay.dialects.redaxo5 import Redaxo5Dialect

DIALECTS: dict[str, type[CmsDialect]] = {
    Redaxo5Dialect.name: Redaxo5Dialect,
    Redaxo4Dialect.name: Redaxo4Dialect,
}


def get_dialect(name: str) -> CmsDialect:
    """Get a dialect instance by name.

    Raises:
        ValueError: If no such dialect exists
    """
    try:
        return DIALECTS[name]()
    except KeyError:
        raise ValueError(f"Unknown Redaxo dialect: {name}")


__all__ = [
    "CmsDialect",
    "DIALECTS",
    "Redaxo4Dialect",
    "Redaxo5Dialect",
    "get_dialect",
]
