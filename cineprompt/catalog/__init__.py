"""Read-only reference catalog: option tables plus the conflict rule tables."""

from .catalog import NO_CATEGORY, ReferenceCatalog, get_default_catalog, load_catalog

__all__ = ["NO_CATEGORY", "ReferenceCatalog", "get_default_catalog", "load_catalog"]
