"""Metadata for the Project."""

from importlib.metadata import PackageNotFoundError, metadata, version

__all__ = ("__project__", "__version__")

try:
    __version__ = version("sqlconnection-plus")
    __project__ = metadata("sqlconnection-plus")["Name"]
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
    __project__ = "sqlconnection-plus"
finally:
    del version, PackageNotFoundError, metadata
