"""wirecraft - Text wire protocol compiler for parsers, serializers and clients."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wirecraft")
except PackageNotFoundError:
    __version__ = "(local)"
