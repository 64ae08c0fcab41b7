"""Source reader registry for managing available source types."""

from ..exceptions import SourceReaderNotFoundError
from .base import BaseSourceReader
from .csv_reader import CSVSourceReader
from .json_reader import JSONSourceReader

# Reader registry - register new source types here
_READER_REGISTRY: dict[str, type[BaseSourceReader]] = {}


def register_source_reader(name: str, reader_class: type[BaseSourceReader]) -> None:
    """
    Register a new source reader class.

    Args:
        name: Source type identifier, matching ``DataSource.source_type``
        reader_class: Reader class to register
    """
    _READER_REGISTRY[name] = reader_class


def get_source_reader(name: str) -> BaseSourceReader:
    """
    Build a reader for a source type.

    Args:
        name: Source type identifier

    Returns:
        Reader instance

    Raises:
        SourceReaderNotFoundError: If the source type is not registered
    """
    if name not in _READER_REGISTRY:
        available = sorted(_READER_REGISTRY.keys())
        available_display = ", ".join(available) if available else "none"
        raise SourceReaderNotFoundError(
            f"Source type '{name}' is not registered. Available source types: {available_display}."
        )
    return _READER_REGISTRY[name]()


def list_source_readers() -> list[str]:
    """Return list of registered source types."""
    return list(_READER_REGISTRY.keys())


register_source_reader("csv", CSVSourceReader)
register_source_reader("json", JSONSourceReader)

__all__ = [
    "BaseSourceReader",
    "CSVSourceReader",
    "JSONSourceReader",
    "get_source_reader",
    "list_source_readers",
    "register_source_reader",
]
