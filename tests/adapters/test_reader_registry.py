"""Tests for the source reader registry."""

from __future__ import annotations

import pytest

from sift_sync import adapters
from sift_sync.adapters import (
    CSVSourceReader,
    JSONSourceReader,
    get_source_reader,
    list_source_readers,
    register_source_reader,
)
from sift_sync.exceptions import SourceReaderNotFoundError


def test_builtin_readers_are_registered():
    assert isinstance(get_source_reader("csv"), CSVSourceReader)
    assert isinstance(get_source_reader("json"), JSONSourceReader)
    assert {"csv", "json"} <= set(list_source_readers())


def test_unknown_source_type_lists_available_types():
    with pytest.raises(SourceReaderNotFoundError, match="Available source types: csv, json"):
        get_source_reader("ftp")


def test_custom_reader_can_be_registered(monkeypatch):
    monkeypatch.setattr(adapters, "_READER_REGISTRY", dict(adapters._READER_REGISTRY))

    class TsvReader(CSVSourceReader):
        source_type = "tsv"

    register_source_reader("tsv", TsvReader)

    assert isinstance(get_source_reader("tsv"), TsvReader)
