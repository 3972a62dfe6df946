"""
Tests for size estimation, buffer sizing and transfer-mode resolution.
"""

import pytest

from ftp_fetch.exceptions import ProtocolNegotiationError
from ftp_fetch.models import RemoteEntry, TransferMode, TransferModePolicy
from ftp_fetch.sizing import (
    MAX_BUFFER_SIZE,
    MIN_BUFFER_SIZE,
    derive_buffer_size,
    estimate_size,
    resolve_mode,
)


class TestDeriveBufferSize:
    """Test buffer size clamping."""

    @pytest.mark.parametrize("estimate", [-1, 0, 1, 512, 1023])
    def test_small_and_unknown_sizes_use_floor(self, estimate):
        assert derive_buffer_size(estimate) == MIN_BUFFER_SIZE == 1024

    @pytest.mark.parametrize("estimate", [1024, 2048, 65536, 10 * 1024 * 1024])
    def test_sizes_in_range_pass_through(self, estimate):
        assert derive_buffer_size(estimate) == estimate

    def test_clamps_at_ceiling(self):
        assert derive_buffer_size(MAX_BUFFER_SIZE) == MAX_BUFFER_SIZE
        assert derive_buffer_size(MAX_BUFFER_SIZE + 1) == MAX_BUFFER_SIZE
        assert derive_buffer_size(10 * MAX_BUFFER_SIZE) == 256 * 1024 * 1024

    def test_monotonic(self):
        sizes = [-1, 0, 100, 1024, 1025, 4096, 2**20, 2**28, 2**28 + 1, 2**32]
        buffers = [derive_buffer_size(s) for s in sizes]

        assert buffers == sorted(buffers)


class TestResolveMode:
    """Test AUTO mode selection."""

    @pytest.mark.parametrize(
        "path", ["report.TXT", "report.json", "/pub/data.xml", "/pub/README.Txt"]
    )
    def test_auto_text_suffixes(self, path):
        assert resolve_mode(TransferModePolicy.AUTO, path) is TransferMode.TEXT

    @pytest.mark.parametrize("path", ["archive.bin", "image.png", "notes.txt.gz", "", "/pub/"])
    def test_auto_binary_otherwise(self, path):
        assert resolve_mode(TransferModePolicy.AUTO, path) is TransferMode.BINARY

    def test_explicit_policies_ignore_suffix(self):
        assert resolve_mode(TransferModePolicy.TEXT, "archive.bin") is TransferMode.TEXT
        assert resolve_mode(TransferModePolicy.BINARY, "report.txt") is TransferMode.BINARY

    def test_policy_by_name(self):
        assert resolve_mode("text", "archive.bin") is TransferMode.TEXT

    def test_custom_suffixes(self):
        assert resolve_mode(TransferModePolicy.AUTO, "data.CSV", [".csv"]) is TransferMode.TEXT
        assert resolve_mode(TransferModePolicy.AUTO, "data.txt", [".csv"]) is TransferMode.BINARY

    def test_type_commands(self):
        assert TransferMode.TEXT.type_command == "TYPE A"
        assert TransferMode.BINARY.type_command == "TYPE I"


class ListingTransport:
    """Transport stub that only answers metadata listings."""

    def __init__(self, entries=None, error=None):
        self.entries = entries or []
        self.error = error
        self.paths = []

    async def list_path(self, path):
        self.paths.append(path)
        if self.error is not None:
            raise self.error
        return self.entries


class TestEstimateSize:
    """Test size estimation from a metadata listing."""

    @pytest.mark.asyncio
    async def test_single_file_entry(self):
        transport = ListingTransport([RemoteEntry(name="readme.txt", is_file=True, size=2048)])

        assert await estimate_size(transport, "/pub/readme.txt") == 2048
        assert transport.paths == ["/pub/readme.txt"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "entries",
        [
            [],
            [RemoteEntry(name="a", is_file=True, size=1), RemoteEntry(name="b", is_file=True, size=2)],
            [RemoteEntry(name="pub", is_file=False, size=4096)],
            [RemoteEntry(name="a", is_file=True, size=None)],
        ],
    )
    async def test_unknown_size(self, entries):
        assert await estimate_size(ListingTransport(entries), "/x") == -1

    @pytest.mark.asyncio
    async def test_listing_failure_gives_unknown(self):
        transport = ListingTransport(error=ProtocolNegotiationError("502 not implemented"))

        assert await estimate_size(transport, "/x") == -1
