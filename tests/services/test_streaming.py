"""RangeStreamer and Range header parsing."""
import os
from pathlib import Path

import pytest

from conftest import write_file
from syncwave.core.catalog import AudioMetadata, build_entry
from syncwave.core.exceptions import FileMissingError, RangeNotSatisfiableError
from syncwave.services import streaming
from syncwave.services.streaming import (
    DEFAULT_MIME_TYPE,
    ByteRange,
    RangeStreamer,
    mime_type_for,
    parse_range,
)


async def read_all(body) -> bytes:
    return b"".join([chunk async for chunk in body])


@pytest.fixture
def song(tmp_path):
    path = write_file(tmp_path / "song.mp3", size=1000)
    return build_entry(path, AudioMetadata(), os.stat(path))


@pytest.fixture
def streamer():
    return RangeStreamer(chunk_size=64)


class TestParseRange:
    def test_no_header(self):
        assert parse_range(None, 1000) is None
        assert parse_range("", 1000) is None

    def test_closed_range(self):
        assert parse_range("bytes=0-99", 1000) == ByteRange(0, 99)

    def test_open_ended_range(self):
        assert parse_range("bytes=500-", 1000) == ByteRange(500, 999)

    def test_end_is_clamped(self):
        assert parse_range("bytes=900-5000", 1000) == ByteRange(900, 999)

    def test_suffix_range(self):
        assert parse_range("bytes=-100", 1000) == ByteRange(900, 999)
        assert parse_range("bytes=-5000", 1000) == ByteRange(0, 999)

    def test_only_first_of_multiple_ranges(self):
        assert parse_range("bytes=0-9, 20-29", 1000) == ByteRange(0, 9)

    def test_whitespace_and_unit_case(self):
        assert parse_range("Bytes= 10 - 19", 1000) == ByteRange(10, 19)

    @pytest.mark.parametrize(
        "header",
        ["bytes=abc", "bytes=", "bytes=-", "items=0-10", "0-10", "bytes=10-5", "bytes=1-2-3"],
    )
    def test_malformed_means_whole_file(self, header):
        assert parse_range(header, 1000) is None

    @pytest.mark.parametrize("header", ["bytes=1000-", "bytes=2000-3000", "bytes=-0"])
    def test_unsatisfiable(self, header):
        with pytest.raises(RangeNotSatisfiableError) as exc_info:
            parse_range(header, 1000)
        assert exc_info.value.file_size == 1000

    def test_any_range_on_empty_file_is_unsatisfiable(self):
        with pytest.raises(RangeNotSatisfiableError):
            parse_range("bytes=0-", 0)

    def test_content_range(self):
        assert ByteRange(0, 99).content_range(1000) == "bytes 0-99/1000"
        assert ByteRange(0, 99).length == 100


class TestStream:
    @pytest.mark.asyncio
    async def test_partial_content(self, streamer, song):
        result = await streamer.stream(song, "bytes=0-99")

        assert result.status_code == 206
        assert result.headers["Content-Range"] == "bytes 0-99/1000"
        assert result.headers["Content-Length"] == "100"
        assert result.headers["Accept-Ranges"] == "bytes"
        body = await read_all(result.body)
        with open(song.file_path, "rb") as f:
            assert body == f.read(100)

    @pytest.mark.asyncio
    async def test_middle_range(self, streamer, song):
        result = await streamer.stream(song, "bytes=300-599")
        body = await read_all(result.body)
        with open(song.file_path, "rb") as f:
            f.seek(300)
            assert body == f.read(300)

    @pytest.mark.asyncio
    async def test_full_content(self, streamer, song):
        result = await streamer.stream(song)

        assert result.status_code == 200
        assert result.headers["Content-Length"] == "1000"
        assert result.headers["Accept-Ranges"] == "bytes"
        assert "Content-Range" not in result.headers
        body = await read_all(result.body)
        with open(song.file_path, "rb") as f:
            assert body == f.read()

    @pytest.mark.asyncio
    async def test_malformed_range_same_as_no_range(self, streamer, song):
        plain = await streamer.stream(song)
        malformed = await streamer.stream(song, "bytes=abc")

        assert malformed.status_code == plain.status_code == 200
        assert malformed.headers == plain.headers
        assert await read_all(malformed.body) == await read_all(plain.body)

    @pytest.mark.asyncio
    async def test_missing_file(self, streamer, song):
        os.remove(song.file_path)
        with pytest.raises(FileMissingError):
            await streamer.stream(song)

    @pytest.mark.asyncio
    async def test_directory_in_place_of_file(self, streamer, song):
        os.remove(song.file_path)
        os.mkdir(song.file_path)
        with pytest.raises(FileMissingError):
            await streamer.stream(song)

    @pytest.mark.asyncio
    async def test_size_read_at_request_time(self, streamer, song):
        write_file(Path(song.file_path), size=1500)  # Grown since indexing
        result = await streamer.stream(song)
        assert result.headers["Content-Length"] == "1500"

    @pytest.mark.asyncio
    async def test_media_type_from_format(self, streamer, song):
        result = await streamer.stream(song)
        assert result.media_type == "audio/mpeg"

    @pytest.mark.asyncio
    async def test_handle_released_on_early_close(self, streamer, song, monkeypatch):
        opened = []

        def spy_open(*args, **kwargs):
            handle = open(*args, **kwargs)
            opened.append(handle)
            return handle

        monkeypatch.setattr(streaming, "open", spy_open, raising=False)
        result = await streamer.stream(song)
        first = await result.body.__anext__()
        assert len(first) == 64
        assert not opened[0].closed

        await result.body.aclose()  # Client went away
        assert opened[0].closed

    @pytest.mark.asyncio
    async def test_handle_released_after_full_read(self, streamer, song, monkeypatch):
        opened = []

        def spy_open(*args, **kwargs):
            handle = open(*args, **kwargs)
            opened.append(handle)
            return handle

        monkeypatch.setattr(streaming, "open", spy_open, raising=False)
        result = await streamer.stream(song, "bytes=10-19")
        assert await read_all(result.body) == bytes(range(10, 20))
        assert opened[0].closed


def test_mime_types():
    assert mime_type_for("MP3") == "audio/mpeg"
    assert mime_type_for("flac") == "audio/flac"
    assert mime_type_for("M4A") == "audio/mp4"
    assert mime_type_for("XYZ") == DEFAULT_MIME_TYPE
