import os

import pytest

from conftest import PNG_BYTES, write_file
from syncwave.core.exceptions import (
    CoverNotFoundError,
    ExtractionError,
    FileMissingError,
    SongNotFoundError,
)
from syncwave.core.ids import entry_id_for
from syncwave.services.query import QueryService


@pytest.fixture
def query(index, extractor):
    return QueryService(index, extractor=extractor)


@pytest.fixture
async def scanned(scanner, music_dir):
    write_file(music_dir / "with_cover.mp3")
    write_file(music_dir / "plain.mp3")
    await scanner.scan([music_dir])
    return music_dir


@pytest.mark.asyncio
async def test_list_and_search(query, scanned):
    assert len(query.list_songs()) == 2
    assert [e.title for e in query.search("COVER")] == ["With Cover"]
    assert query.search("") == query.list_songs()


@pytest.mark.asyncio
async def test_get_song(query, scanned):
    entry = query.get_song(entry_id_for(scanned / "plain.mp3"))
    assert entry.title == "Plain"
    with pytest.raises(SongNotFoundError):
        query.get_song("missing")


@pytest.mark.asyncio
async def test_cover_is_reextracted(query, extractor, scanned):
    path = scanned / "with_cover.mp3"
    calls_before = len(extractor.calls)
    picture = await query.get_cover(entry_id_for(path))
    assert picture.mime_type == "image/png"
    assert picture.data == PNG_BYTES
    assert len(extractor.calls) == calls_before + 1


@pytest.mark.asyncio
async def test_cover_missing(query, scanned):
    with pytest.raises(CoverNotFoundError):
        await query.get_cover(entry_id_for(scanned / "plain.mp3"))


@pytest.mark.asyncio
async def test_cover_for_deleted_file(query, scanned):
    path = scanned / "with_cover.mp3"
    os.remove(path)
    with pytest.raises(FileMissingError):
        await query.get_cover(entry_id_for(path))


@pytest.mark.asyncio
async def test_cover_extraction_failure(query, extractor, scanned):
    path = scanned / "with_cover.mp3"

    def broken(file_path):
        raise ExtractionError(str(file_path), "truncated")

    extractor.extract = broken
    with pytest.raises(ExtractionError):
        await query.get_cover(entry_id_for(path))
