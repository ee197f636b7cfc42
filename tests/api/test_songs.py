import pytest
from httpx import AsyncClient

from conftest import write_file
from syncwave.core.ids import entry_id_for


@pytest.fixture
async def library(scanner, music_dir):
    write_file(music_dir / "Beatles" / "yellow_submarine.mp3")
    write_file(music_dir / "Beatles" / "help.flac")
    write_file(music_dir / "Radiohead" / "karma_police.m4a")
    await scanner.scan([music_dir])
    return music_dir


@pytest.mark.asyncio
async def test_list_songs(client: AsyncClient, library):
    response = await client.get("/api/songs")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert len(data["songs"]) == 3
    song = data["songs"][0]
    assert set(song) == {
        "id",
        "title",
        "artist",
        "album",
        "durationSeconds",
        "filePath",
        "fileSizeBytes",
        "format",
        "hasCoverArt",
    }


@pytest.mark.asyncio
async def test_list_empty_library(client: AsyncClient):
    response = await client.get("/api/songs")
    assert response.status_code == 200
    assert response.json() == {"songs": [], "total": 0}


@pytest.mark.asyncio
async def test_search(client: AsyncClient, library):
    response = await client.get("/api/songs/search", params={"q": "KARMA"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["songs"][0]["title"] == "Karma Police"


@pytest.mark.asyncio
async def test_search_is_case_insensitive(client: AsyncClient, library):
    upper = (await client.get("/api/songs/search", params={"q": "HELP"})).json()
    lower = (await client.get("/api/songs/search", params={"q": "help"})).json()
    assert upper == lower


@pytest.mark.asyncio
async def test_empty_search_returns_everything(client: AsyncClient, library):
    everything = (await client.get("/api/songs")).json()
    assert (await client.get("/api/songs/search")).json() == everything
    assert (await client.get("/api/songs/search", params={"q": ""})).json() == everything


@pytest.mark.asyncio
async def test_get_song(client: AsyncClient, library):
    song_id = entry_id_for(library / "Beatles" / "help.flac")
    response = await client.get(f"/api/songs/{song_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == song_id
    assert data["format"] == "FLAC"
    assert data["title"] == "Help"


@pytest.mark.asyncio
async def test_get_unknown_song(client: AsyncClient):
    response = await client.get("/api/songs/doesnotexist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Song not found"
