import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient

# Settings create DATA_DIR at import; keep the test run out of the home dir
os.environ.setdefault("SYNCWAVE_DATA_DIR", tempfile.mkdtemp(prefix="syncwave-tests-"))

from syncwave.api.main import app
from syncwave.core.catalog import AudioMetadata, Picture
from syncwave.core.exceptions import ExtractionError
from syncwave.core.library_index import LibraryIndex
from syncwave.services.library import LibraryService
from syncwave.services.query import QueryService
from syncwave.services.streaming import RangeStreamer
from syncwave.worker.metadata import MetadataExtractor
from syncwave.worker.scanner import DirectoryScanner
from syncwave.worker.watcher import ChangeWatcher

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


class FakeExtractor(MetadataExtractor):
    """Extractor that never touches Mutagen.

    Files whose name contains "corrupt" fail; files whose name contains
    "cover" carry a PNG picture. Tags can be set per file name in ``tags``.
    """

    def __init__(self, tags: Optional[Dict[str, AudioMetadata]] = None):
        self.tags: Dict[str, AudioMetadata] = tags or {}
        self.calls: List[str] = []

    def extract(self, file_path) -> AudioMetadata:
        path = str(file_path)
        name = os.path.basename(path)
        self.calls.append(path)
        if not os.path.exists(path):
            raise ExtractionError(path, "No such file")
        if "corrupt" in name:
            raise ExtractionError(path, "can't sync to MPEG frame")
        if name in self.tags:
            return self.tags[name]
        pictures = [Picture("image/png", PNG_BYTES)] if "cover" in name else []
        stem = os.path.splitext(name)[0]
        return AudioMetadata(
            title=stem.replace("_", " ").title(),
            artist="Test Artist",
            album="Test Album",
            duration_seconds=180.0,
            pictures=pictures,
        )


def write_file(path: Path, size: int = 1000) -> Path:
    """Creates ``path`` (and parents) holding ``size`` deterministic bytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(bytes(i % 256 for i in range(size)))
    return path


@pytest.fixture
def music_dir(tmp_path: Path) -> Path:
    root = tmp_path / "Music"
    root.mkdir()
    return root


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def index() -> LibraryIndex:
    return LibraryIndex()


@pytest.fixture
def scanner(index, extractor):
    scanner = DirectoryScanner(index, extractor=extractor)
    yield scanner
    scanner.close()


@pytest.fixture
def watcher(index, scanner, music_dir):
    watcher = ChangeWatcher(index, scanner)
    watcher.add_root(music_dir)  # Not started: events are applied directly
    return watcher


@pytest.fixture
def library_service(index, scanner, music_dir):
    return LibraryService(index, scanner, watcher=None, directories=[music_dir])


@pytest.fixture
async def client(index, extractor, library_service):
    """Async test client with components wired onto app.state (no lifespan)."""
    app.state.index = index
    app.state.query_service = QueryService(index, extractor=extractor)
    app.state.streamer = RangeStreamer(chunk_size=64)
    app.state.library_service = library_service
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    task = library_service._scan_task
    if task is not None and not task.done():
        await task
