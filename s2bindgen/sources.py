from __future__ import annotations

import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Dict, List

from s2bindgen.errors import SchemaSourceError
from s2bindgen.event_parser import EVENT_SOURCE_FILES

logger = logging.getLogger(__name__)

_TRACKING_BASE = "https://raw.githubusercontent.com/SteamDatabase/GameTracking-CS2/master/game"

EVENT_SOURCE_URLS: Dict[str, str] = {
    "core.gameevents": f"{_TRACKING_BASE}/core/pak01_dir/resource/core.gameevents",
    "game.gameevents": f"{_TRACKING_BASE}/csgo/pak01_dir/resource/game.gameevents",
    "mod.gameevents": f"{_TRACKING_BASE}/csgo/pak01_dir/resource/mod.gameevents",
}

FETCH_TIMEOUT_SECONDS = 30


def download_text(url: str) -> str:
    request = urllib.request.Request(url, method="GET", headers={"Accept": "text/plain"})
    with urllib.request.urlopen(request, timeout=FETCH_TIMEOUT_SECONDS) as response:
        return response.read().decode("utf-8")


def fetch_event_sources(directory: Path, *, offline: bool = False) -> List[Path]:
    """Refresh the canonical event files in ``directory``.

    Each file is downloaded and cached in place. When the download fails (or
    ``offline`` is set) the cached copy is used instead; a file with neither
    raises :class:`SchemaSourceError`.
    """
    cache_dir = Path(directory)
    cache_dir.mkdir(parents=True, exist_ok=True)

    paths: List[Path] = []
    for count, filename in enumerate(EVENT_SOURCE_FILES, start=1):
        path = cache_dir / filename
        if offline:
            paths.append(_use_cached(path, reason="offline mode"))
            continue

        url = EVENT_SOURCE_URLS[filename]
        logger.info("Downloading %s (%d/%d)...", filename, count, len(EVENT_SOURCE_FILES))
        try:
            content = download_text(url)
        except (urllib.error.URLError, OSError, UnicodeDecodeError) as exc:
            paths.append(_use_cached(path, reason=str(exc)))
            continue

        path.write_text(content, encoding="utf-8")
        paths.append(path)
    return paths


def _use_cached(path: Path, *, reason: str) -> Path:
    if not path.is_file():
        raise SchemaSourceError(
            f"Event source {path.name} is unavailable ({reason}) and no cached copy "
            f"exists at {path}"
        )
    logger.info("Using cached %s", path.name)
    return path
