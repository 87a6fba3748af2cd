"""
Prepare the configured storage location before the first request.

SQLite URLs get their parent directory created and the database file touched,
so a fresh checkout or an empty Docker volume starts cleanly. Memory and
network URLs need nothing. Can be called on app startup or run on its own:
python -m shortcodes.init_config
"""

from __future__ import annotations

from pathlib import Path

from shortcodes.config.settings import settings
from shortcodes.storage import create_store, sqlite_path_from_url
from shortcodes.util.logger import logger


def ensure_storage_location(database_url: str | None = None) -> Path | None:
    url = settings.database_url if database_url is None else database_url
    path = sqlite_path_from_url(url)
    if path is None:
        logger.debug("init_config: no local storage file for url scheme, skip")
        return None

    if str(path.parent) not in {"", "."}:
        path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        path.touch()
        logger.info("init_config: created sqlite file %s", path)
    return path


def main() -> None:
    """Command line / one-off container entry: create the file and the schema."""
    ensure_storage_location()
    store = create_store()
    logger.info("init_config: storage ready backend=%s mappings=%d", type(store).__name__, store.count_mappings())


if __name__ == "__main__":
    main()
