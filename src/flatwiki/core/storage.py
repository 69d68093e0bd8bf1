"""Storage abstraction for wiki pages."""

import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path

from flatwiki.core.errors import InvalidTitleError, PageNotFoundError, StorageError
from flatwiki.core.links import expand_links
from flatwiki.core.models import Page

logger = logging.getLogger(__name__)

# Page titles double as filename stems
TITLE_PATTERN = re.compile(r"[a-zA-Z0-9]+")

PAGE_FILE_MODE = 0o600


class Storage(ABC):
    """Abstract base class for page storage."""

    @abstractmethod
    async def load_page(self, title: str) -> Page:
        """Load a page by title. Raises PageNotFoundError if absent."""
        ...

    @abstractmethod
    async def save_page(self, page: Page) -> None:
        """Save a page. Creates if doesn't exist."""
        ...

    @abstractmethod
    async def delete_page(self, title: str) -> None:
        """Delete a page. Raises PageNotFoundError if absent."""
        ...

    @abstractmethod
    async def page_exists(self, title: str) -> bool:
        """Check if a page exists."""
        ...

    async def get_page(self, title: str) -> Page | None:
        """Load a page by title. Returns None if not found."""
        try:
            return await self.load_page(title)
        except PageNotFoundError:
            return None


class FileStorage(Storage):
    """File-based storage implementation.

    Each page is a single file, <title>.txt, holding the raw body bytes
    with no header or metadata. There is no locking: concurrent writes to
    the same title race and the last write wins.
    """

    def __init__(self, base_path: Path):
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _title_to_filename(self, title: str) -> str:
        """Convert page title to filename."""
        if not TITLE_PATTERN.fullmatch(title):
            raise InvalidTitleError(title)
        return title + ".txt"

    def _get_path(self, title: str) -> Path:
        """Get full path for a page."""
        return self.base_path / self._title_to_filename(title)

    async def load_page(self, title: str) -> Page:
        """Load a page and expand its inter-page links."""
        path = self._get_path(title)
        try:
            body = path.read_bytes()
        except FileNotFoundError:
            raise PageNotFoundError(title) from None
        except OSError as e:
            logger.warning("Could not read page %s: %s", title, e)
            raise PageNotFoundError(title) from e

        return Page(title=title, body=body, display_body=expand_links(body))

    async def save_page(self, page: Page) -> None:
        """Write the page body verbatim, owner read/write only."""
        path = self._get_path(page.title)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PAGE_FILE_MODE)
            with os.fdopen(fd, "wb") as f:
                f.write(page.body)
        except OSError as e:
            raise StorageError(page.title, str(e)) from e
        logger.debug("Saved page %s (%d bytes)", page.title, len(page.body))

    async def delete_page(self, title: str) -> None:
        """Delete a page file."""
        path = self._get_path(title)
        try:
            path.unlink()
        except FileNotFoundError:
            raise PageNotFoundError(title) from None
        except OSError as e:
            raise StorageError(title, str(e)) from e
        logger.debug("Deleted page %s", title)

    async def page_exists(self, title: str) -> bool:
        """Check if a page exists."""
        return self._get_path(title).is_file()
