"""Exceptions raised by the page store."""


class WikiError(Exception):
    """Base class for wiki errors."""


class PageNotFoundError(WikiError):
    """The page file does not exist or cannot be read."""

    def __init__(self, title: str):
        self.title = title
        super().__init__(f"Page not found: {title}")


class StorageError(WikiError):
    """Writing or removing a page file failed."""

    def __init__(self, title: str, message: str):
        self.title = title
        self.message = message
        super().__init__(message)


class InvalidTitleError(WikiError, ValueError):
    """Title is not a non-empty run of ASCII letters and digits."""

    def __init__(self, title: str):
        self.title = title
        super().__init__(f"Invalid page title: {title!r}")
