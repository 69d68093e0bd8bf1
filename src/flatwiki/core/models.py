"""Data models for FlatWiki."""

from markupsafe import Markup
from pydantic import BaseModel, ConfigDict


class Page(BaseModel):
    """Represents a wiki page."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: str
    body: bytes = b""
    display_body: Markup = Markup("")
    from_save: bool = False
    from_delete: bool = False

    @property
    def text(self) -> str:
        """Return the raw body as text for the edit form."""
        return self.body.decode("utf-8", errors="replace")
