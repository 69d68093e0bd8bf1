"""Inter-page link expansion for page bodies."""

import re

from markupsafe import Markup, escape


# Pattern for inter-page links: [PageName] (an empty [] is a link too)
INTER_PAGE_LINK_PATTERN = r"\[([a-zA-Z0-9]*)\]"

_LINK_RE = re.compile(INTER_PAGE_LINK_PATTERN)

LINK_TEMPLATE = Markup('<a href="/view/{name}">{name}</a>')


def expand_links(body: bytes | str) -> Markup:
    """Expand [Name] tokens in a page body into links to /view/Name.

    Text between tokens is HTML-escaped so the result is safe to insert
    into a template as-is. Raw markup in a body is never rendered.

    Args:
        body: Raw page body.

    Returns:
        Markup with every link token replaced by an anchor element.
    """
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    parts: list[str] = []
    pos = 0
    for m in _LINK_RE.finditer(text):
        parts.append(escape(text[pos : m.start()]))
        parts.append(LINK_TEMPLATE.format(name=m.group(1)))
        pos = m.end()
    parts.append(escape(text[pos:]))
    return Markup("").join(parts)
