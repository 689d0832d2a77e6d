"""Turn HTML mail bodies into plain text for the extraction model."""

from __future__ import annotations

import re

_BLOCK_TAGS = re.compile(r"<(style|script)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_LINE_BREAKS = re.compile(r"<br\s*/?>|</p\s*>", re.IGNORECASE)
_TAGS = re.compile(r"<[^>]+>")
_HORIZONTAL_SPACE = re.compile(r"[ \t\f\v\xa0]+")
_SPACE_AROUND_NEWLINE = re.compile(r" *\n *")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")

# &amp; goes last so "&amp;lt;" decodes to "&lt;" rather than "<".
_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&amp;", "&"),
)


def _decode_entities(text: str) -> str:
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    return text


def html_to_text(content: str) -> str:
    text = content.replace("\r\n", "\n").replace("\r", "\n")
    text = _BLOCK_TAGS.sub("", text)
    text = _LINE_BREAKS.sub("\n", text)
    text = _TAGS.sub("", text)
    text = _decode_entities(text)
    text = _HORIZONTAL_SPACE.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE.sub("\n", text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def normalize_email_content(body: str | None, preview: str | None = None) -> str:
    """Return the plain-text body, or *preview* untouched when the body is empty."""

    if body and body.strip():
        return html_to_text(body)
    return preview or ""
