"""Text sanitizers for submitted and admin-entered values"""
import re

import bleach

# bleach keeps the text inside stripped tags, but script and style bodies must go
_SCRIPT_STYLE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_WHITESPACE = re.compile(r"[\r\n\t ]+")
_KEY_CHARS = re.compile(r"[^a-z0-9_\-]")


def sanitize_text_field(value) -> str:
    """
    Clean a single-line text value.

    Strips tags (dropping script/style bodies), escapes a "<" or ">" that
    isn't part of a tag, and collapses whitespace. bleach encodes a bare
    "&" as "&amp;"; that is undone so plain text such as "Tom & Jerry" or
    "%2B1" passes through unchanged, and running the result through again
    changes nothing.
    """
    if value is None:
        return ""
    text = str(value)

    if "<" in text or ">" in text or "&" in text:
        text = _SCRIPT_STYLE.sub("", text)
        text = bleach.clean(text, tags=[], attributes={}, strip=True, strip_comments=True)
        text = text.replace("&amp;", "&")

    return _WHITESPACE.sub(" ", text).strip()


def sanitize_key(value) -> str:
    """Lowercase and keep only [a-z0-9_-], for option and org keys"""
    if value is None:
        return ""
    return _KEY_CHARS.sub("", str(value).lower())
