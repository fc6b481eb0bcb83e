"""
Quote-aware text helpers for DBC statements.

Fields are separated by whitespace except inside double-quoted spans;
a quoted span may contain escaped quotes (\\") and literal newlines.
"""

from typing import Optional

# Characters outside plain ASCII that commonly appear in supplier files
TRANSLITERATION = {
    "ü": "u",
    "ö": "o",
    "ä": "a",
    "ß": "ss",
    "Ü": "U",
    "Ö": "O",
    "Ä": "A",
    "¿": "?",
}

_TRANSLITERATE = str.maketrans(TRANSLITERATION)
_UNESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\"}


def transliterate(text: str) -> str:
    return text.translate(_TRANSLITERATE)


def strip_statement(line: str) -> str:
    """Trim whitespace and one trailing semicolon."""
    line = line.strip()
    if line.endswith(";"):
        line = line[:-1].rstrip()
    return line


def count_unescaped_quotes(text: str) -> int:
    count = 0
    escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            count += 1
    return count


def has_open_quote(text: str) -> bool:
    """True when a quoted span is started but not yet closed."""
    return count_unescaped_quotes(text) % 2 == 1


def tokenize(text: str) -> list[str]:
    """
    Split on whitespace outside of quoted spans.

    Quoted spans stay inside their token, quotes and escapes included, so
    callers can tell quoted from bare fields; use unquote() on them.
    """
    tokens = []
    current: list[str] = []
    in_quotes = False
    escaped = False
    for char in text:
        if in_quotes:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_quotes = False
        elif char == '"':
            in_quotes = True
            current.append(char)
        elif char.isspace():
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)
    if current:
        tokens.append("".join(current))
    return tokens


def is_quoted(token: str) -> bool:
    return len(token) >= 2 and token[0] == '"' and token[-1] == '"'


def unescape(text: str) -> str:
    out = []
    chars = iter(text)
    for char in chars:
        if char == "\\":
            following = next(chars, "")
            out.append(_UNESCAPES.get(following, "\\" + following))
        else:
            out.append(char)
    return "".join(out)


def unquote(token: str) -> str:
    """Contents of a quoted token with escapes resolved; bare tokens pass through."""
    if is_quoted(token):
        return unescape(token[1:-1])
    return token


def quoted_strings(text: str) -> list[str]:
    """Unescaped contents of every quoted span in text, in order."""
    found = []
    current: list[str] = []
    in_quotes = False
    escaped = False
    for char in text:
        if not in_quotes:
            if char == '"':
                in_quotes = True
                current = []
            continue
        if escaped:
            current.append("\\" + char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            found.append(unescape("".join(current)))
            in_quotes = False
        else:
            current.append(char)
    return found


def split_first_quoted(text: str) -> Optional[tuple[str, str, str]]:
    """
    Split text around its first complete quoted span.

    Returns:
        (before, unescaped contents, after) or None when there is no
        complete quoted span
    """
    start = text.find('"')
    if start < 0:
        return None
    escaped = False
    for index in range(start + 1, len(text)):
        char = text[index]
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            return text[:start], unescape(text[start + 1 : index]), text[index + 1 :]
    return None
