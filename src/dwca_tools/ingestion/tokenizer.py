"""Delimited-row tokenizer.

Splits one physical line on a literal delimiter string. When a quote
character is configured, quoted sections keep delimiters verbatim and a
doubled quote inside a quoted section stands for one literal quote.

Limitations:
- Input is consumed one physical line at a time, so a line break inside a
  quoted field ends the row.
- Malformed quoting never raises; an unterminated quoted section runs to the
  end of the line.
"""

from __future__ import annotations

from typing import List, Optional


def tokenize(line: str, delimiter: str, quote: Optional[str] = None) -> List[Optional[str]]:
    """Split a line into field values.

    Args:
        line: One physical line without its line terminator.
        delimiter: Literal delimiter string (not a regular expression).
        quote: Optional single quote character.

    Returns:
        Ordered field values; empty fields are None.

    Examples:
        >>> tokenize('1,"a,b",3', ",", '"')
        ['1', 'a,b', '3']
        >>> tokenize("a\\t\\tc\\t", "\\t")
        ['a', None, 'c', None]
    """
    if not line:
        return []
    if not delimiter:
        raise ValueError("A delimiter is required")
    if not quote or quote not in line:
        return [tok if tok else None for tok in line.split(delimiter)]
    return _tokenize_quoted(line, delimiter, quote)


def _tokenize_quoted(line: str, delimiter: str, quote: str) -> List[Optional[str]]:
    tokens: List[Optional[str]] = []
    buf: List[str] = []
    dlen = len(delimiter)
    n = len(line)
    i = 0
    quoted = False
    while i < n:
        ch = line[i]
        if quoted:
            if ch == quote:
                if i + 1 < n and line[i + 1] == quote:
                    buf.append(quote)
                    i += 2
                    continue
                quoted = False
                i += 1
                continue
            buf.append(ch)
            i += 1
            continue
        if line.startswith(delimiter, i):
            tokens.append("".join(buf) or None)
            buf = []
            i += dlen
            continue
        if ch == quote:
            quoted = True
            i += 1
            continue
        buf.append(ch)
        i += 1
    tokens.append("".join(buf) or None)
    return tokens


class Tokenizer:
    """A tokenizer bound to one delimiter and quote character."""

    def __init__(self, delimiter: str, quote: Optional[str] = None) -> None:
        if not delimiter:
            raise ValueError("A delimiter is required")
        self.delimiter = delimiter
        self.quote = quote

    def __call__(self, line: str) -> List[Optional[str]]:
        return tokenize(line, self.delimiter, self.quote)

    def __repr__(self) -> str:
        return f"Tokenizer(delimiter={self.delimiter!r}, quote={self.quote!r})"


__all__ = ["tokenize", "Tokenizer"]
