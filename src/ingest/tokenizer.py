"""Quote-aware field splitting for delimited source lines.

A field is quoted only when its first character is the quote character.
Inside a quoted span delimiters are literal and a doubled quote decodes
to one quote. An unterminated quote consumes the rest of the line.
"""

from __future__ import annotations

from core.constants import QUOTE_CHAR


def parse_line(line: str, delimiter: str = ",", quote: str = QUOTE_CHAR) -> list[str]:
    """Split one raw line into field values.

    Args:
        line: Physical line, with or without its line terminator.
        delimiter: Single-character field separator.
        quote: Single-character quote.

    Returns:
        Field values in order, or an empty list for an empty line.
    """
    text = line.rstrip("\r\n")
    if not text:
        return []
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    at_field_start = True
    index = 0
    while index < len(text):
        char = text[index]
        if in_quotes:
            if char == quote and text[index + 1 : index + 2] == quote:
                current.append(quote)
                index += 2
                continue
            if char == quote:
                in_quotes = False
            else:
                current.append(char)
        elif char == delimiter:
            fields.append("".join(current))
            current = []
            at_field_start = True
            index += 1
            continue
        elif char == quote and at_field_start:
            in_quotes = True
        else:
            current.append(char)
        at_field_start = False
        index += 1
    fields.append("".join(current))
    return fields
