"""
script.py - .assure script tokenizer and parser

One command per line:
    OPEN "https://example.com"
    TYPE "#search" "hello world"
    # comments and blank lines are skipped

Tokens split on spaces and tabs. A single or double quote that opens a token
groups whitespace into it; the delimiting quotes are removed once and everything
between them is kept as written. Quotes inside a bare token are literal, so
    CLICK input[name='email']
keeps its attribute selector intact. Lines break on newline only; a trailing
carriage return is dropped.
"""

from .commands import Command


def tokenize(line):
    """Split one script line into tokens."""
    tokens = []
    current = ""
    has_token = False
    quote_char = None

    for char in line:
        if quote_char:
            if char == quote_char:
                quote_char = None
            else:
                current += char
        elif char in ('"', "'") and not has_token:
            quote_char = char
            has_token = True
        elif char in (" ", "\t"):
            if has_token:
                tokens.append(current)
                current = ""
                has_token = False
        else:
            current += char
            has_token = True

    # An unterminated quote runs to the end of the line
    if has_token:
        tokens.append(current)

    return tokens


def parse(script):
    """
    Parse script text into Commands in document order.

    Line numbers are 1-indexed source lines; the action is upper-cased.
    """
    commands = []
    # splitlines() would also break on form feeds and other separators
    # that can appear inside a quoted argument
    for index, raw_line in enumerate(script.split("\n"), start=1):
        if raw_line.endswith("\r"):
            raw_line = raw_line[:-1]
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        tokens = tokenize(line)
        if not tokens:
            continue

        action, *args = tokens
        commands.append(Command(
            action=action.upper(),
            args=tuple(args),
            line_number=index,
            raw=line,
        ))

    return commands
