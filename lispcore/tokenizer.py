"""Split source text into tokens."""

from __future__ import annotations

from typing import Callable, Iterator

from .types import Token, TokenType

__all__ = ["TokenizeError", "is_symbol_char", "iter_tokens", "tokenize"]


class TokenizeError(ValueError):
    """Raised when the source text cannot be split into tokens."""


_SYMBOL_PUNCTUATION = frozenset("+-*/=<>!?_.%")

_SINGLE_CHAR_TOKENS = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "'": TokenType.QUOTE,
}

_BOOLEANS = frozenset({"true", "false"})


def is_symbol_char(ch: str) -> bool:
    """Return True if ``ch`` may appear in a symbol or keyword name."""
    return bool(ch) and (ch.isalpha() or ch.isdecimal() or ch in _SYMBOL_PUNCTUATION)


def _is_digit(ch: str) -> bool:
    return bool(ch) and ch.isdecimal()


def _scan_while(source: str, pos: int, predicate: Callable[[str], bool]) -> int:
    """Return the first position at or after ``pos`` where ``predicate`` fails."""
    end = len(source)
    while pos < end and predicate(source[pos]):
        pos += 1
    return pos


def _starts_number(source: str, pos: int) -> bool:
    ch = source[pos]
    if _is_digit(ch):
        return True
    return ch == "-" and _is_digit(source[pos + 1 : pos + 2])


def iter_tokens(source: str) -> Iterator[Token]:
    """Yield the tokens of ``source`` in order.

    Raises TokenizeError on an unterminated string, a malformed keyword or a
    character that starts no token.
    """
    # A NUL character marks the end of input.
    source = source.split("\0", 1)[0]
    length = len(source)
    pos = 0

    while pos < length:
        pos = _scan_while(source, pos, str.isspace)
        if pos >= length:
            break

        ch = source[pos]

        if ch == ";":
            pos = _scan_while(source, pos, lambda c: c != "\n")
            continue

        if ch in _SINGLE_CHAR_TOKENS:
            yield Token(_SINGLE_CHAR_TOKENS[ch], ch)
            pos += 1
            continue

        if ch == '"':
            closing = source.find('"', pos + 1)
            if closing < 0:
                raise TokenizeError("unterminated string")
            yield Token(TokenType.STRING, source[pos + 1 : closing])
            pos = closing + 1
            continue

        if ch == ":":
            pos += 1
            if not is_symbol_char(source[pos : pos + 1]):
                raise TokenizeError(
                    "invalid keyword: colon must be followed by symbol characters"
                )
            end = _scan_while(source, pos, is_symbol_char)
            yield Token(TokenType.KEYWORD, source[pos:end])
            pos = end
            continue

        if _starts_number(source, pos):
            start = pos
            if ch == "-":
                pos += 1
            pos = _scan_while(source, pos, lambda c: _is_digit(c) or c == ".")
            yield Token(TokenType.NUMBER, source[start:pos])
            continue

        if is_symbol_char(ch):
            end = _scan_while(source, pos, is_symbol_char)
            symbol = source[pos:end]
            kind = TokenType.BOOLEAN if symbol in _BOOLEANS else TokenType.SYMBOL
            yield Token(kind, symbol)
            pos = end
            continue

        raise TokenizeError(f"invalid character: {ch}")


def tokenize(source: str) -> list[Token]:
    """Return all tokens of ``source`` as a list."""
    return list(iter_tokens(source))