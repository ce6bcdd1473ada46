"""
Tokenizer for the workflow expression language.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..errors import ExpressionSyntaxError

PUNCTUATION = {
    "(": "LPAREN",
    ")": "RPAREN",
    "[": "LBRACKET",
    "]": "RBRACKET",
    ",": "COMMA",
    ".": "DOT",
    "?": "QUESTION",
}


@dataclass
class Token:
    type: str
    value: Optional[str]
    position: int

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Token({self.type}, {self.value!r}, {self.position})"


class Lexer:
    """
    Single-pass tokenizer: string literals use single quotes with '' as the
    escape for a literal quote, numbers may carry a leading minus sign.
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self.pos = 0

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        src = self.source
        while self.pos < len(src):
            ch = src[self.pos]
            if ch.isspace():
                self.pos += 1
                continue
            if ch == "'":
                tokens.append(self._read_string())
                continue
            if ch.isdigit() or (ch == "-" and self._peek_char(1).isdigit()):
                tokens.append(self._read_number())
                continue
            if ch.isalpha() or ch == "_":
                tokens.append(self._read_identifier())
                continue
            if ch in PUNCTUATION:
                tokens.append(Token(PUNCTUATION[ch], ch, self.pos))
                self.pos += 1
                continue
            raise ExpressionSyntaxError(f"Unexpected character '{ch}'", expression=src, position=self.pos)
        tokens.append(Token("EOF", None, self.pos))
        return tokens

    def _peek_char(self, offset: int) -> str:
        idx = self.pos + offset
        return self.source[idx] if idx < len(self.source) else ""

    def _read_string(self) -> Token:
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == "'":
                if self._peek_char(1) == "'":
                    chars.append("'")
                    self.pos += 2
                    continue
                self.pos += 1
                return Token("STRING", "".join(chars), start)
            chars.append(ch)
            self.pos += 1
        raise ExpressionSyntaxError("Unterminated string literal", expression=self.source, position=start)

    def _read_number(self) -> Token:
        start = self.pos
        if self.source[self.pos] == "-":
            self.pos += 1
        seen_dot = False
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch.isdigit():
                self.pos += 1
            elif ch == "." and not seen_dot and self._peek_char(1).isdigit():
                seen_dot = True
                self.pos += 1
            else:
                break
        return Token("NUMBER", self.source[start : self.pos], start)

    def _read_identifier(self) -> Token:
        start = self.pos
        while self.pos < len(self.source) and (self.source[self.pos].isalnum() or self.source[self.pos] == "_"):
            self.pos += 1
        return Token("IDENT", self.source[start : self.pos], start)
