"""
Recursive-descent parser for workflow expressions.

Grammar::

    expression := primary postfix*
    primary    := STRING | NUMBER | 'true' | 'false' | 'null' | call
    call       := IDENT '(' [expression (',' expression)*] ')'
    postfix    := ['?'] '[' expression ']' | ['?'] '.' IDENT

Bracket keys that are string literals containing ``/`` are expanded into one
accessor per segment, so ``x?['a/b']`` parses exactly like ``x?['a']?['b']``.
"""

from __future__ import annotations

from typing import List

from ..errors import ExpressionSyntaxError
from . import ast_nodes
from .lexer import Lexer, Token

PATH_SEPARATOR = "/"

__all__ = ["Parser", "parse_expression", "expand_path"]


def expand_path(target: ast_nodes.Expr, key: ast_nodes.Expr, safe: bool) -> ast_nodes.Expr:
    if isinstance(key, ast_nodes.Literal) and isinstance(key.value, str) and PATH_SEPARATOR in key.value:
        segments = [seg for seg in key.value.split(PATH_SEPARATOR) if seg]
        if not segments:
            return ast_nodes.Accessor(target=target, key=key, safe=safe)
        node = target
        for segment in segments:
            node = ast_nodes.Accessor(target=node, key=ast_nodes.Literal(segment), safe=safe)
        return node
    return ast_nodes.Accessor(target=target, key=key, safe=safe)


class Parser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens: List[Token] = Lexer(source).tokenize()
        self.index = 0

    def peek(self, offset: int = 0) -> Token:
        idx = min(self.index + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.tokens[self.index]
        if tok.type != "EOF":
            self.index += 1
        return tok

    def match(self, token_type: str) -> bool:
        if self.peek().type == token_type:
            self.advance()
            return True
        return False

    def consume(self, token_type: str, what: str | None = None) -> Token:
        tok = self.peek()
        if tok.type != token_type:
            raise self.error(f"Expected {what or token_type} but found {self._describe(tok)}", tok)
        return self.advance()

    def error(self, message: str, token: Token | None = None) -> ExpressionSyntaxError:
        tok = token or self.peek()
        return ExpressionSyntaxError(message, expression=self.source, position=tok.position)

    def _describe(self, tok: Token) -> str:
        if tok.type == "EOF":
            return "end of expression"
        return f"'{tok.value}'"

    def parse(self) -> ast_nodes.Expr:
        if self.peek().type == "EOF":
            raise self.error("Empty expression")
        expr = self.parse_expression()
        if self.peek().type != "EOF":
            raise self.error(f"Unexpected {self._describe(self.peek())} after expression")
        return expr

    def parse_expression(self) -> ast_nodes.Expr:
        return self.parse_postfix(self.parse_primary())

    def parse_primary(self) -> ast_nodes.Expr:
        tok = self.peek()
        if tok.type == "STRING":
            self.advance()
            return ast_nodes.Literal(tok.value)
        if tok.type == "NUMBER":
            self.advance()
            text = tok.value or "0"
            return ast_nodes.Literal(float(text) if "." in text else int(text))
        if tok.type == "IDENT":
            self.advance()
            lowered = (tok.value or "").lower()
            if self.peek().type != "LPAREN":
                if lowered == "true":
                    return ast_nodes.Literal(True)
                if lowered == "false":
                    return ast_nodes.Literal(False)
                if lowered == "null":
                    return ast_nodes.Literal(None)
                raise self.error(f"Expected '(' after function name '{tok.value}'", self.peek())
            return self.parse_call(tok)
        raise self.error(f"Unexpected {self._describe(tok)}", tok)

    def parse_call(self, name_tok: Token) -> ast_nodes.FunctionCall:
        self.consume("LPAREN", "'('")
        args: List[ast_nodes.Expr] = []
        if not self.match("RPAREN"):
            while True:
                args.append(self.parse_expression())
                if self.match("COMMA"):
                    continue
                self.consume("RPAREN", "')' or ','")
                break
        return ast_nodes.FunctionCall(name=name_tok.value or "", args=args)

    def parse_postfix(self, expr: ast_nodes.Expr) -> ast_nodes.Expr:
        while True:
            tok = self.peek()
            safe = False
            if tok.type == "QUESTION" and self.peek(1).type in {"LBRACKET", "DOT"}:
                self.advance()
                safe = True
                tok = self.peek()
            if tok.type == "LBRACKET":
                self.advance()
                key = self.parse_expression()
                self.consume("RBRACKET", "']'")
                expr = expand_path(expr, key, safe)
                continue
            if tok.type == "DOT":
                self.advance()
                name = self.consume("IDENT", "property name")
                expr = ast_nodes.Accessor(target=expr, key=ast_nodes.Literal(name.value), safe=safe)
                continue
            return expr


def parse_expression(source: str) -> ast_nodes.Expr:
    return Parser(source).parse()
