"""Helpers over the sqlparse lexer shared by the query and schema parsers."""

from sqlparse import lexer
from sqlparse import tokens as T

Token = tuple[object, str]


def significant_tokens(sql: str) -> list[Token]:
    """Lex SQL text into (ttype, value) pairs, dropping whitespace and comments"""
    return [
        (ttype, value)
        for ttype, value in lexer.tokenize(sql)
        if ttype not in T.Whitespace and ttype not in T.Comment
    ]


def word(token: Token) -> str:
    # Multi-word keywords such as "PRIMARY  KEY" come out of the lexer as one token
    return " ".join(token[1].upper().split())


def is_punctuation(token: Token, value: str) -> bool:
    return token[0] in T.Punctuation and token[1] == value


def unquote_identifier(name: str) -> str:
    if len(name) >= 2:
        if name[0] == "[" and name[-1] == "]":
            return name[1:-1]
        for quote in ('"', "`", "'"):
            if name[0] == quote and name[-1] == quote:
                return name[1:-1].replace(quote * 2, quote)
    return name
