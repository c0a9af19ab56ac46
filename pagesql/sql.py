from dataclasses import dataclass
from typing import TypeAlias

from sqlparse import tokens as T

from .errors import ParseError
from .lexing import Token, is_punctuation, significant_tokens, unquote_identifier, word

Literal: TypeAlias = str | int | float

# Words that can never be a bare column or table name in the supported grammar
RESERVED = {
    "SELECT", "FROM", "WHERE", "AND", "OR", "NOT", "ON", "AS", "DISTINCT",
    "ORDER BY", "GROUP BY", "LIMIT", "OFFSET", "HAVING", "UNION", "UNION ALL",
    "BY", "IN", "IS", "LIKE", "BETWEEN", "NULL",
}


@dataclass(frozen=True)
class Where:
    column: str
    value: Literal


@dataclass(frozen=True)
class CountStatement:
    table: str
    where: Where | None = None


@dataclass(frozen=True)
class SelectStatement:
    table: str
    # None stands for SELECT *
    columns: list[str] | None
    where: Where | None = None


Statement: TypeAlias = CountStatement | SelectStatement


class _Tokens:
    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.position = 0

    def peek(self, ahead: int = 0) -> Token | None:
        idx = self.position + ahead
        return self.tokens[idx] if idx < len(self.tokens) else None

    def next(self, expected: str) -> Token:
        token = self.peek()
        if token is None:
            raise ParseError(f"Expected {expected} but the query ended")
        self.position += 1
        return token

    def at_word(self, value: str, ahead: int = 0) -> bool:
        token = self.peek(ahead)
        return token is not None and word(token) == value

    def at_punctuation(self, value: str, ahead: int = 0) -> bool:
        token = self.peek(ahead)
        return token is not None and is_punctuation(token, value)

    def expect_word(self, value: str) -> None:
        token = self.next(value)
        if word(token) != value:
            raise ParseError(f"Expected {value} but found {token[1]!r}")

    def expect_punctuation(self, value: str) -> None:
        token = self.next(repr(value))
        if not is_punctuation(token, value):
            raise ParseError(f"Expected {value!r} but found {token[1]!r}")

    def identifier(self, what: str) -> str:
        ttype, value = token = self.next(what)
        if ttype in T.Name.Placeholder:
            raise ParseError(f"Parameters are not supported: {value!r}")
        if ttype in T.Name or ttype in T.String.Symbol:
            return unquote_identifier(value)
        if ttype in T.Keyword and word(token) not in RESERVED and "JOIN" not in word(token):
            return value
        raise ParseError(f"Expected {what} but found {value!r}")


def _literal(stream: _Tokens) -> Literal:
    ttype, value = stream.next("a literal")

    sign = ""
    if ttype in T.Operator and value in ("-", "+"):
        sign = value
        ttype, value = stream.next("a number")
        if ttype not in T.Number:
            raise ParseError(f"Expected a number after {sign!r} but found {value!r}")

    if ttype in T.String.Single or ttype in T.String.Symbol:
        quote = value[0]
        return value[1:-1].replace(quote * 2, quote)
    if ttype in T.Number.Hexadecimal:
        return int(sign + value, 16)
    if ttype in T.Number.Integer:
        return int(sign + value)
    if ttype in T.Number.Float:
        return float(sign + value)
    raise ParseError(f"Expected a string or numeric literal but found {value!r}")


def _where(stream: _Tokens) -> Where | None:
    if stream.peek() is None:
        return None
    stream.expect_word("WHERE")
    column = stream.identifier("a column name")

    ttype, operator = stream.next("'='")
    if ttype not in T.Operator.Comparison:
        raise ParseError(f"Expected '=' after {column!r} but found {operator!r}")
    if operator not in ("=", "=="):
        raise ParseError(f"Only '=' comparisons are supported, not {operator!r}")

    return Where(column=column, value=_literal(stream))


def parse_statement(query: str) -> Statement:
    """
    Parse one of the supported query shapes:

        SELECT COUNT(*) FROM <table> [WHERE <column> = <literal>]
        SELECT <* | column, ...> FROM <table> [WHERE <column> = <literal>]

    Anything else raises ParseError.
    """
    tokens = significant_tokens(query)
    while tokens and is_punctuation(tokens[-1], ";"):
        tokens.pop()
    if any(is_punctuation(token, ";") for token in tokens):
        raise ParseError("Only a single statement is supported")

    stream = _Tokens(tokens)
    stream.expect_word("SELECT")

    count = False
    columns: list[str] | None = None
    if stream.at_word("COUNT") and stream.at_punctuation("(", 1):
        stream.next("COUNT")
        stream.expect_punctuation("(")
        ttype, value = stream.next("'*'")
        if ttype not in T.Wildcard:
            raise ParseError(f"Only COUNT(*) is supported, not COUNT({value})")
        stream.expect_punctuation(")")
        count = True
    elif stream.peek() is not None and stream.peek()[0] in T.Wildcard:
        stream.next("'*'")
    else:
        columns = [stream.identifier("a column name")]
        while stream.at_punctuation(","):
            stream.next("','")
            columns.append(stream.identifier("a column name"))

    stream.expect_word("FROM")
    table = stream.identifier("a table name")

    where = _where(stream)
    if where is not None and stream.peek() is not None:
        if stream.at_word("AND") or stream.at_word("OR"):
            raise ParseError("Only a single equality predicate is supported")
        raise ParseError(f"Unexpected {stream.peek()[1]!r} after the WHERE clause")

    if count:
        return CountStatement(table=table, where=where)
    return SelectStatement(table=table, columns=columns, where=where)
