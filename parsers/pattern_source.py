"""Predicate extraction from tree-sitter query text.

py-tree-sitter evaluates ``#eq?``/``#match?``/``#any-of?`` itself and does
not expose the raw predicate steps of a query. ``PatternSource`` scans the
query text for ``(#operator args...)`` forms so they can be compiled by
the predicate engine, and produces a structural copy of the text in which
every predicate form is blanked out. Blanking replaces bytes with spaces
and keeps newlines, so byte offsets, rows and columns of everything else
are unchanged.
"""

from dataclasses import dataclass
from typing import List, Tuple, Union
from queries.errors import QueryError
from queries.types import QueryErrorKind
from queries.compiler import position_for_offset

_WHITESPACE = b" \t\r\n\f\v"
# Characters that end a bare identifier inside a predicate
_DELIMITERS = _WHITESPACE + b'()[]"@;'
_ESCAPES = {ord("n"): "\n", ord("r"): "\r", ord("t"): "\t", ord("0"): "\0"}

@dataclass(frozen=True)
class PredicateToken:
    """One predicate argument as written in the query text."""
    is_capture: bool
    value: str
    offset: int

@dataclass(frozen=True)
class PredicateForm:
    """A ``(#operator args...)`` form.

    Attributes:
        start: Offset of the opening parenthesis
        end: Offset just past the closing parenthesis
        operator: Operator name without ``#``
        args: Arguments in order
    """
    start: int
    end: int
    operator: str
    args: Tuple[PredicateToken, ...]

class PatternSource:
    """Query text split into structural patterns and predicate forms."""

    def __init__(self, source: Union[str, bytes]):
        self.source = source.encode("utf-8") if isinstance(source, str) else bytes(source)
        self.predicate_forms: List[PredicateForm] = []
        self._scan()
        self.structural_source = self._blank_forms()

    def _error(self, message: str, offset: int) -> QueryError:
        row, column = position_for_offset(self.source, offset)
        return QueryError(QueryErrorKind.SYNTAX, message, row, column, offset)

    def _scan(self) -> None:
        src = self.source
        i = 0
        while i < len(src):
            c = src[i]
            if c == ord(";"):
                i = self._skip_comment(i)
            elif c == ord('"'):
                _, i = self._read_string(i)
            elif c == ord("("):
                j = self._skip_space(i + 1)
                if j < len(src) and src[j] == ord("#"):
                    form = self._read_form(i, j)
                    self.predicate_forms.append(form)
                    i = form.end
                else:
                    i += 1
            else:
                i += 1

    def _skip_comment(self, i: int) -> int:
        end = self.source.find(b"\n", i)
        return len(self.source) if end < 0 else end + 1

    def _skip_space(self, i: int) -> int:
        src = self.source
        while i < len(src):
            if src[i] in _WHITESPACE:
                i += 1
            elif src[i] == ord(";"):
                i = self._skip_comment(i)
            else:
                break
        return i

    def _read_word(self, i: int) -> Tuple[str, int]:
        src = self.source
        start = i
        while i < len(src) and src[i] not in _DELIMITERS:
            i += 1
        return src[start:i].decode("utf-8"), i

    def _read_string(self, i: int) -> Tuple[str, int]:
        """Read a double-quoted literal starting at ``i``; returns (value, end)."""
        src = self.source
        start = i
        i += 1
        out = bytearray()
        while i < len(src):
            c = src[i]
            if c == ord("\\") and i + 1 < len(src):
                escaped = src[i + 1]
                if escaped in _ESCAPES:
                    out.extend(_ESCAPES[escaped].encode("utf-8"))
                else:
                    out.append(escaped)
                i += 2
            elif c == ord('"'):
                return out.decode("utf-8"), i + 1
            else:
                out.append(c)
                i += 1
        raise self._error("unterminated string", start)

    def _read_form(self, start: int, hash_at: int) -> PredicateForm:
        src = self.source
        operator, i = self._read_word(hash_at + 1)
        if not operator:
            raise self._error("missing predicate name", hash_at)

        args = []
        while True:
            i = self._skip_space(i)
            if i >= len(src):
                raise self._error("unterminated predicate", start)
            c = src[i]
            if c == ord(")"):
                return PredicateForm(start, i + 1, operator, tuple(args))
            if c == ord('"'):
                value, end = self._read_string(i)
                args.append(PredicateToken(False, value, i))
                i = end
            elif c == ord("@"):
                name, end = self._read_word(i + 1)
                if not name:
                    raise self._error("missing capture name", i)
                args.append(PredicateToken(True, name, i))
                i = end
            elif c in b"([])":
                raise self._error(f"unexpected {chr(c)!r} in #{operator}", i)
            else:
                word, i = self._read_word(i)
                args.append(PredicateToken(False, word, i - len(word.encode("utf-8"))))

    def _blank_forms(self) -> bytes:
        out = bytearray(self.source)
        for form in self.predicate_forms:
            for k in range(form.start, form.end):
                if out[k] != ord("\n"):
                    out[k] = ord(" ")
        return bytes(out)

    def location(self, offset: int) -> Tuple[int, int]:
        return position_for_offset(self.source, offset)
