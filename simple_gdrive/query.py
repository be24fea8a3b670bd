"""
Fluent builder for Google Drive search queries.

Builders are immutable: each call returns a new builder, so a partial
expression can be reused as the base of several queries.

    query = QueryBuilder().is_owner("me@example.com").and_(
        QueryBuilder().type_contains("video").or_().type_contains("image")
    )
    service.query_resources(query)

Negation applies to the single predicate that follows it. Use the grouping
forms of and_()/or_() to combine compound expressions.
"""

from __future__ import annotations

from .mime import MimeType


def escape(value: str) -> str:
    """Escape a value for interpolation inside a single-quoted query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _type_string(kind: MimeType | str) -> str:
    return kind.value if isinstance(kind, MimeType) else kind


class QueryBuilder:
    __slots__ = ("_fragments", "_include_trashed")

    def __init__(self, other: QueryBuilder | None = None):
        if other is not None:
            self._fragments: tuple[str, ...] = other._fragments
            self._include_trashed = other._include_trashed
        else:
            self._fragments = ()
            self._include_trashed = False

    def _append(self, *fragments: str) -> QueryBuilder:
        ret = QueryBuilder(self)
        ret._fragments = self._fragments + fragments
        return ret

    @property
    def content(self) -> str:
        """Accumulated expression without the trailing trashed clause."""
        return "".join(self._fragments)

    @property
    def trashed_included(self) -> bool:
        return self._include_trashed

    # Predicates

    def is_type(self, kind: MimeType | str) -> QueryBuilder:
        return self._append(f" mimeType = '{escape(_type_string(kind))}' ")

    def is_not_type(self, kind: MimeType | str) -> QueryBuilder:
        return self._append(f" mimeType != '{escape(_type_string(kind))}' ")

    def type_contains(self, text: str) -> QueryBuilder:
        """Match resources whose type contains ``text``, e.g. 'video'."""
        return self._append(f" mimeType contains '{escape(text)}' ")

    def type_not_contains(self, text: str) -> QueryBuilder:
        return self._append(" not ").type_contains(text)

    def is_owner(self, email: str) -> QueryBuilder:
        return self._append(f" '{escape(email)}' in owners ")

    def is_name(self, name: str) -> QueryBuilder:
        return self._append(f" name = '{escape(name)}' ")

    def name_contains(self, text: str) -> QueryBuilder:
        return self._append(f" name contains '{escape(text)}' ")

    def name_not_contains(self, text: str) -> QueryBuilder:
        return self._append(" not ").name_contains(text)

    def is_parent(self, parent_id: str) -> QueryBuilder:
        return self._append(f" '{escape(parent_id)}' in parents ")

    def is_not_parent(self, parent_id: str) -> QueryBuilder:
        return self._append(" not ").is_parent(parent_id)

    def has_property_value(self, key: str, value: str) -> QueryBuilder:
        """Match resources carrying the public property ``key=value``."""
        return self._append(
            f" properties has {{ key='{escape(key)}' and value='{escape(value)}' }} "
        )

    def has_not_property_value(self, key: str, value: str) -> QueryBuilder:
        return self._append(" not ").has_property_value(key, value)

    def include_trashed(self, trashed: bool = True) -> QueryBuilder:
        ret = QueryBuilder(self)
        ret._include_trashed = trashed
        return ret

    # Connectives

    def and_(self, *operands: QueryBuilder | None) -> QueryBuilder:
        """
        Combine with ``and``.

        and_()      -> ``... and ...`` (bare connective before the next predicate)
        and_(right) -> ``... and ( right )``; a None right side is a no-op
        and_(a, b)  -> ``( a ) and ( b )``, replacing this builder's content
        """
        return self._connect("and", operands)

    def or_(self, *operands: QueryBuilder | None) -> QueryBuilder:
        """Combine with ``or``; same forms as and_()."""
        return self._connect("or", operands)

    def _connect(self, connective: str, operands: tuple) -> QueryBuilder:
        if len(operands) == 0:
            return self._append(f" {connective} ")
        if len(operands) == 1:
            right = operands[0]
            # An empty right side would render as "and ( )"
            if right is None or not right._fragments:
                return self
            return self._append(f" {connective} ", " ( ", right.content, " ) ")
        if len(operands) == 2:
            sides = [side for side in operands if side is not None and side._fragments]
            ret = QueryBuilder(self)
            ret._fragments = ()
            for i, side in enumerate(sides):
                if i:
                    ret._fragments += (f" {connective} ",)
                ret._fragments += (" ( ", side.content, " ) ")
            return ret
        raise TypeError(f"{connective}_() takes at most 2 operands ({len(operands)} given)")

    def build(self) -> str:
        """Render the final query string, always ending with the trashed clause."""
        trashed = f" trashed = {'true' if self._include_trashed else 'false'} "
        if self._fragments:
            return self.content + " and " + trashed
        return trashed

    def __str__(self) -> str:
        return self.build()

    def __repr__(self) -> str:
        return f"QueryBuilder({self.build()!r})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, QueryBuilder):
            return NotImplemented
        return self._fragments == other._fragments and self._include_trashed == other._include_trashed

    def __hash__(self) -> int:
        return hash((self._fragments, self._include_trashed))
