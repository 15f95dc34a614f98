"""
Type descriptors inferred from documents, and the lattice used to combine them.

A descriptor is an immutable tree. Unions are kept flat and canonically
sorted so that folding the same multiset of descriptors in any order gives
the same result.
"""

from dataclasses import dataclass
from enum import IntEnum
from functools import total_ordering
from typing import Dict, Iterable, Mapping, NewType, Optional, Tuple

CollectionName = NewType("CollectionName", str)
FieldName = NewType("FieldName", str)


class Kind(IntEnum):
    """Descriptor kinds, in canonical sort order."""
    ARRAY = 0
    OBJECT = 1
    NUMBER = 2
    BIGINT = 3
    NULL = 4
    STRING = 5
    BUFFER = 6
    BOOLEAN = 7
    ANY = 8
    OBJECT_ID = 9
    TIMESTAMP = 10
    DATETIME = 11
    MAX_KEY = 12
    MIN_KEY = 13
    UNDEFINED = 14
    MAP = 15
    UNION = 16


@total_ordering
@dataclass(frozen=True)
class TypeScriptType:
    """
    One node of an inferred type.

    Only the payload matching ``kind`` is set:
    ``element`` for arrays, ``fields`` (sorted by name) for objects and
    ``members`` (sorted, never containing a union) for unions.
    Use the module-level constants and constructors rather than building
    instances directly.
    """
    kind: Kind
    element: Optional["TypeScriptType"] = None
    fields: Tuple[Tuple[str, "TypeScriptType"], ...] = ()
    members: Tuple["TypeScriptType", ...] = ()

    def sort_key(self) -> tuple:
        if self.kind is Kind.ARRAY:
            return (self.kind, self.element.sort_key())
        if self.kind is Kind.OBJECT:
            return (self.kind, tuple((name, t.sort_key()) for name, t in self.fields))
        if self.kind is Kind.UNION:
            return (self.kind, tuple(m.sort_key() for m in self.members))
        return (self.kind,)

    def __lt__(self, other: "TypeScriptType") -> bool:
        if not isinstance(other, TypeScriptType):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    @property
    def is_union(self) -> bool:
        return self.kind is Kind.UNION

    @property
    def is_optional(self) -> bool:
        """True when ``undefined`` is one of the alternatives."""
        return UNDEFINED in self.alternatives()

    def alternatives(self) -> Tuple["TypeScriptType", ...]:
        """The members of a union, or the descriptor itself."""
        if self.kind is Kind.UNION:
            return self.members
        return (self,)

    def __repr__(self) -> str:
        if self.kind is Kind.ARRAY:
            return f"Array({self.element!r})"
        if self.kind is Kind.OBJECT:
            inner = ", ".join(f"{name}: {t!r}" for name, t in self.fields)
            return f"Object({{{inner}}})"
        if self.kind is Kind.UNION:
            return "Union({" + ", ".join(repr(m) for m in self.members) + "})"
        return self.kind.name


NUMBER = TypeScriptType(Kind.NUMBER)
BIGINT = TypeScriptType(Kind.BIGINT)
NULL = TypeScriptType(Kind.NULL)
STRING = TypeScriptType(Kind.STRING)
BUFFER = TypeScriptType(Kind.BUFFER)
BOOLEAN = TypeScriptType(Kind.BOOLEAN)
ANY = TypeScriptType(Kind.ANY)
OBJECT_ID = TypeScriptType(Kind.OBJECT_ID)
TIMESTAMP = TypeScriptType(Kind.TIMESTAMP)
DATETIME = TypeScriptType(Kind.DATETIME)
MAX_KEY = TypeScriptType(Kind.MAX_KEY)
MIN_KEY = TypeScriptType(Kind.MIN_KEY)
UNDEFINED = TypeScriptType(Kind.UNDEFINED)
MAP = TypeScriptType(Kind.MAP)


def array_of(element: TypeScriptType) -> TypeScriptType:
    return TypeScriptType(Kind.ARRAY, element=element)


def object_of(fields: Mapping[str, TypeScriptType]) -> TypeScriptType:
    return TypeScriptType(Kind.OBJECT, fields=tuple(sorted(fields.items(), key=lambda item: item[0])))


def union_of(types: Iterable[TypeScriptType]) -> TypeScriptType:
    """
    Combine any number of descriptors into their canonical union.

    Nested unions are flattened and duplicates removed. An empty input gives
    ``undefined`` and a single distinct alternative is returned as is.
    """
    alternatives = set()
    for t in types:
        alternatives.update(t.alternatives())

    if not alternatives:
        return UNDEFINED
    if len(alternatives) == 1:
        return next(iter(alternatives))
    return TypeScriptType(Kind.UNION, members=tuple(sorted(alternatives)))


def merge(a: TypeScriptType, b: TypeScriptType) -> TypeScriptType:
    """
    Merge two descriptors into their union.

    Objects and arrays are not reconciled structurally: two objects with
    different fields stay two alternatives of the resulting union.
    """
    if a == b:
        return a
    return union_of((a, b))


CollectionFields = Dict[FieldName, TypeScriptType]
DatabaseSchema = Dict[CollectionName, CollectionFields]
