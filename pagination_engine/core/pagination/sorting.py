"""Sort specifications for deterministic pagination.

A ``SortSpec`` is an ordered list of ``(field, direction)`` pairs that always
ends with a unique, non-null tiebreaker. The tiebreaker is appended once, at
construction time, so both pagers can treat every spec as a total order.

Null placement matches the PostgreSQL defaults: ``NULL`` sorts after every
value for ascending fields and before every value for descending fields.
``SortSpec.compare`` and the SQL seek filter both follow this rule.

Example:
    spec = SortSpec.build([SortField("created_at", "desc")])
    spec.field_names  # ("created_at", "id")

    spec = SortSpec.parse("-created_at,title")
    spec.signature.hex()  # stable 16-byte hash of the ordering
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Literal

SortDirection = Literal["asc", "desc"]

SIGNATURE_SIZE = 16

DEFAULT_TIEBREAKER = "id"


@dataclass(slots=True, frozen=True)
class SortField:
    """One column of a sort order.

    Attributes:
        name: Field/column name read from each row.
        direction: ``"asc"`` or ``"desc"``.
        unique: Whether the field is declared unique and not-null.
    """

    name: str
    direction: SortDirection = "asc"
    unique: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Sort field name must not be empty")
        if self.direction not in ("asc", "desc"):
            raise ValueError(f"Invalid sort direction {self.direction!r} for {self.name!r}")

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


@dataclass(slots=True, frozen=True)
class SortSpec:
    """Immutable, tiebreaker-terminated sort order.

    Use ``SortSpec.build`` or ``SortSpec.parse`` rather than the constructor;
    they guarantee the trailing unique field.
    """

    fields: tuple[SortField, ...]

    def __post_init__(self) -> None:
        if not self.fields:
            raise ValueError("SortSpec requires at least one field")
        names = [f.name for f in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate sort fields: {names}")
        if not self.fields[-1].unique:
            raise ValueError(
                f"Last sort field {self.fields[-1].name!r} must be unique; "
                "use SortSpec.build() to append a tiebreaker"
            )

    @classmethod
    def build(
        cls,
        fields: Iterable[SortField | tuple[str, SortDirection]],
        *,
        tiebreaker: str = DEFAULT_TIEBREAKER,
        tiebreaker_direction: SortDirection = "asc",
    ) -> SortSpec:
        """Build a spec, appending the tiebreaker unless the last field is unique.

        If the tiebreaker field already appears earlier in ``fields`` it is
        marked unique and everything after it is dropped, since a unique
        prefix already determines the order.

        Args:
            fields: Sort fields, as ``SortField`` or ``(name, direction)`` pairs.
            tiebreaker: Name of the unique, non-null identifier field.
            tiebreaker_direction: Direction used when the tiebreaker is appended.

        Returns:
            A SortSpec whose last field is unique.
        """
        normalized: list[SortField] = []
        for item in fields:
            field = item if isinstance(item, SortField) else SortField(item[0], item[1])
            if field.name == tiebreaker:
                normalized.append(SortField(field.name, field.direction, unique=True))
                break
            normalized.append(field)
            if field.unique:
                break

        if not normalized or not normalized[-1].unique:
            normalized.append(SortField(tiebreaker, tiebreaker_direction, unique=True))

        return cls(tuple(normalized))

    @classmethod
    def parse(cls, expression: str | None, *, tiebreaker: str = DEFAULT_TIEBREAKER) -> SortSpec:
        """Parse a comma-separated sort expression such as ``"-created_at,title"``.

        A leading ``-`` means descending, a leading ``+`` or nothing ascending.
        An empty expression sorts by the tiebreaker alone.
        """
        fields: list[SortField] = []
        for raw in (expression or "").split(","):
            token = raw.strip()
            if not token:
                continue
            if token[0] == "-":
                fields.append(SortField(token[1:].strip(), "desc"))
            elif token[0] == "+":
                fields.append(SortField(token[1:].strip(), "asc"))
            else:
                fields.append(SortField(token, "asc"))
        return cls.build(fields, tiebreaker=tiebreaker)

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def tiebreaker(self) -> SortField:
        return self.fields[-1]

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def signature(self) -> bytes:
        """Fixed-width hash identifying this ordering.

        Embedded in every cursor so a token minted under another ordering is
        rejected instead of producing a silently wrong page.
        """
        canonical = "|".join(
            f"{f.name}:{f.direction}:{'u' if f.unique else '-'}" for f in self.fields
        )
        return hashlib.blake2b(canonical.encode("utf-8"), digest_size=SIGNATURE_SIZE).digest()

    def to_expression(self) -> str:
        """Inverse of ``parse`` (tiebreaker included)."""
        return ",".join(("-" if f.descending else "") + f.name for f in self.fields)

    def values_of(self, row: Any) -> tuple[Any, ...]:
        """Extract the sort-field values of ``row`` in spec order.

        Rows may be mappings or objects exposing the fields as attributes.

        Raises:
            ValueError: If the tiebreaker value is missing or None.
        """
        values = tuple(read_field(row, f.name) for f in self.fields)
        if values[-1] is None:
            raise ValueError(f"Tiebreaker field {self.tiebreaker.name!r} must not be None")
        return values

    def compare(self, left: Sequence[Any], right: Sequence[Any]) -> int:
        """Three-way lexicographic comparison of two value tuples under this spec.

        Returns a negative number when ``left`` sorts before ``right``, zero
        when equal and a positive number when it sorts after.
        """
        for field, a, b in zip(self.fields, left, right, strict=True):
            result = _compare_values(a, b)
            if result:
                return -result if field.descending else result
        return 0

    def is_after(self, values: Sequence[Any], cursor: Sequence[Any]) -> bool:
        """Strict "after" predicate used by keyset seeks."""
        return self.compare(values, cursor) > 0

    def sort_key(self) -> Any:
        """Key function ordering rows by this spec (for ``sorted``)."""
        return cmp_to_key(lambda a, b: self.compare(self.values_of(a), self.values_of(b)))


def read_field(row: Any, name: str) -> Any:
    """Read a field from a mapping row or an attribute-bearing row."""
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def _compare_values(a: Any, b: Any) -> int:
    # None is the largest value; direction flipping then puts it last for asc
    # and first for desc.
    if a is None or b is None:
        if a is None and b is None:
            return 0
        return 1 if a is None else -1
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


__all__ = [
    "DEFAULT_TIEBREAKER",
    "SIGNATURE_SIZE",
    "SortDirection",
    "SortField",
    "SortSpec",
    "read_field",
]
