"""Resolution of dotted field paths against records."""

from dataclasses import dataclass
from typing import Any, Sequence
import logging

from ..errors import FieldPathError, MalformedRuleError, NotCompositeError
from .access import deref, is_composite, is_optional, lookup_field
from .kinds import FieldKind

logger = logging.getLogger(__name__)


@dataclass
class ResolvedField:
    """The value found at the end of a field path."""

    value: Any
    """Dereferenced value of the terminal field."""

    kind: FieldKind
    """Runtime kind of the value."""

    path: tuple[str, ...]
    """Components that were walked."""

    @property
    def name(self) -> str:
        return ".".join(self.path)


def resolve_field(record: Any, path: Sequence[str]) -> ResolvedField:
    """
    Walk a record through the components of a field path.

    Optional references met on the way, and at the end, are dereferenced.

    Args:
        record: Root record
        path: Ordered field names, at least one

    Returns:
        ResolvedField for the terminal value

    Raises:
        NilReferenceError: An optional reference on the path is empty
        NotCompositeError: The path continues past a value with no fields
        NoSuchFieldError: A component is missing from its composite
    """
    if not path:
        raise MalformedRuleError("field path is empty")

    current = record
    kind = None
    for depth, name in enumerate(path):
        walked = ".".join(path[:depth]) or "<record>"
        try:
            current = deref(current)
        except FieldPathError as e:
            raise type(e)(f"{walked} is an empty reference") from None

        if not is_composite(current):
            raise NotCompositeError(
                f"{walked} is not a composite, can't resolve {name!r}"
            )
        try:
            current, kind = lookup_field(current, name)
        except FieldPathError as e:
            raise type(e)(f"field {name!r} doesn't exist in {walked}") from None

    if is_optional(current):
        try:
            current = deref(current)
        except FieldPathError as e:
            raise type(e)(f"{'.'.join(path)} is an empty reference") from None

    logger.debug(f"Resolved {'.'.join(path)} to {kind.name}")
    return ResolvedField(value=current, kind=kind, path=tuple(path))
