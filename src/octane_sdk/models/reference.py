# octane_sdk/models/reference.py
"""
Entity reference value objects.

A Reference is the minimal pointer to an Octane entity: {id, type}. A
MultiReference is an ordered list of references and serializes with the
vendor's list envelope, {total_count, data}.

Both types offer a permissive parse() used by the parameter validator as an
optional coercion: it accepts an existing instance, a compatible mapping
(or, for MultiReference, a sequence of them) and returns None on a shape
mismatch instead of raising.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
    model_serializer,
)

__all__: list[str] = ['MultiReference', 'Reference']


class Reference(BaseModel):
    """
    Pointer to a single entity.

    Attributes:
        id: Entity id. Octane ids are strings, numeric ids are kept as given.
        type: Entity type name (e.g. 'defect'). Must be a string.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    id: str | int
    type: StrictStr

    def __init__(self, id: str | int, type: str) -> None:  # noqa: A002
        super().__init__(id=id, type=type)

    @classmethod
    def parse(cls, raw: Any) -> Self | None:
        """
        Coerce a raw value into a new Reference.

        Args:
            raw: A Reference (copied) or a mapping containing 'id' and 'type'.

        Returns:
            A new Reference, or None when raw has the wrong shape or its id
            or type has the wrong type.
        """
        if isinstance(raw, Reference):
            return cls(raw.id, raw.type)

        if isinstance(raw, Mapping) and 'id' in raw and 'type' in raw:
            try:
                return cls(raw['id'], raw['type'])
            except ValidationError:
                # Right keys, wrong value types (e.g. a None id or a numeric type)
                return None

        return None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump()


class MultiReference(BaseModel):
    """
    Ordered collection of references.

    Serializes as {'total_count': <len>, 'data': [<reference>, ...]}.
    """

    model_config = ConfigDict(extra='forbid')

    refs: list[Reference] = Field(default_factory=list)

    def __init__(self, refs: Sequence[Reference] | None = None) -> None:
        super().__init__(refs=list(refs) if refs is not None else [])

    @classmethod
    def parse(cls, raw: Any) -> Self | None:
        """
        Coerce a raw value into a new MultiReference.

        Args:
            raw: A MultiReference (references copied) or a list/tuple of values
                accepted by Reference.parse.

        Returns:
            A new MultiReference, or None if raw is not a sequence or if any
            element fails to parse. Bad elements are never skipped.
        """
        if isinstance(raw, MultiReference):
            return cls(raw.refs)

        if not isinstance(raw, list | tuple):
            return None

        refs: list[Reference] = []
        for element in raw:
            ref: Reference | None = Reference.parse(element)
            if ref is None:
                return None
            refs.append(ref)

        return cls(refs)

    def add_reference(self, ref: Reference) -> Self:
        """Append a reference in place and return self for chaining."""
        if not isinstance(ref, Reference):
            raise TypeError(f'Expected Reference, got {type(ref).__name__}')
        self.refs.append(ref)
        return self

    @model_serializer
    def _serialize_envelope(self) -> dict[str, Any]:
        return {
            'total_count': len(self.refs),
            'data': [ref.model_dump() for ref in self.refs],
        }

    def to_json(self) -> dict[str, Any]:
        return self.model_dump()
