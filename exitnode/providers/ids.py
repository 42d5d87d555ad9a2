"""Composite host IDs.

Some providers need more than one value to address a host (GCE needs the
instance name, zone and project). Those values are packed into a single
opaque string joined by ``|`` so the caller can keep treating the ID as
one token. Fields must be printable ASCII and must not contain the
delimiter; decoding with the wrong number of fields is an error, never a
partial result.
"""

from __future__ import annotations

from dataclasses import dataclass

from exitnode.core.exceptions import CompositeIDError, ConfigurationError

DELIMITER = "|"


def _check_field(value: str) -> None:
    if not value:
        raise ConfigurationError("composite id fields must not be empty")
    if not value.isascii() or not value.isprintable():
        raise ConfigurationError(f"composite id field {value!r} is not printable ASCII")
    if DELIMITER in value:
        raise ConfigurationError(f"composite id field {value!r} contains {DELIMITER!r}")


def encode_id(*fields: str) -> str:
    if not fields:
        raise ConfigurationError("composite id needs at least one field")
    for value in fields:
        _check_field(value)
    return DELIMITER.join(fields)


def decode_id(value: str, arity: int) -> tuple[str, ...]:
    parts = tuple(value.split(DELIMITER))
    if len(parts) != arity or not all(parts):
        raise CompositeIDError(value, expected=arity, actual=len(parts))
    return parts


@dataclass(frozen=True, slots=True)
class CompositeID:
    """Named layout of a composite ID, e.g. ``CompositeID(("instance", "zone", "project"))``."""

    fields: tuple[str, ...]

    @property
    def arity(self) -> int:
        return len(self.fields)

    def encode(self, **values: str) -> str:
        missing = [f for f in self.fields if f not in values]
        extra = [k for k in values if k not in self.fields]
        if missing or extra:
            raise ConfigurationError(
                f"composite id expects fields {self.fields}, got {tuple(values)}"
            )
        return encode_id(*(values[f] for f in self.fields))

    def decode(self, value: str) -> dict[str, str]:
        return dict(zip(self.fields, decode_id(value, self.arity), strict=True))


GCE_ID = CompositeID(("instance", "zone", "project"))
AZURE_ID = CompositeID(("resource_group", "deployment"))
SCALEWAY_ID = CompositeID(("server", "zone"))
OVH_ID = CompositeID(("instance", "project"))
