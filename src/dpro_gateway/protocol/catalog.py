"""Parameter catalog: static address table with per-address value codecs."""

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from dpro_gateway.core.models import Command, ParameterSpec, SetMode
from dpro_gateway.protocol.codec import CODECS, ValueCodec, check_string
from dpro_gateway.protocol.constants import DEFAULT_PARAMETERS, ParamType

logger = logging.getLogger(__name__)

_SPEC_LIST = TypeAdapter(list[ParameterSpec])


class CatalogEntry:
    """A parameter spec with its value codec resolved."""

    def __init__(self, spec: ParameterSpec):
        self.spec = spec
        self.codec: ValueCodec = CODECS[spec.type]

    @property
    def address(self) -> str:
        return self.spec.address

    def encode(self, value: Any) -> str:
        return self.codec.encode(value, self.spec.scale)

    def decode(self, token: str) -> Any:
        return self.codec.decode(token, self.spec.scale)

    def equal(self, a: Any, b: Any) -> bool:
        return self.codec.equal(a, b)


class ParameterCatalog:
    """Lookup table from address to parameter metadata.

    Codecs are resolved once when the catalog is built, so encoding and
    decoding never branch on the type name per message.
    """

    def __init__(self, specs: Iterable[ParameterSpec | Mapping[str, Any]] = ()):
        self._entries: dict[str, CatalogEntry] = {}
        for spec in specs:
            if not isinstance(spec, ParameterSpec):
                spec = ParameterSpec.model_validate(spec)
            if spec.address in self._entries:
                logger.warning("Duplicate catalog address %s, keeping last definition", spec.address)
            self._entries[spec.address] = CatalogEntry(spec)

    @classmethod
    def default(cls) -> "ParameterCatalog":
        """Catalog built from the bundled parameter table."""
        return cls(DEFAULT_PARAMETERS)

    @classmethod
    def from_file(cls, path: str | Path) -> "ParameterCatalog":
        """Load a catalog from a JSON list of parameter specs.

        Raises:
            pydantic.ValidationError: If an entry is invalid.
            OSError: If the file cannot be read.
        """
        specs = _SPEC_LIST.validate_json(Path(path).read_bytes())
        logger.info("Loaded %d parameters from %s", len(specs), path)
        return cls(specs)

    def __contains__(self, address: object) -> bool:
        return address in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return (entry.spec for entry in self._entries.values())

    def entry(self, address: str) -> CatalogEntry | None:
        return self._entries.get(address)

    def find(self, address: str) -> ParameterSpec | None:
        """Get the spec for an address, or None if unknown."""
        entry = self._entries.get(address)
        return entry.spec if entry is not None else None

    def is_meter(self, address: str) -> bool:
        spec = self.find(address)
        return spec is not None and spec.meter

    def is_readable(self, address: str) -> bool:
        spec = self.find(address)
        return spec is not None and spec.readable

    def values_equal(self, address: str, a: Any, b: Any) -> bool:
        """Compare two values using the parameter's native comparison."""
        entry = self._entries.get(address)
        if entry is None:
            return type(a) is type(b) and a == b
        return entry.equal(a, b)

    def validate_value(self, command: Command) -> Command:
        """Check a set command against the parameter's type, access and domain.

        Returns:
            The command with its value coerced to the parameter's cached form.

        Raises:
            ValueError: If the address is unknown, read-only, out of range or
                the value has the wrong type.
        """
        spec = self.find(command.address)
        if spec is None:
            raise ValueError(f"Unknown parameter: {command.address}")
        if not spec.writable:
            raise ValueError(f"Parameter is read-only: {command.address}")
        if command.row >= spec.rows or command.column >= spec.columns:
            raise ValueError(
                f"Index {command.row},{command.column} out of range for {command.address} "
                f"({spec.rows}x{spec.columns})"
            )

        if command.mode == SetMode.TOGGLE:
            if spec.type != ParamType.BOOLEAN:
                raise ValueError(f"Toggle is only valid for boolean parameters: {command.address}")
            return command

        value = command.value
        if value is None:
            raise ValueError("Set command requires a value")

        if spec.type == ParamType.STRING:
            if command.mode == SetMode.RELATIVE:
                raise ValueError("Relative set is not valid for string parameters")
            return command.model_copy(update={"value": check_string(str(value))})

        if spec.type == ParamType.BOOLEAN:
            if command.mode == SetMode.RELATIVE:
                raise ValueError("Relative set is not valid for boolean parameters")
            if isinstance(value, str) or value not in (0, 1):
                raise ValueError(f"Invalid boolean value: {value!r}")
            return command.model_copy(update={"value": bool(value)})

        if isinstance(value, (bool, str)) or (isinstance(value, float) and not value.is_integer()):
            raise ValueError(f"Invalid value for {spec.type.value} parameter: {value!r}")
        value = int(value)

        if command.mode == SetMode.ABSOLUTE:
            if spec.min_value is not None and value < spec.min_value:
                raise ValueError(f"Value {value} below minimum {spec.min_value}")
            if spec.max_value is not None and value > spec.max_value:
                raise ValueError(f"Value {value} above maximum {spec.max_value}")
        return command.model_copy(update={"value": value})

    def clamp(self, address: str, value: int) -> int:
        """Clamp a numeric value into the parameter's domain."""
        spec = self.find(address)
        if spec is None:
            return value
        if spec.min_value is not None and value < spec.min_value:
            value = int(spec.min_value)
        if spec.max_value is not None and value > spec.max_value:
            value = int(spec.max_value)
        return value
