"""Value encoding and decoding for DPRO wire tokens."""

from collections.abc import Callable
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any, NamedTuple, Union

from .constants import NEG_INF, ParamType

WireValue = Union[int, bool, str]


def _decimals(scale: int) -> int:
    return len(str(scale)) - 1


def _format_fixed(value: int, scale: int) -> str:
    """Render an integer in 1/scale units as a fixed-point decimal string."""
    if scale == 1:
        return str(value)
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), scale)
    return f"{sign}{whole}.{frac:0{_decimals(scale)}d}"


def _parse_fixed(token: str, scale: int) -> int:
    try:
        number = Decimal(token)
    except InvalidOperation:
        raise ValueError(f"Not a number: {token!r}") from None
    if not number.is_finite():
        raise ValueError(f"Not a finite number: {token!r}")
    return int((number * scale).to_integral_value(rounding=ROUND_HALF_EVEN))


def check_string(value: str) -> str:
    """Reject text that cannot travel inside one quoted ASCII wire token.

    Raises:
        ValueError: If the text is not ASCII or holds control characters
    """
    if not value.isascii():
        raise ValueError(f"String value must be ASCII: {value!r}")
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in value):
        raise ValueError(f"String value contains control characters: {value!r}")
    return value


def quote_string(value: str) -> str:
    """Quote a string for the wire, escaping backslashes and double quotes."""
    check_string(value)
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def encode_value(value: Any, param_type: ParamType, scale: int = 1) -> str:
    """
    Encode a cached value to its wire token.

    Scaled and frequency values are held as integers in 1/scale units and
    are divided by the scale on the way out. The NEG_INF sentinel is never
    scaled.

    Args:
        value: Value to encode
        param_type: Parameter type
        scale: Power-of-ten scale factor of the parameter

    Returns:
        Wire token

    Raises:
        ValueError: If the value cannot be represented

    Example:
        >>> encode_value(-1350, ParamType.SCALED, 100)
        '-13.50'
        >>> encode_value(True, ParamType.BOOLEAN)
        '1'
    """
    if param_type == ParamType.BOOLEAN:
        return "1" if value else "0"

    elif param_type == ParamType.STRING:
        return quote_string(str(value))

    if isinstance(value, bool):
        raise ValueError(f"Boolean value {value!r} for numeric parameter")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid numeric value: {value!r}") from None

    if param_type == ParamType.INTEGER:
        return str(number)

    elif param_type == ParamType.SCALED:
        if number == NEG_INF:
            return str(NEG_INF)
        return _format_fixed(number, scale)

    elif param_type == ParamType.FREQUENCY:
        text = _format_fixed(number, scale)
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text

    else:
        raise ValueError(f"Unsupported parameter type: {param_type}")


def decode_value(token: str, param_type: ParamType, scale: int = 1) -> WireValue:
    """
    Decode a wire token to a cached value.

    Args:
        token: Unquoted wire token
        param_type: Parameter type
        scale: Power-of-ten scale factor of the parameter

    Returns:
        Decoded value (int, bool or str)

    Raises:
        ValueError: If the token does not match the type

    Example:
        >>> decode_value("-13.50", ParamType.SCALED, 100)
        -1350
        >>> decode_value("-32768", ParamType.SCALED, 100)
        -32768
    """
    if param_type == ParamType.STRING:
        return token

    elif param_type == ParamType.BOOLEAN:
        if token not in ("0", "1"):
            raise ValueError(f"Invalid boolean token: {token!r}")
        return token == "1"

    elif param_type == ParamType.INTEGER:
        try:
            return int(token)
        except ValueError:
            raise ValueError(f"Invalid integer token: {token!r}") from None

    elif param_type == ParamType.SCALED:
        if token == str(NEG_INF):
            return NEG_INF
        return _parse_fixed(token, scale)

    elif param_type == ParamType.FREQUENCY:
        return _parse_fixed(token, scale)

    else:
        raise ValueError(f"Unsupported parameter type: {param_type}")


def _numbers_equal(a: Any, b: Any) -> bool:
    if isinstance(a, (bool, str)) or isinstance(b, (bool, str)):
        return False
    if not isinstance(a, (int, float)) or not isinstance(b, (int, float)):
        return False
    return a == b


def _bools_equal(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return False
    return bool(a) == bool(b)


def _strings_equal(a: Any, b: Any) -> bool:
    return isinstance(a, str) and isinstance(b, str) and a == b


class ValueCodec(NamedTuple):
    """Type-specific encode/decode/compare functions for one parameter type."""

    encode: Callable[[Any, int], str]
    decode: Callable[[str, int], WireValue]
    equal: Callable[[Any, Any], bool]


def _codec_for(param_type: ParamType, equal: Callable[[Any, Any], bool]) -> ValueCodec:
    return ValueCodec(
        encode=lambda value, scale: encode_value(value, param_type, scale),
        decode=lambda token, scale: decode_value(token, param_type, scale),
        equal=equal,
    )


CODECS: dict[ParamType, ValueCodec] = {
    ParamType.INTEGER: _codec_for(ParamType.INTEGER, _numbers_equal),
    ParamType.SCALED: _codec_for(ParamType.SCALED, _numbers_equal),
    ParamType.FREQUENCY: _codec_for(ParamType.FREQUENCY, _numbers_equal),
    ParamType.BOOLEAN: _codec_for(ParamType.BOOLEAN, _bools_equal),
    ParamType.STRING: _codec_for(ParamType.STRING, _strings_equal),
}
