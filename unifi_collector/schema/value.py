"""
Dual representation scalar for controller readings.

The controller reports many readings as either numbers or strings and flags as
either booleans or text. A Value keeps the native reading for use as a field
and the textual rendering for use as a tag.
"""

import math
from typing import Any, Optional, Tuple, Union

from ..errors import FieldCoercionError

Native = Union[float, bool, str]

TRUE_WORDS = frozenset({'true', '1', 'yes', 'on', 'enabled', 'up'})
FALSE_WORDS = frozenset({'false', '0', 'no', 'off', 'disabled', 'down', ''})


def canonical_text(val: Native) -> str:
    """Render a native reading as tag text."""
    if isinstance(val, bool):
        return 'true' if val else 'false'
    if isinstance(val, float):
        if val.is_integer():
            return str(int(val))
        return repr(val)
    return str(val)


class Value:
    """A single reading with its native and textual forms.

    ``val`` is authoritative for fields, ``txt`` for tags. When the controller
    sent no text the tag form is derived from ``val``.
    """

    __slots__ = ('val', 'txt')

    def __init__(self, val: Native = 0.0, txt: Optional[str] = None):
        self.val = val
        self.txt = txt

    def as_tag(self) -> str:
        if self.txt is not None:
            return self.txt
        return canonical_text(self.val)

    def as_field(self) -> Native:
        return self.val

    def __eq__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return self.val == other.val and self.as_tag() == other.as_tag()

    def __hash__(self):
        return hash((self.val, self.as_tag()))

    def __repr__(self):
        return f"Value({self.val!r}, {self.as_tag()!r})"


def zero_number() -> Value:
    return Value(0.0, None)


def zero_flag() -> Value:
    return Value(False, None)


def _finite(number: Union[int, float]) -> Optional[float]:
    try:
        number = float(number)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _parse_decimal(text: str) -> Optional[float]:
    if '_' in text:
        return None
    try:
        return _finite(float(text))
    except ValueError:
        return None


def coerce_number(raw: Any, path: str = '') -> Tuple[Value, Optional[FieldCoercionError]]:
    """Read a numeric reading.

    Returns:
        The Value and, if the raw value could not be read, the error describing why.
        Absent readings (None) are zero without an error.
    """
    if raw is None:
        return zero_number(), None
    if isinstance(raw, bool):
        return Value(1.0 if raw else 0.0, 'true' if raw else 'false'), None
    if isinstance(raw, (int, float)):
        number = _finite(raw)
        if number is not None:
            return Value(number), None
    elif isinstance(raw, str):
        text = raw.strip()
        if not text:
            return zero_number(), None
        # float() also takes digit separators, nan and inf
        number = _parse_decimal(text)
        if number is not None:
            return Value(number, text), None
    return zero_number(), FieldCoercionError(f"expected a number, got {raw!r}", path)


def coerce_flag(raw: Any, path: str = '') -> Tuple[Value, Optional[FieldCoercionError]]:
    """Read a boolean flag. Tag text is always ``true`` or ``false``."""
    if raw is None:
        return zero_flag(), None
    if isinstance(raw, bool):
        return Value(raw, 'true' if raw else 'false'), None
    if isinstance(raw, (int, float)) and raw in (0, 1):
        return Value(bool(raw), 'true' if raw else 'false'), None
    if isinstance(raw, str):
        word = raw.strip().lower()
        if word in TRUE_WORDS:
            return Value(True, 'true'), None
        if word in FALSE_WORDS:
            return Value(False, 'false'), None
    return zero_flag(), FieldCoercionError(f"expected a flag, got {raw!r}", path)


def coerce_text(raw: Any, path: str = '') -> Tuple[str, Optional[FieldCoercionError]]:
    """Read a plain string attribute. Numbers are rendered canonically."""
    if raw is None:
        return '', None
    if isinstance(raw, str):
        return raw, None
    if isinstance(raw, bool):
        return canonical_text(raw), None
    if isinstance(raw, (int, float)):
        return str(raw) if isinstance(raw, int) else canonical_text(raw), None
    return '', FieldCoercionError(f"expected text, got {type(raw).__name__}", path)
