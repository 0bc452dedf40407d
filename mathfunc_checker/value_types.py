"""
mathfunc_checker/value_types.py
═══════════════════════════════

Simplified C type model for call arguments.

Cppcheck attaches a ``ValueType`` to every expression token it can
type.  The math-function rules only need three questions answered
about an argument:

  * is the static type arithmetic (integer or floating, not a pointer)?
  * is it an integer type?
  * is it unsigned (so the solver may assume ``v >= 0``)?

Anything Cppcheck could not type (``valueType`` missing, records,
containers, ``void``) maps to :attr:`CType.UNKNOWN`, which is neither
arithmetic nor integer.
"""

from __future__ import annotations

import enum
from typing import Any, Optional


class CType(enum.Enum):
    """Simplified C type system for argument classification."""
    BOOL = "bool"
    CHAR = "char"
    UCHAR = "unsigned char"
    INT = "int"
    UINT = "unsigned int"
    LONG = "long"
    ULONG = "unsigned long"
    FLOAT = "float"
    DOUBLE = "double"
    LONG_DOUBLE = "long double"
    POINTER = "pointer"
    UNKNOWN = "unknown"

    @property
    def is_integer(self) -> bool:
        return self in _INTEGER_TYPES

    @property
    def is_floating(self) -> bool:
        return self in (CType.FLOAT, CType.DOUBLE, CType.LONG_DOUBLE)

    @property
    def is_arithmetic(self) -> bool:
        return self.is_integer or self.is_floating

    @property
    def is_unsigned(self) -> bool:
        return self in (CType.BOOL, CType.UCHAR, CType.UINT, CType.ULONG)

    @property
    def bits(self) -> int:
        """Value bits of an integer type (LP64); 0 for everything else."""
        return _INTEGER_BITS.get(self, 0)


_INTEGER_TYPES = frozenset({
    CType.BOOL, CType.CHAR, CType.UCHAR, CType.INT, CType.UINT,
    CType.LONG, CType.ULONG,
})

_INTEGER_BITS = {
    CType.BOOL: 1,
    CType.CHAR: 8,
    CType.UCHAR: 8,
    CType.INT: 32,
    CType.UINT: 32,
    CType.LONG: 64,
    CType.ULONG: 64,
}

# cppcheck ValueType.type → (signed, unsigned)
_CPPCHECK_TYPE_MAP = {
    "bool": (CType.BOOL, CType.BOOL),
    "char": (CType.CHAR, CType.UCHAR),
    "wchar_t": (CType.INT, CType.UINT),
    "short": (CType.INT, CType.UINT),
    "int": (CType.INT, CType.UINT),
    "unknown int": (CType.INT, CType.UINT),
    "long": (CType.LONG, CType.ULONG),
    "long long": (CType.LONG, CType.ULONG),
    "float": (CType.FLOAT, CType.FLOAT),
    "double": (CType.DOUBLE, CType.DOUBLE),
    "long double": (CType.LONG_DOUBLE, CType.LONG_DOUBLE),
}


def ctype_of_value_type(vtype: Any) -> CType:
    """Map a ``cppcheckdata.ValueType`` to a :class:`CType`."""
    if vtype is None:
        return CType.UNKNOWN
    pointer = getattr(vtype, "pointer", 0) or 0
    try:
        pointer = int(pointer)
    except (TypeError, ValueError):
        pointer = 0
    if pointer:
        return CType.POINTER
    type_str = getattr(vtype, "type", "") or ""
    pair = _CPPCHECK_TYPE_MAP.get(type_str)
    if pair is None:
        return CType.UNKNOWN
    unsigned = (getattr(vtype, "sign", "") or "") == "unsigned"
    return pair[1] if unsigned else pair[0]


def ctype_of_token(token: Any) -> CType:
    """Best-effort inference of the static type of an expression token."""
    if token is None:
        return CType.UNKNOWN
    return ctype_of_value_type(getattr(token, "valueType", None))


def ctype_of_variable(var: Any) -> CType:
    """Static type of a declared variable, via its name token."""
    if var is None:
        return CType.UNKNOWN
    name_tok: Optional[Any] = getattr(var, "nameToken", None)
    return ctype_of_token(name_tok)


def is_arithmetic_type(token: Any) -> bool:
    return ctype_of_token(token).is_arithmetic


def is_integer_type(token: Any) -> bool:
    return ctype_of_token(token).is_integer
