# firmware/symbols.py
from __future__ import annotations

from typing import Any, Optional

import cxxfilt

LIBCALL_EXPORT_PREFIX = "__library_export_libcalls"
COMPARTMENT_EXPORT_PREFIX = "__export_"


def strip_export_prefix(compartment_name: str, export_symbol: str) -> Optional[str]:
    """Return the mangled name behind an export symbol, or None.

    Library calls are exported as ``__library_export_libcalls_<mangled>``,
    compartment entry points as ``__export_<compartment>_<mangled>``.
    """
    if export_symbol.startswith(LIBCALL_EXPORT_PREFIX):
        rest = export_symbol[len(LIBCALL_EXPORT_PREFIX):]
    elif export_symbol.startswith(COMPARTMENT_EXPORT_PREFIX):
        rest = export_symbol[len(COMPARTMENT_EXPORT_PREFIX):]
        if not rest.startswith(compartment_name):
            return None
        rest = rest[len(compartment_name):]
    else:
        return None
    if not rest.startswith("_"):
        return None
    return rest[1:] or None


def demangle_export(compartment_name: Any, export_symbol: Any) -> Optional[str]:
    if not isinstance(compartment_name, str) or not isinstance(export_symbol, str):
        return None
    mangled = strip_export_prefix(compartment_name, export_symbol)
    if mangled is None:
        return None
    # __cxa_demangle allocates its own output buffer here, sized to the result
    try:
        return cxxfilt.demangle(mangled, external_only=False)
    except (cxxfilt.Error, ValueError):
        return None
