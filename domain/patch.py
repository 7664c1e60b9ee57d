from enum import Enum
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel


def changed_fields(request: BaseModel) -> Dict[str, Any]:
    """Fields the caller explicitly set on a sparse update request.

    An explicit ``null`` counts as set; an omitted field does not.
    """
    out = {}
    for name in request.model_fields_set:
        value = getattr(request, name)
        out[name] = value.value if isinstance(value, Enum) else value
    return out


def apply_patch(target: Any, changes: Mapping[str, Any], *, immutable: tuple = ()) -> List[str]:
    """Copy ``changes`` onto ``target`` attribute by attribute.

    A field is updated iff it appears in ``changes``. Returns the names of the
    fields whose value actually changed.
    """
    updated = []
    for name, value in changes.items():
        if name in immutable:
            raise ValueError(f"{name} cannot be changed")
        if not hasattr(target, name):
            raise AttributeError(f"{type(target).__name__} has no field {name!r}")
        if getattr(target, name) != value:
            setattr(target, name, value)
            updated.append(name)
    return updated
