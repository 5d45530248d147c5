"""
Configuration Validator
-----------------------
Strict checks of a raw YAML mapping against the config dataclass, so a typo
in a key or a wrongly typed value fails at startup instead of being ignored.
"""

from dataclasses import fields
from typing import Any, Dict, Set, Tuple, Type

# annotation string -> accepted YAML value types (None handled separately)
_ACCEPTED: Dict[str, Tuple[type, ...]] = {
    "str": (str,),
    "int": (int,),
    "bool": (bool,),
    "Optional[str]": (str,),
}


def validate_keys(raw_config: Dict[str, Any], data_class: Type[Any]) -> None:
    """
    Validates that every key in ``raw_config`` is a field of ``data_class``
    and that its value has the field's type.

    Raises:
        ValueError: on unknown keys or mistyped values.
    """
    allowed: Dict[str, Any] = {f.name: f.type for f in fields(data_class)}
    unknown: Set[str] = set(raw_config) - set(allowed)
    if unknown:
        raise ValueError(
            f"Config Error: Unknown keys detected: {sorted(unknown)}. "
            f"Allowed keys: {sorted(allowed)}"
        )

    for key, value in raw_config.items():
        annotation = str(allowed[key])
        accepted = _ACCEPTED.get(annotation)
        if accepted is None:
            continue
        if value is None and annotation.startswith("Optional["):
            continue
        # bool is an int subclass; keep them apart
        if isinstance(value, bool) and bool not in accepted:
            raise ValueError(f"Config Error: '{key}' expects {annotation}, got {value!r}")
        if not isinstance(value, accepted):
            raise ValueError(f"Config Error: '{key}' expects {annotation}, got {value!r}")
