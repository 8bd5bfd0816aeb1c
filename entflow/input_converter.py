"""
Input converter utilities for GraphQL filter inputs.

This module flattens Strawberry filter inputs (see ``input_types``) into the
string-keyed parameter map consumed by ``FilterCompiler.compile``.
"""

import dataclasses
from typing import Any, Callable, Dict, Mapping, Optional

from .core.naming import from_camel

# Input attribute -> query parameter suffix
OPERATOR_SUFFIXES: Dict[str, str] = {
    'eq': '',
    'like': '_like',
    'gt': '_gt',
    'gte': '_gte',
    'lt': '_lt',
    'lte': '_lte',
    'in_': '_in',
    'in': '_in',
    'not_in': '_not_in',
    'is_null': '_null',
    'between': '_between',
}


def _operator_items(filter_input: Any):
    if isinstance(filter_input, Mapping):
        return list(filter_input.items())
    return list(vars(filter_input).items())


def convert_simple_filter(field_name: str, filter_input: Any) -> Dict[str, Any]:
    """
    Convert one field's filter input into query parameters.

    Args:
        field_name: Query parameter base name of the field
        filter_input: A filter input object, a plain dict of operators, or a
            direct value meaning equality

    Returns:
        Dictionary of parameter name to value, e.g. ``{"age_gte": 18}``
    """
    if filter_input is None:
        return {}

    # Handle direct values (simple equality)
    if not isinstance(filter_input, Mapping) and not dataclasses.is_dataclass(filter_input):
        return {field_name: filter_input}

    result: Dict[str, Any] = {}
    for op_name, value in _operator_items(filter_input):
        if value is None:
            continue
        suffix = OPERATOR_SUFFIXES.get(from_camel(op_name))
        if suffix is None:
            raise ValueError(f"Unknown filter operator '{op_name}' for field '{field_name}'")
        if suffix == '_null':
            # compiled as IS NULL only when the value reads 'true'
            value = 'true' if value is True or str(value).lower() == 'true' else 'false'
        result[field_name + suffix] = value
    return result


def convert_filter_input(
    where_fields: Optional[Mapping[str, Any]],
    name_converter: Optional[Callable[[str], str]] = None,
) -> Dict[str, Any]:
    """
    Convert a GraphQL ``where`` mapping to the parameter map of the filter compiler.

    Args:
        where_fields: Dictionary mapping field names to filter inputs
        name_converter: Optional mapping from GraphQL field names to parameter
            base names (e.g. ``from_camel``)

    Returns:
        Dictionary in the format expected by ``FilterCompiler.compile``
    """
    if not where_fields:
        return {}

    result: Dict[str, Any] = {}
    for field_name, filter_input in where_fields.items():
        base = name_converter(field_name) if name_converter else field_name
        result.update(convert_simple_filter(base, filter_input))
    return result
