"""entflow public API and lightweight lazy exports.

Submodules are imported on first attribute access so that model modules can
import the field markers (``field_info``, ``auto_api`` ...) without pulling in
the resolver, the SQL builders or Strawberry.

Exposes:
- Markers: auto_api, soft_delete, auditable, shared_base, field_info, FilterType,
  Filterable and the constraint factories
- Engine: MetadataCache, MetadataResolver, FilterCompiler, MapperFactory,
  MappingConfig, ConversionService
- SQL: build_select, build_count, to_clause
- GraphQL: FieldFilterInput, convert_filter_input
"""
from __future__ import annotations

from .errors import EntflowError, MappingError, MetadataError, NotAnEntity

_EXPORTS = {
    # markers
    'auto_api': 'core.markers',
    'soft_delete': 'core.markers',
    'auditable': 'core.markers',
    'shared_base': 'core.markers',
    'field_info': 'core.markers',
    'FilterType': 'core.markers',
    'Filterable': 'core.markers',
    'Constraint': 'core.markers',
    'Expose': 'core.markers',
    'Security': 'core.markers',
    'SecurityLevel': 'core.markers',
    'not_null': 'core.markers',
    'not_blank': 'core.markers',
    'not_empty': 'core.markers',
    'size': 'core.markers',
    'min_value': 'core.markers',
    'max_value': 'core.markers',
    'email': 'core.markers',
    'pattern': 'core.markers',
    'past': 'core.markers',
    'future': 'core.markers',
    'constraint': 'core.markers',
    # metadata
    'EntityMetadata': 'core.metadata',
    'FieldMetadata': 'core.metadata',
    'RelationMetadata': 'core.metadata',
    'RelationKind': 'core.metadata',
    'MetadataCache': 'core.resolver',
    'MetadataResolver': 'core.resolver',
    'ConversionService': 'core.conversion',
    # filters
    'FilterCompiler': 'core.filters',
    'Predicate': 'core.filters',
    'FetchPlan': 'core.filters',
    'with_soft_delete': 'core.filters',
    # mapping
    'MappingConfig': 'core.mapping',
    'MappingContext': 'core.mapping',
    'EntityMapper': 'core.mapper',
    'MapperFactory': 'core.mapper',
    # sql
    'build_select': 'sql.builders',
    'build_count': 'sql.builders',
    'to_clause': 'sql.builders',
    # graphql
    'FieldFilterInput': 'input_types',
    'convert_filter_input': 'input_converter',
}


def __getattr__(name: str):  # PEP 562 lazy exports
    import importlib as _importlib
    module = _EXPORTS.get(name)
    if module is None:
        raise AttributeError(name)
    return getattr(_importlib.import_module(f"{__name__}.{module}"), name)


__all__ = ['EntflowError', 'MappingError', 'MetadataError', 'NotAnEntity', *_EXPORTS]
