"""Identifier normalization module.

Provides alias tables, the pattern-dispatched identifier normalizer,
and validation gates for normalization quality control.
"""

from eupath_orgdb.gene_mapping.aliases import AliasTable, IdentifierAlias
from eupath_orgdb.gene_mapping.normalizer import (
    IdentifierNormalizer,
    NormalizationReport,
    NormalizationRule,
    NormalizerRegistry,
    default_registry,
)
from eupath_orgdb.gene_mapping.validator import MappingValidator, ValidationResult

__all__ = [
    "AliasTable",
    "IdentifierAlias",
    "IdentifierNormalizer",
    "NormalizationReport",
    "NormalizationRule",
    "NormalizerRegistry",
    "default_registry",
    "MappingValidator",
    "ValidationResult",
]
