"""Output writers for assembled annotation tables."""

from eupath_orgdb.output.writers import write_annotation_tables, write_unmapped_ids

__all__ = ["write_annotation_tables", "write_unmapped_ids"]
