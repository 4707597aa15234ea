"""Build normalized gene annotation tables from EuPathDB and KEGG resources."""

__version__ = "0.1.0"
