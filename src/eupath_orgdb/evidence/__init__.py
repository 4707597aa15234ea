"""Annotation evidence layers (GO, KEGG) and evidence reconciliation."""
