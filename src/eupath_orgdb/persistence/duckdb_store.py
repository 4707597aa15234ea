"""DuckDB-based storage for stage checkpoints with fingerprint validation."""

import re
from pathlib import Path
from typing import Optional

import duckdb
import polars as pl

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_table_name(table_name: str) -> str:
    if not _TABLE_NAME.match(table_name):
        raise ValueError(f"Invalid table name: {table_name!r}")
    return table_name


class PipelineStore:
    """
    DuckDB-based storage for pipeline stage results.

    Each stage result is saved as a table together with the fingerprint of
    the inputs it was computed from. A later run reuses the table only when
    the fingerprint it computes for the same stage is identical.
    """

    def __init__(self, db_path: Path):
        """
        Initialize PipelineStore with a DuckDB database.

        Args:
            db_path: Path to DuckDB database file. Parent directories
                     are created automatically.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.conn = duckdb.connect(str(self.db_path))

        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS _checkpoints (
                table_name VARCHAR PRIMARY KEY,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                row_count INTEGER,
                fingerprint VARCHAR,
                description VARCHAR
            )
        """)

    def save_dataframe(
        self,
        df: pl.DataFrame,
        table_name: str,
        fingerprint: Optional[str] = None,
        description: str = "",
    ) -> None:
        """
        Save a DataFrame as a table, replacing any previous version.

        Args:
            df: Polars DataFrame to save
            table_name: Name for the DuckDB table
            fingerprint: Fingerprint of the inputs the table was built from
            description: Optional description for checkpoint metadata
        """
        if not isinstance(df, pl.DataFrame):
            raise ValueError("df must be a polars.DataFrame")
        table_name = _check_table_name(table_name)

        self.conn.register("_incoming", df)
        try:
            self.conn.execute(
                f"CREATE OR REPLACE TABLE {table_name} AS SELECT * FROM _incoming"
            )
        finally:
            self.conn.unregister("_incoming")

        self.conn.execute("""
            INSERT OR REPLACE INTO _checkpoints
                (table_name, row_count, fingerprint, description, created_at)
            VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
        """, [table_name, df.height, fingerprint, description])

    def load_dataframe(self, table_name: str) -> Optional[pl.DataFrame]:
        """
        Load a table as a polars DataFrame.

        Returns:
            DataFrame or None if table doesn't exist
        """
        table_name = _check_table_name(table_name)
        try:
            return self.conn.execute(f"SELECT * FROM {table_name}").pl()
        except duckdb.CatalogException:
            return None

    def get_fingerprint(self, table_name: str) -> Optional[str]:
        """Return the stored fingerprint for a table, or None."""
        row = self.conn.execute(
            "SELECT fingerprint FROM _checkpoints WHERE table_name = ?",
            [table_name]
        ).fetchone()
        return row[0] if row else None

    def has_checkpoint(self, table_name: str, fingerprint: Optional[str] = None) -> bool:
        """
        Check if a checkpoint exists.

        Args:
            table_name: Name of the table to check
            fingerprint: If given, the stored fingerprint must equal it

        Returns:
            True if a (matching) checkpoint exists, False otherwise
        """
        row = self.conn.execute(
            "SELECT fingerprint FROM _checkpoints WHERE table_name = ?",
            [table_name]
        ).fetchone()
        if row is None:
            return False
        if fingerprint is None:
            return True
        return row[0] == fingerprint

    def list_checkpoints(self) -> list[dict]:
        """
        List all checkpoints with metadata.

        Returns:
            List of checkpoint metadata dicts with keys:
            table_name, created_at, row_count, fingerprint, description
        """
        result = self.conn.execute("""
            SELECT table_name, created_at, row_count, fingerprint, description
            FROM _checkpoints
            ORDER BY created_at DESC
        """).fetchall()

        return [
            {
                "table_name": row[0],
                "created_at": row[1],
                "row_count": row[2],
                "fingerprint": row[3],
                "description": row[4],
            }
            for row in result
        ]

    def delete_checkpoint(self, table_name: str) -> None:
        """Drop a checkpoint table and its metadata."""
        table_name = _check_table_name(table_name)
        self.conn.execute(f"DROP TABLE IF EXISTS {table_name}")
        self.conn.execute(
            "DELETE FROM _checkpoints WHERE table_name = ?",
            [table_name]
        )

    def export_parquet(self, table_name: str, output_path: Path) -> None:
        """Export a table to Parquet format."""
        table_name = _check_table_name(table_name)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn.execute(
            f"COPY {table_name} TO ? (FORMAT PARQUET)",
            [str(output_path)]
        )

    def close(self) -> None:
        """Close the DuckDB connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @classmethod
    def from_config(cls, config: "PipelineConfig") -> "PipelineStore":
        """Create PipelineStore from a PipelineConfig."""
        return cls(config.duckdb_path)
