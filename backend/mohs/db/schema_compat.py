from __future__ import annotations

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine


def _column_exists(engine: Engine, table: str, column: str) -> bool:
    inspector = inspect(engine)
    columns = inspector.get_columns(table)
    return any(col["name"] == column for col in columns)


def _table_exists(engine: Engine, table: str) -> bool:
    inspector = inspect(engine)
    return table in inspector.get_table_names()


def _add_column(engine: Engine, table: str, column: str, column_type: str) -> bool:
    if not _table_exists(engine, table):
        return False
    if _column_exists(engine, table, column):
        return False
    with engine.begin() as connection:
        connection.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {column_type}"))
    return True


def ensure_schema_compatibility(engine: Engine) -> list[str]:
    """
    Lightweight compatibility updater for local/dev databases created before
    the later case, stage and closure columns existed; metadata.create_all()
    cannot alter pre-existing tables.
    """
    added: list[str] = []
    late_columns = [
        ("mohs_cases", "pre_op_depth_mm", "FLOAT"),
        ("mohs_cases", "final_defect_depth_mm", "FLOAT"),
        ("mohs_cases", "mohs_cpt_codes", "JSON"),
        ("mohs_cases", "consent_obtained", "BOOLEAN DEFAULT FALSE"),
        ("mohs_cases", "deleted_at", "TIMESTAMP"),
        ("mohs_stages", "frozen_section_time", "TIMESTAMP"),
        ("mohs_stages", "reading_time", "TIMESTAMP"),
        ("mohs_stages", "pathologist_notes", "TEXT"),
        ("mohs_closures", "technique_notes", "TEXT"),
        ("mohs_maps", "orientation_12_oclock", "VARCHAR(50)"),
    ]
    for table, column, column_type in late_columns:
        if _add_column(engine, table, column, column_type):
            added.append(f"{table}.{column}")
    return added
