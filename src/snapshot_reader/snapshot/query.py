"""Split scan query construction."""

from dataclasses import dataclass
from typing import Any, List, Tuple

from snapshot_reader.snapshot.errors import QueryConstructionError
from snapshot_reader.snapshot.models import SplitDescriptor, SplitKeyType, TableId


class SqlDialect:
    """Identifier quoting and parameter binding for one database flavor."""

    quote_char = '"'
    placeholder = "%s"

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace(self.quote_char, self.quote_char * 2)
        return f"{self.quote_char}{escaped}{self.quote_char}"

    def quote_table(self, table_id: TableId) -> str:
        parts = [p for p in (table_id.schema, table_id.table) if p]
        return ".".join(self.quote_identifier(p) for p in parts)

    def bind(self, key_type: SplitKeyType) -> str:
        """Placeholder for a split key bound of the given type."""
        return self.placeholder


class PostgresDialect(SqlDialect):
    """Postgres: double-quoted identifiers, binds cast to the key type."""

    def bind(self, key_type: SplitKeyType) -> str:
        # plain ::char would truncate the bound to one character
        cast = "bpchar" if key_type is SplitKeyType.CHAR else key_type.value
        return f"{self.placeholder}::{cast}"


class MySQLDialect(SqlDialect):
    """MySQL: backtick-quoted identifiers, untyped binds."""

    quote_char = "`"


@dataclass(frozen=True)
class SplitScanQuery:
    """A rendered split scan statement and its parameters."""

    sql: str
    params: Tuple[Any, ...]


def validate_split(split: SplitDescriptor) -> None:
    """
    Check that a split can be scanned as a key range.

    Raises:
        QueryConstructionError: If the key type is not orderable, a bound has
            the wrong type, or the lower bound exceeds the upper bound
    """
    key_type = split.split_key_type
    if not isinstance(key_type, SplitKeyType):
        raise QueryConstructionError(
            f"Split '{split.split_id}' has unknown split key type {key_type!r}"
        )
    if not split.split_key:
        raise QueryConstructionError(f"Split '{split.split_id}' has no split key column")
    if not key_type.comparable:
        raise QueryConstructionError(
            f"Split key {split.split_key} of type {key_type.value} is not orderable"
        )

    for label, bound in (("start", split.split_start), ("end", split.split_end)):
        if bound is not None and not key_type.accepts(bound):
            raise QueryConstructionError(
                f"Split '{split.split_id}' {label} bound {bound!r} "
                f"({type(bound).__name__}) does not match key type {key_type.value}"
            )

    if split.split_start is not None and split.split_end is not None:
        try:
            inverted = split.split_start > split.split_end
        except TypeError as e:
            raise QueryConstructionError(
                f"Split '{split.split_id}' bounds are not comparable: {e}"
            ) from e
        if inverted:
            raise QueryConstructionError(
                f"Split '{split.split_id}' start {split.split_start!r} "
                f"is greater than end {split.split_end!r}"
            )


def build_split_scan_query(dialect: SqlDialect, split: SplitDescriptor) -> SplitScanQuery:
    """
    Render the ordered range query of a split.

    Args:
        dialect: SQL dialect of the source database
        split: Split to scan

    Returns:
        Statement and parameters

    Raises:
        QueryConstructionError: If the split is malformed
    """
    validate_split(split)

    key = dialect.quote_identifier(split.split_key)
    bind = dialect.bind(split.split_key_type)
    conditions: List[str] = []
    params: List[Any] = []

    if not split.is_first_split:
        conditions.append(f"{key} >= {bind}")
        params.append(split.split_start)

    if not split.is_last_split:
        conditions.append(f"{key} <= {bind}")
        params.append(split.split_end)
        if not split.end_inclusive:
            conditions.append(f"NOT ({key} = {bind})")
            params.append(split.split_end)

    sql = f"SELECT * FROM {dialect.quote_table(split.table_id)}"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)
    sql += f" ORDER BY {key}"

    return SplitScanQuery(sql=sql, params=tuple(params))
