"""Map query result columns onto full-width, ordinal-positioned rows."""

from typing import Any, List, Mapping, Optional, Sequence, Union

from snapshot_reader.observability.logging_config import get_logger
from snapshot_reader.snapshot.models import RowTuple, TableSchema

logger = get_logger(__name__)


class RowMapper:
    """
    Places result values at the index of their column's table ordinal.

    The result set may be narrower than the table or list columns in another
    order. Table columns missing from the result are left as ``None``; result
    columns the schema does not know are dropped. Neither case shifts the
    position of any other column.
    """

    def __init__(self, schema: TableSchema, result_columns: Sequence[str]) -> None:
        """
        Initialize row mapper.

        Args:
            schema: Table schema the rows are laid out by
            result_columns: Column names in the order the query returns them
        """
        self.schema = schema
        self.width = schema.width
        self.result_columns = list(result_columns)
        self._targets: List[Optional[int]] = []
        unknown = []

        for name in result_columns:
            column = schema.column(name)
            if column is None:
                unknown.append(name)
                self._targets.append(None)
            else:
                self._targets.append(column.position - 1)

        missing = set(schema.column_names) - set(result_columns)
        if unknown:
            logger.warning(
                f"Ignoring columns {unknown} of {schema.table_id} not present in table schema"
            )
        if missing:
            logger.info(
                f"Columns {sorted(missing)} of {schema.table_id} absent from result, "
                "emitting them as null"
            )

    def to_row(self, values: Union[Sequence[Any], Mapping[str, Any]]) -> RowTuple:
        """Lay out one result row (a sequence or a name-keyed mapping) by table ordinal."""
        if isinstance(values, Mapping):
            values = [values.get(name) for name in self.result_columns]
        row: List[Any] = [None] * self.width
        for target, value in zip(self._targets, values):
            if target is not None:
                row[target] = value
        return tuple(row)
