"""Session x key organization matrix models."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import Field, model_validator

from pydevlog.models._base import DevLogBaseModel


class RowMetadata(DevLogBaseModel):
    """Display position of a session row.

    ``index`` is 1-based and follows ``first_timestamp`` ascending, so an
    opaque session identifier becomes humanly orderable.
    """

    index: int = Field(ge=1)
    first_timestamp: datetime


class OrganizationMatrix(DevLogBaseModel):
    """Sparse pivot of one project's events: sessions as rows, keys as columns.

    Parameters
    ----------
    project_id : int
        Project the events belong to.
    start_date, end_date : date
        Calendar days covered (equal for a single-day matrix).
    row_keys : list[str]
        Session identifiers ordered by first observed timestamp.
    column_keys : list[str]
        Observed keys in first-seen order.
    cells : dict
        ``cells[session_id][key] -> value``; absent cells are simply missing.
    row_metadata : dict
        ``session_id -> RowMetadata``.
    """

    project_id: int
    start_date: date
    end_date: date
    row_keys: list[str] = Field(default_factory=list)
    column_keys: list[str] = Field(default_factory=list)
    cells: dict[str, dict[str, str]] = Field(default_factory=dict)
    row_metadata: dict[str, RowMetadata] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _rows_are_described(self) -> OrganizationMatrix:
        if set(self.row_metadata) != set(self.row_keys):
            raise ValueError("row_metadata must describe exactly the rows in row_keys")
        return self

    @property
    def total_rows(self) -> int:
        return len(self.row_keys)

    @property
    def total_columns(self) -> int:
        return len(self.column_keys)

    @property
    def total_entries(self) -> int:
        return sum(len(row) for row in self.cells.values())

    def cell(self, row_key: str, column_key: str) -> str | None:
        return self.cells.get(row_key, {}).get(column_key)


class OrganizationMatrixRange(DevLogBaseModel):
    """One matrix per day of a range plus the combined view of the whole range."""

    project_id: int
    start_date: date
    end_date: date
    daily: list[OrganizationMatrix] = Field(default_factory=list)
    combined: OrganizationMatrix
