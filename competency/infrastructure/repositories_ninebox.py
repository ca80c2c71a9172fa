# competency/infrastructure/repositories_ninebox.py
from __future__ import annotations

import builtins
from typing import Any

from sqlalchemy import case

from .exceptions import NineBoxCellNotFoundError
from .logging import log_database_operation as log_op
from .models import NineBoxCellORM
from .repositories_base import BaseRepository as GenericBaseRepository

_BAND_RANK = {"high": 0, "medium": 1, "low": 2}


class NineBoxCellRepo(GenericBaseRepository[NineBoxCellORM]):
    model = NineBoxCellORM
    not_found = NineBoxCellNotFoundError

    @log_op("ninebox.list_grid")
    def list_grid(self) -> builtins.list[NineBoxCellORM]:
        """Cells ordered high to low potential, then high to low performance."""
        return super().list(
            order_by=[
                case(_BAND_RANK, value=NineBoxCellORM.potential),
                case(_BAND_RANK, value=NineBoxCellORM.performance),
            ]
        )

    @log_op("ninebox.get_cell")
    def get_cell(self, potential: str, performance: str) -> NineBoxCellORM | None:
        return (
            self.s.query(NineBoxCellORM)
            .filter_by(potential=potential, performance=performance)
            .one_or_none()
        )

    @log_op("ninebox.upsert")
    def upsert(self, potential: str, performance: str, **fields: Any) -> NineBoxCellORM:
        cell = self.get_cell(potential, performance)
        if cell is None:
            return super().create(potential=potential, performance=performance, **fields)
        return super().update(cell, **fields)
