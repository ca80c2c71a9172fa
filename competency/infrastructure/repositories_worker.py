# competency/infrastructure/repositories_worker.py
from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from .exceptions import WorkerNotFoundError
from .logging import log_database_operation as log_op
from .models import WorkerORM
from .repositories_base import BaseRepository as GenericBaseRepository


class WorkerRepo(GenericBaseRepository[WorkerORM]):
    model = WorkerORM
    not_found = WorkerNotFoundError

    @log_op("worker.get_required")
    def get_by_id_required(self, id_: Any) -> WorkerORM:
        return super().get_by_id_required(id_)

    @log_op("worker.create")
    def create(self, **fields: Any) -> WorkerORM:
        try:
            return super().create(**fields)
        except SQLAlchemyError as e:
            self._handle_error(e, "worker.create")

    @log_op("worker.get_by_external_id")
    def get_by_external_id(self, external_id: str) -> WorkerORM | None:
        return self.s.query(WorkerORM).filter_by(external_id=external_id).one_or_none()
