# competency/infrastructure/repositories_template.py
from __future__ import annotations

import builtins
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from .exceptions import (
    ItemNotFoundError,
    LevelNotFoundError,
    PillarNotFoundError,
    TemplateNotFoundError,
)
from .logging import log_database_operation as log_op
from .models import ItemORM, LevelORM, PillarORM, TemplateORM
from .repositories_base import BaseRepository as GenericBaseRepository


class TemplateRepo(GenericBaseRepository[TemplateORM]):
    model = TemplateORM
    not_found = TemplateNotFoundError

    @log_op("template.get_required")
    def get_by_id_required(self, id_: Any) -> TemplateORM:
        return super().get_by_id_required(id_)

    @log_op("template.create")
    def create(self, **fields: Any) -> TemplateORM:
        try:
            return super().create(**fields)
        except SQLAlchemyError as e:
            self._handle_error(e, "template.create")

    @log_op("template.update")
    def update(self, obj: TemplateORM, **fields: Any) -> TemplateORM:
        return super().update(obj, **fields)

    @log_op("template.list_all")
    def list_all(self, active_only: bool = False) -> builtins.list[TemplateORM]:
        filters = [TemplateORM.active.is_(True)] if active_only else []
        return super().list(*filters, order_by=[TemplateORM.name, TemplateORM.id])

    @log_op("template.get_structure")
    def get_with_structure(self, template_id: int) -> TemplateORM:
        """Load a template with its levels, pillars and items in a few queries."""
        template = (
            self.s.query(TemplateORM)
            .options(
                selectinload(TemplateORM.levels),
                selectinload(TemplateORM.pillars).selectinload(PillarORM.items),
            )
            .filter(TemplateORM.id == template_id)
            .one_or_none()
        )
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template


class LevelRepo(GenericBaseRepository[LevelORM]):
    model = LevelORM
    not_found = LevelNotFoundError

    @log_op("level.create")
    def create(self, **fields: Any) -> LevelORM:
        try:
            return super().create(**fields)
        except SQLAlchemyError as e:
            self._handle_error(e, "level.create")

    @log_op("level.list_for_template")
    def list_for_template(self, template_id: int) -> builtins.list[LevelORM]:
        return super().list(LevelORM.template_id == template_id, order_by=[LevelORM.order])


class PillarRepo(GenericBaseRepository[PillarORM]):
    model = PillarORM
    not_found = PillarNotFoundError

    @log_op("pillar.get_required")
    def get_by_id_required(self, id_: Any) -> PillarORM:
        return super().get_by_id_required(id_)

    @log_op("pillar.create")
    def create(self, **fields: Any) -> PillarORM:
        try:
            return super().create(**fields)
        except SQLAlchemyError as e:
            self._handle_error(e, "pillar.create")

    @log_op("pillar.list_for_template")
    def list_for_template(self, template_id: int) -> builtins.list[PillarORM]:
        return super().list(PillarORM.template_id == template_id, order_by=[PillarORM.order])


class ItemRepo(GenericBaseRepository[ItemORM]):
    model = ItemORM
    not_found = ItemNotFoundError

    @log_op("item.get_required")
    def get_by_id_required(self, id_: Any) -> ItemORM:
        return super().get_by_id_required(id_)

    @log_op("item.create")
    def create(self, **fields: Any) -> ItemORM:
        return super().create(**fields)

    @log_op("item.update")
    def update(self, obj: ItemORM, **fields: Any) -> ItemORM:
        return super().update(obj, **fields)

    @log_op("item.next_order")
    def next_order(self, pillar_id: int, level_id: int) -> int:
        """Next display order within the (pillar, level) bucket, counting active items only."""
        current = (
            self.s.query(func.max(ItemORM.order))
            .filter(
                ItemORM.pillar_id == pillar_id,
                ItemORM.level_id == level_id,
                ItemORM.active.is_(True),
            )
            .scalar()
        )
        return (current or 0) + 1

    @log_op("item.list_active_for_template")
    def list_active_for_template(self, template_id: int) -> builtins.list[ItemORM]:
        return list(
            self.s.query(ItemORM)
            .join(PillarORM, ItemORM.pillar_id == PillarORM.id)
            .join(LevelORM, ItemORM.level_id == LevelORM.id)
            .filter(PillarORM.template_id == template_id, ItemORM.active.is_(True))
            .order_by(PillarORM.order, LevelORM.order, ItemORM.order, ItemORM.id)
            .all()
        )
