import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Type, TypeVar

from sqlalchemy import Select, delete, select, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.database import Base
from videotube.exceptions import ConflictError, InternalError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


@dataclass
class Pipeline:
    """
    A read pipeline: one SELECT (filter, joins, derived columns, ordering)
    plus a shaper that turns each flat result row into the nested read model.
    """

    stmt: Select
    shape: Callable[[RowMapping], dict] = field(default=dict)


class EntityStore:
    """Key-by-id persistence for every entity type, plus pipeline execution."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, entity: ModelT, conflict_message: str = "Entity already exists") -> ModelT:
        """Insert an entity and commit. Unique violations surface as ConflictError."""
        self.db.add(entity)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            logger.info(f"Insert conflict on {type(entity).__name__}: {exc.orig}")
            raise ConflictError(conflict_message) from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(f"Insert failed on {type(entity).__name__}: {exc}")
            raise InternalError(f"Something went wrong while creating {type(entity).__name__.lower()}") from exc
        await self.db.refresh(entity)
        return entity

    async def find_by_id(self, model: Type[ModelT], entity_id: str) -> Optional[ModelT]:
        """Look up by id. Absent ids return None."""
        return await self.db.get(model, entity_id)

    async def find_one(self, model: Type[ModelT], *criteria: Any) -> Optional[ModelT]:
        result = await self.db.execute(select(model).where(*criteria).limit(1))
        return result.scalar_one_or_none()

    async def update_by_id(
        self,
        model: Type[ModelT],
        entity_id: str,
        values: dict,
        where: Iterable[Any] = (),
        conflict_message: str = "Entity already exists",
    ) -> Optional[ModelT]:
        """
        Partial update of one row. Extra `where` predicates are part of the
        same UPDATE statement, so the check and the write are atomic.
        Returns the refreshed entity or None when no row matched.
        """
        stmt = (
            update(model)
            .where(model.id == entity_id, *where)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(conflict_message) from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(f"Update failed on {model.__name__} {entity_id}: {exc}")
            raise InternalError(f"Something went wrong while updating {model.__name__.lower()}") from exc

        if result.rowcount == 0:
            return None

        entity = await self.db.get(model, entity_id, populate_existing=True)
        return entity

    async def delete_by_id(
        self,
        model: Type[ModelT],
        entity_id: str,
        where: Iterable[Any] = (),
    ) -> Optional[ModelT]:
        """Delete one row, returning the deleted entity or None when no row matched."""
        entity = await self.db.get(model, entity_id)
        if entity is None:
            return None

        stmt = (
            delete(model)
            .where(model.id == entity_id, *where)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(f"Delete failed on {model.__name__} {entity_id}: {exc}")
            raise InternalError(f"Something went wrong while deleting {model.__name__.lower()}") from exc

        if result.rowcount == 0:
            return None

        self.db.expunge(entity)
        return entity

    async def run(self, pipeline: Pipeline) -> list[dict]:
        """Evaluate a pipeline and return its shaped records in order."""
        result = await self.db.execute(pipeline.stmt)
        return [pipeline.shape(row) for row in result.mappings().all()]

    async def run_one(self, pipeline: Pipeline) -> Optional[dict]:
        result = await self.db.execute(pipeline.stmt.limit(1))
        row = result.mappings().first()
        return pipeline.shape(row) if row is not None else None

    async def scalar(self, stmt: Select) -> Any:
        result = await self.db.execute(stmt)
        return result.scalar()
