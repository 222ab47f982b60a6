"""SQLAlchemy-backed model registry."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import select

from memoria.db.models import AIModel
from memoria.store.mappers import row_to_model
from memoria.store.protocols import ModelInfo

if TYPE_CHECKING:
    from memoria.db.engine import Database


class SQLModelRegistry:
    """Chat models available for memory extraction."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def add_model(
        self, name: str, model_identifier: str, is_active: bool = True
    ) -> ModelInfo:
        """Register a model."""
        row = AIModel(
            id=str(uuid.uuid4()),
            name=name,
            model_identifier=model_identifier,
            is_active=is_active,
        )
        async with self._db.session() as session:
            session.add(row)
            await session.flush()
            return row_to_model(row)

    async def set_active(self, model_id: str, is_active: bool) -> bool:
        """Activate or deactivate a model; returns False if it does not exist."""
        async with self._db.session() as session:
            row = await session.get(AIModel, model_id)
            if row is None:
                return False
            row.is_active = is_active
            return True

    async def list_models(self, active_only: bool = True) -> list[ModelInfo]:
        # Registration order decides the fallback model
        stmt = select(AIModel).order_by(AIModel.created_at, AIModel.name)
        if active_only:
            stmt = stmt.where(AIModel.is_active.is_(True))
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return [row_to_model(row) for row in result.scalars().all()]
