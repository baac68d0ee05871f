"""Base CRUD class shared by all billing tables."""

from typing import Any, Generic, Optional, Type, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from credibill.models._base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBaseSystem(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """CRUD base class for system tables.

    Implements CRUD methods without user context. Billing sweeps run as the system
    and scope their work through explicit filters instead.
    """

    def __init__(self, model: Type[ModelType]):
        """CRUD object with default methods.

        Args:
        ----
            model (Type[ModelType]): The model to be used in the CRUD operations.

        """
        self.model = model

    async def get(self, db: AsyncSession, id: UUID) -> Optional[ModelType]:
        """Get a single object by ID.

        Args:
        ----
            db (AsyncSession): The database session.
            id (UUID): The UUID of the object to get.

        Returns:
        -------
            Optional[ModelType]: The object with the given ID.

        """
        result = await db.execute(select(self.model).where(self.model.id == id))
        return result.unique().scalar_one_or_none()

    async def get_multi(
        self, db: AsyncSession, *, skip: int = 0, limit: Optional[int] = 100
    ) -> list[ModelType]:
        """Get multiple objects.

        Args:
        ----
            db (AsyncSession): The database session.
            skip (int): The number of objects to skip.
            limit (Optional[int]): The number of objects to return, None for all.

        Returns:
        -------
            list[ModelType]: A list of objects.

        """
        query = select(self.model).offset(skip)
        if limit is not None:
            query = query.limit(limit)

        result = await db.execute(query)
        return list(result.unique().scalars().all())

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, dict[str, Any]],
        commit: bool = True,
    ) -> ModelType:
        """Create a new object.

        Args:
        ----
            db (AsyncSession): The database session.
            obj_in (Union[CreateSchemaType, dict]): The object to create.
            commit (bool): Commit the transaction. Pass False to only flush, so the
                caller controls the transaction.

        Returns:
        -------
            ModelType: The created object.

        """
        if not isinstance(obj_in, dict):
            obj_in = obj_in.model_dump()
        db_obj = self.model(**obj_in)
        db.add(db_obj)

        if commit:
            await db.commit()
        else:
            await db.flush()

        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, dict[str, Any]],
        commit: bool = True,
    ) -> ModelType:
        """Update an object.

        Args:
        ----
            db (AsyncSession): The database session.
            db_obj (ModelType): The object to update.
            obj_in (Union[UpdateSchemaType, dict]): The new object data.
            commit (bool): Commit the transaction, or only flush when False.

        Returns:
        -------
            ModelType: The updated object

        """
        if not isinstance(obj_in, dict):
            obj_in = obj_in.model_dump(exclude_unset=True)

        for key, value in obj_in.items():
            if hasattr(db_obj, key):
                setattr(db_obj, key, value)
        db.add(db_obj)

        if commit:
            await db.commit()
        else:
            await db.flush()

        return db_obj

    async def remove(
        self, db: AsyncSession, *, id: UUID, commit: bool = True
    ) -> Optional[ModelType]:
        """Delete an object.

        Args:
        ----
            db (AsyncSession): The database session.
            id (UUID): The UUID of the object to delete.
            commit (bool): Commit the transaction, or only flush when False.

        Returns:
        -------
            Optional[ModelType]: The deleted object.

        """
        db_obj = await self.get(db, id=id)
        if db_obj is None:
            return None

        await db.delete(db_obj)

        if commit:
            await db.commit()
        else:
            await db.flush()

        return db_obj
