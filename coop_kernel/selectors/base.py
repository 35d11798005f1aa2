"""
Base class for read-only selectors.

Selectors query through the caller's session and return DTOs.  They never
add, delete, flush or commit; FOR UPDATE row locks count as reads.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from coop_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    def __init__(self, session: AsyncSession):
        self.session = session
