"""
Base class for kernel write services.

Services flush into the caller's session and never commit or roll back.
The caller owns the transaction, which is what lets a liquidation batch
succeed or fail as one unit.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from coop_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    def __init__(self, session: AsyncSession):
        self.session = session
