# backend/fitbook/repositories/trainer_repository.py
"""
Repositories for users, trainer services and trainer settings.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.service import Service, TrainerSettings
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Read access to users."""

    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_active(self, user_id: str) -> Optional[User]:
        return self.find_one_by(id=user_id, is_active=True)


class ServiceRepository(BaseRepository[Service]):
    """Repository for the trainer service catalogue."""

    def __init__(self, db: Session):
        super().__init__(db, Service)

    def list_for_trainer(self, trainer_id: str, *, active_only: bool = True) -> List[Service]:
        query = self._build_query().filter(Service.trainer_id == trainer_id)
        if active_only:
            query = query.filter(Service.is_active.is_(True))
        return self._execute_query(query.order_by(Service.name))

    def get_for_trainer(self, service_id: str, trainer_id: str) -> Optional[Service]:
        return self.find_one_by(id=service_id, trainer_id=trainer_id)


class TrainerSettingsRepository(BaseRepository[TrainerSettings]):
    """Repository for per-trainer booking settings."""

    def __init__(self, db: Session):
        super().__init__(db, TrainerSettings)

    def get_for_trainer(self, trainer_id: str) -> Optional[TrainerSettings]:
        return self.find_one_by(trainer_id=trainer_id)

    def upsert(self, trainer_id: str, **fields: object) -> TrainerSettings:
        existing = self.get_for_trainer(trainer_id)
        if existing is None:
            return self.create(trainer_id=trainer_id, **fields)
        for key, value in fields.items():
            setattr(existing, key, value)
        self.flush()
        return existing
