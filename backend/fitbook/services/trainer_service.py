# backend/fitbook/services/trainer_service.py
"""
Trainer Service for FitBook

Manages a trainer's service catalogue and booking settings
(confirmation mode and timezone).
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
import logging
from typing import List, Optional

import pytz
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..models.service import ConfirmationMode, Service
from ..models.user import User
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectiveTrainerSettings:
    """Settings with defaults applied for trainers that never saved any."""

    trainer_id: str
    confirmation_mode: str
    timezone: str

    @property
    def auto_confirm(self) -> bool:
        return self.confirmation_mode == ConfirmationMode.AUTO.value

    @property
    def tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.timezone)

    def today(self, now: Optional[datetime] = None) -> date:
        """The current calendar date where the trainer is."""
        return (now or datetime.now(pytz.utc)).astimezone(self.tz).date()


def _require_trainer(user: User) -> None:
    if not user.is_trainer:
        raise ForbiddenException("Only trainers can manage services and settings")


class TrainerService(BaseService):
    """Service catalogue and settings for trainers."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.service_repository = RepositoryFactory.create_service_repository(db)
        self.settings_repository = RepositoryFactory.create_trainer_settings_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    def get_trainer(self, trainer_id: str) -> User:
        """Load an active trainer or raise NotFoundException."""
        trainer = self.user_repository.get_active(trainer_id)
        if trainer is None or not trainer.is_trainer:
            raise NotFoundException("Trainer not found", details={"trainer_id": trainer_id})
        return trainer

    def get_settings(self, trainer_id: str) -> EffectiveTrainerSettings:
        row = self.settings_repository.get_for_trainer(trainer_id)
        if row is None:
            return EffectiveTrainerSettings(
                trainer_id=trainer_id,
                confirmation_mode=ConfirmationMode.MANUAL.value,
                timezone=settings.default_timezone,
            )
        return EffectiveTrainerSettings(
            trainer_id=trainer_id,
            confirmation_mode=row.confirmation_mode,
            timezone=row.timezone,
        )

    @BaseService.measure_operation("update_trainer_settings")
    def update_settings(
        self,
        trainer: User,
        *,
        confirmation_mode: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> EffectiveTrainerSettings:
        _require_trainer(trainer)
        current = self.get_settings(trainer.id)

        if confirmation_mode is not None and confirmation_mode not in {
            mode.value for mode in ConfirmationMode
        }:
            raise ValidationException(
                f"Unknown confirmation mode: {confirmation_mode}",
                details={"confirmation_mode": confirmation_mode},
            )
        if timezone is not None and timezone not in pytz.all_timezones_set:
            raise ValidationException(
                f"Unknown timezone: {timezone}", details={"timezone": timezone}
            )

        with self.transaction():
            self.settings_repository.upsert(
                trainer.id,
                confirmation_mode=confirmation_mode or current.confirmation_mode,
                timezone=timezone or current.timezone,
            )

        self.log_operation(
            "update_trainer_settings",
            trainer_id=trainer.id,
            confirmation_mode=confirmation_mode,
            timezone=timezone,
        )
        return self.get_settings(trainer.id)

    def list_services(self, trainer_id: str) -> List[Service]:
        return self.service_repository.list_for_trainer(trainer_id)

    def get_service(self, trainer_id: str, service_id: str) -> Service:
        service = self.service_repository.get_for_trainer(service_id, trainer_id)
        if service is None or not service.is_active:
            raise NotFoundException("Service not found", details={"service_id": service_id})
        return service

    @BaseService.measure_operation("create_service")
    def create_service(
        self,
        trainer: User,
        *,
        name: str,
        duration_minutes: int,
        price: Decimal,
        description: Optional[str] = None,
    ) -> Service:
        _require_trainer(trainer)
        name = (name or "").strip()
        if not name:
            raise ValidationException("Service name is required")
        if not settings.min_slot_minutes <= duration_minutes <= settings.max_slot_minutes:
            raise ValidationException(
                "Service duration is out of range",
                details={
                    "duration_minutes": duration_minutes,
                    "min": settings.min_slot_minutes,
                    "max": settings.max_slot_minutes,
                },
            )
        if price < 0:
            raise ValidationException("Price cannot be negative")

        with self.transaction():
            service = self.service_repository.create(
                trainer_id=trainer.id,
                name=name,
                duration_minutes=duration_minutes,
                price=price,
                description=description,
            )
        self.log_operation("create_service", trainer_id=trainer.id, service_id=service.id)
        return service

    @BaseService.measure_operation("deactivate_service")
    def deactivate_service(self, trainer: User, service_id: str) -> Service:
        _require_trainer(trainer)
        service = self.get_service(trainer.id, service_id)
        with self.transaction():
            service.is_active = False
            self.service_repository.flush()
        self.log_operation("deactivate_service", trainer_id=trainer.id, service_id=service_id)
        return service
