"""Shared API dependencies."""

import uuid
from datetime import date

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from treasury.config import settings
from treasury.core.database import get_db, get_session_factory
from treasury.core.exceptions import ValidationError
from treasury.models.transaction import TransactionType
from treasury.schemas.analytics import AnalyticsFilter
from treasury.services.analytics_config import AnalyticsConfig
from treasury.services.analytics_service import AnalyticsService

__all__ = ["get_db", "get_session_factory", "get_analytics_filter", "get_analytics_service"]


def get_analytics_filter(
    start_date: date | None = None,
    end_date: date | None = None,
    account_id: uuid.UUID | None = None,
    categories: list[str] | None = Query(None),
    transaction_types: list[TransactionType] | None = Query(None),
    min_amount: float | None = None,
    max_amount: float | None = None,
) -> AnalyticsFilter:
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must not be after end_date")
    return AnalyticsFilter(
        start_date=start_date,
        end_date=end_date,
        account_id=account_id,
        categories=categories,
        transaction_types=transaction_types,
        min_amount=min_amount,
        max_amount=max_amount,
    )


def get_analytics_service(
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AnalyticsService:
    return AnalyticsService(db, config=AnalyticsConfig.from_settings(settings), session_factory=session_factory)
