"""Client and ClientAccount models."""

import uuid

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from treasury.models.base import Base, TimestampMixin


class Client(Base, TimestampMixin):
    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True)  # technology, manufacturing, retail ...
    business_segment: Mapped[str | None] = mapped_column(String(50), nullable=True)  # small, medium, large

    # Relationships
    accounts = relationship("ClientAccount", back_populates="client", lazy="select")
    transactions = relationship("Transaction", back_populates="client", lazy="select")


class ClientAccount(Base, TimestampMixin):
    __tablename__ = "client_accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_type: Mapped[str] = mapped_column(String(50), nullable=False, default="operating")
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    # Relationships
    client = relationship("Client", back_populates="accounts")
    transactions = relationship("Transaction", back_populates="account", lazy="select")
