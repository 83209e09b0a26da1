"""SQLAlchemy ORM models for the dental booking system."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .config import SLOT_DURATION
from .db import Base


class Provider(Base):
    __tablename__ = "providers"
    __table_args__ = (CheckConstraint("years_of_experience >= 0", name="ck_provider_experience"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    years_of_experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    area_of_expertise: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )

    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="provider")
    waitlist_entries: Mapped[list["WaitlistEntry"]] = relationship(
        "WaitlistEntry", back_populates="provider", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Provider id={self.id} name={self.name}>"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (Index("ix_bookings_provider_date", "provider_id", "appointment_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # One booking per user
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    provider_id: Mapped[int] = mapped_column(ForeignKey("providers.id"), nullable=False)
    appointment_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    provider: Mapped[Provider] = relationship("Provider", back_populates="bookings")

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def end(self) -> datetime:
        return self.appointment_date + SLOT_DURATION

    def __repr__(self) -> str:
        return (
            f"<Booking id={self.id} user_id={self.user_id} "
            f"provider_id={self.provider_id} at={self.appointment_date}>"
        )


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"
    __table_args__ = (Index("ix_waitlist_provider_created", "provider_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    provider_id: Mapped[int] = mapped_column(ForeignKey("providers.id"), nullable=False)
    preferred_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # Legacy marker; only entries with notified=False are pending
    notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    provider: Mapped[Provider] = relationship("Provider", back_populates="waitlist_entries")

    def __repr__(self) -> str:
        return (
            f"<WaitlistEntry id={self.id} user_id={self.user_id} "
            f"provider_id={self.provider_id} notified={self.notified}>"
        )
