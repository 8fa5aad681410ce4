from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.crm.models import Base


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (
        Index("idx_customers_custname", "custname"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    custno: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    custname: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    payterm: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    @property
    def display_name(self) -> str:
        return self.custname or self.custno

    def to_dict(self) -> dict:
        return {
            "custno": self.custno,
            "custname": self.custname,
            "address": self.address,
            "payterm": self.payterm,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
