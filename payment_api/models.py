from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone
import enum

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentState(enum.Enum):
    UNPROCESSED = "UNPROCESSED"
    PROCESSED = "PROCESSED"


class Payment(Base):
    __tablename__ = "payment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(String(36), unique=True, index=True, nullable=False)
    account_origin = Column(String, nullable=False)
    account_target = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    processed = Column(Boolean, default=False, nullable=False)
    processed_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def state(self) -> PaymentState:
        # processed_date only exists in the PROCESSED state
        if self.processed:
            return PaymentState.PROCESSED
        return PaymentState.UNPROCESSED

    def __repr__(self) -> str:
        return f"<Payment uid={self.uid!r} state={self.state.value}>"
