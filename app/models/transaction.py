import uuid
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, UniqueConstraint
from app.core.database import Base
from app.utils.dates import now_local


def new_id() -> str:
    return str(uuid.uuid4())


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), index=True, nullable=False)

    amount = Column(Float, nullable=False)
    vendor = Column(String(200), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    transaction_date = Column(DateTime, index=True, nullable=False)

    # Provider id of the source email; unique so a racing redelivery cannot insert twice
    resend_email_id = Column(String(255), unique=True, index=True, nullable=True)
    raw_email_subject = Column(Text, nullable=False, default="")

    confidence = Column(String(10), nullable=False, default="high")
    source = Column(String(10), nullable=False, default="manual")

    created_at = Column(DateTime, nullable=False, default=now_local)
    updated_at = Column(DateTime, nullable=False, default=now_local, onupdate=now_local)


class Budget(Base):
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("user_id", "category_id", "year", "month", name="uq_budget_user_category_period"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), index=True, nullable=False)

    amount = Column(Float, nullable=False, default=0.0)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)

    created_at = Column(DateTime, nullable=False, default=now_local)
    updated_at = Column(DateTime, nullable=False, default=now_local, onupdate=now_local)
