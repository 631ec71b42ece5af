from sqlalchemy import Column, String, Float, DateTime, ForeignKey
from app.core.database import Base
from app.models.transaction import new_id
from app.utils.dates import now_local


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), index=True, nullable=False)
    name = Column(String(255), nullable=False, default="")
    avatar_url = Column(String(1024), nullable=False, default="")

    # Address the email provider delivers this user's bank alerts to
    inbound_email = Column(String(255), unique=True, index=True, nullable=False)
    oauth_provider = Column(String(20), nullable=False, default="google")

    monthly_salary = Column(Float, nullable=True)
    budget_mode = Column(String(20), nullable=False, default="direct")

    created_at = Column(DateTime, nullable=False, default=now_local)
    updated_at = Column(DateTime, nullable=False, default=now_local, onupdate=now_local)


class Session(Base):
    __tablename__ = "sessions"

    token = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=now_local)
