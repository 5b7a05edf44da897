from sqlalchemy import Column, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from agent_service.database.connection import Base


class Agent(Base):
    __tablename__ = "agents"
    __table_args__ = (
        CheckConstraint("status IN ('active', 'inactive', 'suspended')", name="ck_agents_status"),
    )

    id = Column(String, primary_key=True)
    phone_number = Column(String, unique=True, nullable=False, index=True)
    country_code = Column(String(5), nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    license_number = Column(String(6), unique=True, nullable=False)
    status = Column(String, nullable=False, default="active", server_default="active")  # 'active', 'inactive', 'suspended'
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
