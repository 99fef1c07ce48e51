import enum
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey, JSON, Index
from datetime import datetime
from ..core.database import Base, PrimaryKey


class SecurityCategory(str, enum.Enum):
    LOGIN_FAILED = "login_failed"
    LOGIN_SUCCESS = "login_success"
    ACCESS_DENIED = "access_denied"
    INVALID_CREDENTIAL = "invalid_credential"


class SecurityLog(Base):
    """Write-only audit record: (category, subject, timestamp, detail)."""
    __tablename__ = "security_log"
    __table_args__ = (
        Index("ix_security_log_category_timestamp", "category", "timestamp"),
    )

    id_log = Column(PrimaryKey, primary_key=True, index=True)
    category = Column(String(40), nullable=False)
    subject = Column(String(200), nullable=False)
    timestamp = Column(DateTime, nullable=False, default=datetime.now)
    detail = Column(JSON)
    user_id = Column(BigInteger, ForeignKey("user.id_user"))
