import enum
from sqlalchemy import Column, BigInteger, String, Text, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from ..core.database import Base, PrimaryKey


class AlertType(str, enum.Enum):
    OFF_SCHEDULE_ACCESS = "off_schedule_access"
    EXPIRING_VISITOR_PASS = "expiring_visitor_pass"
    BURST_ACCESS = "burst_access"
    FAILED_LOGIN_ATTEMPTS = "failed_login_attempts"
    SUSPICIOUS_BEHAVIOR = "suspicious_behavior"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Alert(Base):
    __tablename__ = "alert"

    id_alert = Column(PrimaryKey, primary_key=True, index=True)
    type = Column(Enum(AlertType), nullable=False, index=True)
    severity = Column(Enum(Severity), nullable=False, default=Severity.MEDIUM)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    subject_person_id = Column(BigInteger, ForeignKey("person.id_person"))
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)
    read_at = Column(DateTime)
    read_by = Column(BigInteger, ForeignKey("user.id_user"))
    # "metadata" is reserved on declarative classes
    alert_metadata = Column("metadata", JSON)

    # Relationships
    subject = relationship("Person")

    @property
    def dedup_key(self):
        return (self.alert_metadata or {}).get("dedup_key")

    def __repr__(self):
        return f"<Alert {self.id_alert} {self.type.value} {self.severity.value}>"
