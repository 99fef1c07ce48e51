"""
Append-only access log.

Rows are inserted by the admission engine and never updated or deleted;
presence is derived from the latest row per person at read time.
"""
import enum
from sqlalchemy import Column, BigInteger, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from ..core.database import Base, PrimaryKey


class Direction(str, enum.Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"

    def opposite(self) -> "Direction":
        return Direction.EXIT if self is Direction.ENTRY else Direction.ENTRY


class AccessEvent(Base):
    __tablename__ = "access_event"
    __table_args__ = (
        Index("ix_access_event_person_timestamp", "person_id", "timestamp"),
    )

    id_event = Column(PrimaryKey, primary_key=True, index=True)
    person_id = Column(BigInteger, ForeignKey("person.id_person"), nullable=False)
    direction = Column(Enum(Direction), nullable=False)
    timestamp = Column(DateTime, nullable=False, default=datetime.now, index=True)
    operator_id = Column(BigInteger, ForeignKey("user.id_user"))

    # Relationships
    person = relationship("Person", back_populates="events")
    operator = relationship("User", back_populates="recorded_events")

    def __repr__(self):
        return f"<AccessEvent {self.id_event} person={self.person_id} {self.direction.value}@{self.timestamp}>"
