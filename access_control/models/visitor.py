import enum
from sqlalchemy import Column, BigInteger, String, DateTime, Enum, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from datetime import datetime
from ..core.database import Base, PrimaryKey


class PassState(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class VisitorPass(Base):
    """Lifecycle of one authorized visit; closed when the visitor walks out."""
    __tablename__ = "visitor_pass"
    __table_args__ = (
        # At most one ACTIVE pass per person
        Index(
            "uq_visitor_pass_one_active",
            "person_id",
            unique=True,
            sqlite_where=text("state = 'ACTIVE'"),
            postgresql_where=text("state = 'ACTIVE'"),
        ),
    )

    id_pass = Column(PrimaryKey, primary_key=True, index=True)
    person_id = Column(BigInteger, ForeignKey("person.id_person"), nullable=False, index=True)
    reason = Column(String(200), nullable=False, default="Visita general")
    destination = Column(String(150))
    host_name = Column(String(150))
    contact = Column(String(100))
    issued_at = Column(DateTime, nullable=False, default=datetime.now)
    started_at = Column(DateTime, nullable=False, default=datetime.now)
    ended_at = Column(DateTime)
    state = Column(Enum(PassState), nullable=False, default=PassState.ACTIVE)

    # Relationships
    person = relationship("Person", back_populates="visitor_passes")

    @property
    def is_active(self) -> bool:
        return self.state == PassState.ACTIVE
