import enum
from sqlalchemy import Column, BigInteger, String, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from ..core.database import Base, PrimaryKey


class Role(str, enum.Enum):
    APPRENTICE = "aprendiz"
    INSTRUCTOR = "instructor"
    ADMINISTRATIVE = "administrativo"
    VISITOR = "visitante"


class PersonStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class Person(Base):
    __tablename__ = "person"
    __table_args__ = (
        UniqueConstraint("document_number", "document_type", name="uq_person_document"),
    )

    id_person = Column(PrimaryKey, primary_key=True, index=True)
    document_number = Column(String(30), nullable=False, index=True)
    document_type = Column(String(10), nullable=False, default="CC")
    display_name = Column(String(200), nullable=False)
    given_names = Column(String(120))
    surnames = Column(String(120))
    role = Column(Enum(Role), nullable=False)
    status = Column(Enum(PersonStatus), nullable=False, default=PersonStatus.ACTIVE)
    email = Column(String(200))
    phone = Column(String(50))
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
    training_group_id = Column(BigInteger, ForeignKey("training_group.id_training_group"))

    # Relationships
    events = relationship("AccessEvent", back_populates="person")
    visitor_passes = relationship("VisitorPass", back_populates="person")
    training_group = relationship("TrainingGroup", back_populates="members")
    assignments = relationship("EnvironmentAssignment", back_populates="person")

    @property
    def is_active(self) -> bool:
        return self.status == PersonStatus.ACTIVE

    @property
    def is_visitor(self) -> bool:
        return self.role == Role.VISITOR

    def __repr__(self):
        return f"<Person {self.id_person} {self.document_type}:{self.document_number} {self.role.value}>"
