import enum
from sqlalchemy import Column, BigInteger, Integer, String, Boolean, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship
from ..core.database import Base, PrimaryKey
from .person import Role


class Shift(str, enum.Enum):
    DAY = "diurna"
    NIGHT = "nocturna"
    MIXED = "mixta"


class TrainingGroup(Base):
    """Cohort ("ficha") an apprentice belongs to."""
    __tablename__ = "training_group"

    id_training_group = Column(PrimaryKey, primary_key=True, index=True)
    code = Column(String(30), nullable=False, unique=True)
    program_code = Column(String(30))
    program_name = Column(String(200))
    shift = Column(Enum(Shift))

    # Relationships
    members = relationship("Person", back_populates="training_group")


class Environment(Base):
    """Classroom, lab or office ("ambiente")."""
    __tablename__ = "environment"

    id_environment = Column(PrimaryKey, primary_key=True, index=True)
    code = Column(String(30), nullable=False, unique=True)
    name = Column(String(150), nullable=False)
    block = Column(String(30))
    floor = Column(Integer)
    capacity = Column(Integer, nullable=False, default=0)

    # Relationships
    assignments = relationship("EnvironmentAssignment", back_populates="environment")

    @property
    def label(self) -> str:
        return f"{self.block} - {self.name}" if self.block else self.name


class EnvironmentAssignment(Base):
    __tablename__ = "environment_assignment"

    id_assignment = Column(PrimaryKey, primary_key=True, index=True)
    person_id = Column(BigInteger, ForeignKey("person.id_person"), nullable=False, index=True)
    environment_id = Column(BigInteger, ForeignKey("environment.id_environment"), nullable=False)
    assignment_type = Column(Enum(Role), nullable=False)
    schedule = Column(JSON)  # {"lunes": "08:00-12:00", ...}
    active = Column(Boolean, default=True)

    # Relationships
    person = relationship("Person", back_populates="assignments")
    environment = relationship("Environment", back_populates="assignments")
