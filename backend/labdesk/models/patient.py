from sqlalchemy import Column, String, Integer
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin, generate_uuid


class PatientRank:
    ARMY = "Army"
    ARMY_FAMILY = "Army Family"
    CIVIL = "Civil"
    PENSION = "Pension"

    ALL = [ARMY, ARMY_FAMILY, CIVIL, PENSION]


class Patient(Base, TimestampMixin):
    __tablename__ = "patients"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    # Shared by family members, so deliberately not unique
    unique_id = Column(String(50), nullable=False, index=True)
    age = Column(Integer, nullable=True)
    sex = Column(String(20), nullable=True)
    rank = Column(String(20), nullable=False)
    ward = Column(String(100), nullable=True)

    tests = relationship("TestInstance", back_populates="patient", order_by="TestInstance.created_at")
