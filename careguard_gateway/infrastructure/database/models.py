"""SQLAlchemy ORM models for patients, transactions, assessments and alerts"""

from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey, Text, Numeric
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class PatientRecord(Base):
    """Monitored patient"""

    __tablename__ = "patient"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    age = Column(Integer, nullable=False)
    caregiver_id = Column(Text, nullable=False, index=True)
    risk_level = Column(String(20), nullable=False, default="low")  # low | medium | high
    dementia_stage = Column(String(50), nullable=True)  # mild | moderate | severe
    avg_monthly_spending = Column(Numeric(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    transactions = relationship("TransactionRecord", back_populates="patient", cascade="all, delete-orphan")
    risk_assessments = relationship("RiskAssessmentRecord", back_populates="patient", cascade="all, delete-orphan")
    alerts = relationship("AlertRecord", back_populates="patient", cascade="all, delete-orphan")


class TransactionRecord(Base):
    """Scored transaction; is_anomaly and risk_score are written once at insert"""

    __tablename__ = "patient_transaction"

    id = Column(Integer, primary_key=True, autoincrement=True)
    patient_id = Column(Integer, ForeignKey("patient.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String(50), nullable=False)  # ATM | card_payment | online | transfer
    location = Column(String(200), nullable=True)
    merchant = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    is_anomaly = Column(Boolean, nullable=False, default=False)
    risk_score = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    patient = relationship("PatientRecord", back_populates="transactions")


class RiskAssessmentRecord(Base):
    """Append-only risk assessment snapshot"""

    __tablename__ = "risk_assessment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    patient_id = Column(Integer, ForeignKey("patient.id", ondelete="CASCADE"), nullable=False, index=True)
    frequency_score = Column(Integer, nullable=False)
    amount_score = Column(Integer, nullable=False)
    timing_score = Column(Integer, nullable=False)
    location_score = Column(Integer, nullable=False)
    total_score = Column(Integer, nullable=False)
    assessment_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    patient = relationship("PatientRecord", back_populates="risk_assessments")


class AlertRecord(Base):
    """Caregiver alert raised for an anomalous transaction"""

    __tablename__ = "alert"

    id = Column(Integer, primary_key=True, autoincrement=True)
    patient_id = Column(Integer, ForeignKey("patient.id", ondelete="CASCADE"), nullable=False, index=True)
    transaction_id = Column(Integer, ForeignKey("patient_transaction.id", ondelete="SET NULL"), nullable=True)
    type = Column(String(50), nullable=False)  # urgent | high-risk | medium-risk
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    severity = Column(String(20), nullable=False)  # high | medium | low
    is_read = Column(Boolean, nullable=False, default=False)
    is_resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    patient = relationship("PatientRecord", back_populates="alerts")


class AlertSettingsRecord(Base):
    """Per (caregiver, patient) alert preferences"""

    __tablename__ = "alert_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    caregiver_id = Column(Text, nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("patient.id", ondelete="CASCADE"), nullable=False)
    immediate_alerts = Column(Boolean, nullable=False, default=True)
    sms_alerts = Column(Boolean, nullable=False, default=True)
    daily_summary = Column(Boolean, nullable=False, default=False)
    threshold = Column(Numeric(12, 2), nullable=False, default=100_000)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
