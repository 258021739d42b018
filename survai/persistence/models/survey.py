"""Survey and question models."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from survai.persistence.database import Base

QUESTION_TYPE_CTA_OFFER = "CTA_OFFER"


def _uuid() -> str:
    return str(uuid.uuid4())


class Survey(Base):
    """Survey owning an ordered set of questions."""

    __tablename__ = "surveys"

    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="DRAFT")
    config = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    questions = relationship("Question", back_populates="survey", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Survey(id={self.id}, title={self.title}, status={self.status})>"


class Question(Base):
    """Survey question. CTA_OFFER questions present offer buttons."""

    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=_uuid)
    survey_id = Column(String(36), ForeignKey("surveys.id"), nullable=False, index=True)
    type = Column(String(30), nullable=False, default=QUESTION_TYPE_CTA_OFFER)
    text = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    config = Column(JSON, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    required = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    survey = relationship("Survey", back_populates="questions")

    def __repr__(self) -> str:
        return f"<Question(id={self.id}, survey_id={self.survey_id}, type={self.type})>"
