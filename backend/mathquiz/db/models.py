from sqlalchemy import Column, DateTime, JSON, String, func

from .session import Base


class QuizRecord(Base):
    __tablename__ = "quizzes"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False, default="")
    payload_json = Column(JSON, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
