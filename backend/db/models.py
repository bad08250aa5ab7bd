from datetime import datetime
from sqlalchemy import Column, Text, Boolean, DateTime
from db.database import Base


class SmokingDate(Base):
    __tablename__ = "smoking_dates"

    date = Column(Text, primary_key=True)  # YYYY-MM-DD
    checked = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
