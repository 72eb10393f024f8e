"""Daily plan and closeout rows, one per local calendar day."""

from sqlalchemy import Column, Integer, String, Boolean, Text

from tradegate.models.database import Base


class DailyPlan(Base):
    __tablename__ = "daily_plan"

    day_key = Column(String, primary_key=True)  # YYYY-MM-DD
    created_at = Column(Integer, nullable=False)  # epoch ms
    bias = Column(String, default="")
    news_caution = Column(Boolean, default=False)
    key_levels = Column(Text, default="")
    scenarios = Column(Text, default="")


class DailyCloseout(Base):
    __tablename__ = "daily_closeout"

    day_key = Column(String, primary_key=True)
    created_at = Column(Integer, nullable=False)
    bias = Column(String, default="")
    news_caution = Column(Boolean, default=False)
    mood = Column(Integer, default=0)  # 1-5, 0 = not set
    mistakes = Column(Text, default="")
    wins = Column(Text, default="")
    improvement = Column(Text, default="")
    execution_grade = Column(String, default="")
