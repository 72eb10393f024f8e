import enum

from sqlalchemy import Column, Integer, String, Text

from tradegate.models.database import Base


class StrategyMarket(str, enum.Enum):
    GOLD = "gold"
    US30 = "us30"
    BOTH = "both"


class Strategy(Base):
    __tablename__ = "strategies"

    id = Column(String, primary_key=True)
    created_at = Column(Integer, nullable=False)
    updated_at = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    market = Column(String, nullable=False, default=StrategyMarket.BOTH.value, index=True)
    style_tags = Column(String, default="")  # "scalp,swing"
    timeframes = Column(String, default="")  # "M5,M15,H1"
    description = Column(Text, default="")
    checklist = Column(Text, default="")
    image_url = Column(String, default="")
