from sqlalchemy import Column, Integer, String, Float, Text

from tradegate.models.database import Base


class Trade(Base):
    __tablename__ = "trades"

    id = Column(String, primary_key=True)  # "<epoch-ms>-<hex>"
    created_at = Column(Integer, nullable=False, index=True)  # epoch ms
    strategy_id = Column(String, nullable=True, index=True)
    strategy_name = Column(String, nullable=True)  # snapshot, survives strategy delete
    bias = Column(String, default="")
    session = Column(String, default="")
    timeframe = Column(String, default="")
    risk_r = Column(Float, nullable=True)
    result_r = Column(Float, nullable=False)
    tags = Column(Text, default="")  # CSV: "A_PLUS,FOMO"
    rule_breaks = Column(Text, default="")  # CSV: "PLAN_MISSING,OVERRIDE_USED"
    notes = Column(Text, default="")
