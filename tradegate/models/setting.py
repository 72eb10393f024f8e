from sqlalchemy import Column, String, Text

from tradegate.models.database import Base


class AppSetting(Base):
    """Free-form key/value row. Typed access goes through SettingsStore."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=True)
