"""RecipeBox — single-row application configuration table."""

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from recipebox.database import Base

CONFIGURATION_ROW_ID = 1


class AppConfiguration(Base):
    __tablename__ = "app_configuration"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=CONFIGURATION_ROW_ID)
    title: Mapped[str] = mapped_column(Text, nullable=False)
