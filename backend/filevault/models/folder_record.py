"""FolderRecord model - a named grouping in the sidebar. Listed, never mutated here."""
from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column
from filevault.models.base import Base, CreatedAtMixin, OwnerMixin


class FolderRecord(Base, CreatedAtMixin, OwnerMixin):
    __tablename__ = "folders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
