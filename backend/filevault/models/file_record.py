"""FileRecord model - file metadata (actual bytes live in the object store)."""
from sqlalchemy import String, BigInteger, Integer
from sqlalchemy.orm import Mapped, mapped_column
from filevault.models.base import Base, CreatedAtMixin, OwnerMixin


class FileRecord(Base, CreatedAtMixin, OwnerMixin):
    __tablename__ = "files"

    # Integer key doubles as the insertion-order tiebreaker for listings.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(1000), nullable=False)
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_type: Mapped[str] = mapped_column(
        String(255), nullable=False, default="application/octet-stream"
    )
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    storage_path: Mapped[str] = mapped_column(String(1000), nullable=False, unique=True)
