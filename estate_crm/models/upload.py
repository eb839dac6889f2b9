"""
Buyer upload metadata.
Files live in external storage; the portal registers what was uploaded.
"""

from sqlalchemy import String, Text, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from estate_crm.database import Base
import uuid
from typing import Optional


class BuyerUpload(Base):
    """File uploaded by a buyer through the portal."""

    __tablename__ = "buyer_uploads"

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("buyers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    file_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "buyer_id": str(self.buyer_id),
            "file_url": self.file_url,
            "file_name": self.file_name,
            "file_type": self.file_type,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
        }
