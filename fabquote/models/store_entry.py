"""Key-value entry backing the SQL store."""
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from fabquote.database import Base


class StoreEntry(Base):
    """
    One serialized collection (customers, quotations, draft, ...).

    Collections are written whole on every mutation; there is no
    field-level update.
    """

    __tablename__ = 'kv_store'

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<StoreEntry(key='{self.key}', size={len(self.value or '')})>"
