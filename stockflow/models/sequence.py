"""
Document number sequences
"""
from sqlalchemy import Column, Integer, String

from stockflow.core.database import Base


class DocumentSequence(Base):
    """Named counter behind PO, GRN and transfer numbers"""
    __tablename__ = "document_sequences"

    name = Column(String(20), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
