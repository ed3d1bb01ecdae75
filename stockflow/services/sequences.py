"""
Document number allocation

Numbers are taken from ``document_sequences`` in a dedicated session that
commits immediately, so a number is consumed even if the document that
asked for it is later rolled back. Callers must allocate before they write
anything in their own transaction.
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockflow.core.logging import get_logger
from stockflow.models import DocumentSequence

logger = get_logger("business")

PURCHASE_ORDER = "PO"
GOODS_RECEIPT = "GRN"
TRANSFER_ORDER = "TO"


def format_document_number(prefix: str, value: int) -> str:
    return f"{prefix}{value:06d}"


def next_value(db: Session, name: str) -> int:
    """Allocate the next counter value for ``name`` and commit it"""
    with Session(bind=db.get_bind()) as seq_session:
        for _ in range(3):
            updated = seq_session.query(DocumentSequence).filter(
                DocumentSequence.name == name
            ).update(
                {DocumentSequence.last_value: DocumentSequence.last_value + 1},
                synchronize_session=False,
            )
            if updated:
                value = seq_session.query(DocumentSequence.last_value).filter(
                    DocumentSequence.name == name
                ).scalar()
                seq_session.commit()
                return value

            try:
                seq_session.add(DocumentSequence(name=name, last_value=1))
                seq_session.commit()
                return 1
            except IntegrityError:
                # Another allocator created the row first
                seq_session.rollback()

    raise RuntimeError(f"Could not allocate a value from sequence {name}")


def next_document_number(db: Session, prefix: str) -> str:
    number = format_document_number(prefix, next_value(db, prefix))
    logger.debug(f"Allocated document number {number}")
    return number
