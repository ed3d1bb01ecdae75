"""
Workflow transition tables

Every document type declares its legal transitions as data. Status writes
go through ``apply_transition`` which issues a single guarded UPDATE
(``WHERE id = :id AND status IN (:sources)``) so two concurrent deciders can
never both succeed: the loser sees a row count of zero and is told why.
"""
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Optional, Type

from sqlalchemy.orm import Session

from stockflow.core.exceptions import AlreadyDecidedError, InvalidStateError, NotFoundError
from stockflow.core.logging import get_logger
from stockflow.models import GRNStatus, POStatus, PRStatus, TransferStatus

logger = get_logger("business")


@dataclass(frozen=True)
class Transition:
    action: str
    sources: FrozenSet[str]
    target: str


class StateMachine:
    """Transition table for one document type"""

    def __init__(
        self,
        name: str,
        transitions: Iterable[Transition],
        decided: Iterable[str] = (),
    ):
        self.name = name
        self.transitions: Dict[str, Transition] = {t.action: t for t in transitions}
        # Statuses in which a repeated decision is reported as AlreadyDecided
        self.decided = frozenset(decided)

    def transition(self, action: str) -> Transition:
        try:
            return self.transitions[action]
        except KeyError:
            raise InvalidStateError(f"Unknown {self.name} action '{action}'", action=action)

    def can(self, action: str, current: str) -> bool:
        return current in self.transition(action).sources

    def check(self, action: str, current: str) -> Transition:
        """Validate an action against an already loaded status"""
        transition = self.transition(action)
        if current not in transition.sources:
            raise self.rejection(action, current)
        return transition

    def rejection(self, action: str, current: Optional[str]) -> InvalidStateError:
        transition = self.transition(action)
        error_cls: Type[InvalidStateError] = InvalidStateError
        if current in self.decided:
            error_cls = AlreadyDecidedError
            message = f"{self.name} is already {current}"
        else:
            message = f"Cannot {action} {self.name} in status '{current}'"
        return error_cls(
            message,
            action=action,
            current_status=current,
            allowed_from=sorted(transition.sources),
        )


def _values(names: Iterable[Any]) -> FrozenSet[str]:
    return frozenset(getattr(n, "value", n) for n in names)


PR_WORKFLOW = StateMachine(
    "purchase request",
    [
        Transition("approve", _values([PRStatus.PENDING]), PRStatus.APPROVED.value),
        Transition("reject", _values([PRStatus.PENDING]), PRStatus.REJECTED.value),
        Transition("convert", _values([PRStatus.APPROVED]), PRStatus.CONVERTED.value),
        Transition("edit", _values([PRStatus.PENDING]), PRStatus.PENDING.value),
    ],
    decided=_values([PRStatus.APPROVED, PRStatus.REJECTED, PRStatus.CONVERTED]),
)

PO_OPEN = _values([POStatus.DRAFT, POStatus.SENT, POStatus.ACKNOWLEDGED, POStatus.PARTIALLY_RECEIVED])

PO_WORKFLOW = StateMachine(
    "purchase order",
    [
        Transition("approve", _values([POStatus.DRAFT]), POStatus.SENT.value),
        Transition("acknowledge", _values([POStatus.SENT]), POStatus.ACKNOWLEDGED.value),
        Transition("decline", _values([POStatus.SENT]), POStatus.CANCELLED.value),
        Transition("receive", _values([POStatus.ACKNOWLEDGED]), POStatus.PARTIALLY_RECEIVED.value),
        Transition("complete", _values([POStatus.PARTIALLY_RECEIVED]), POStatus.COMPLETED.value),
        Transition("reject_receipt", _values([POStatus.PARTIALLY_RECEIVED]), POStatus.CANCELLED.value),
        Transition("cancel", PO_OPEN, POStatus.CANCELLED.value),
        Transition("edit", _values([POStatus.DRAFT, POStatus.SENT]), ""),
        Transition("request_delay", _values([POStatus.ACKNOWLEDGED]), POStatus.ACKNOWLEDGED.value),
    ],
    decided=_values([POStatus.COMPLETED, POStatus.CANCELLED]),
)

GRN_WORKFLOW = StateMachine(
    "goods receipt",
    [
        Transition("approve", _values([GRNStatus.PENDING]), GRNStatus.APPROVED.value),
        Transition("reject", _values([GRNStatus.PENDING]), GRNStatus.REJECTED.value),
    ],
    decided=_values([GRNStatus.APPROVED, GRNStatus.REJECTED]),
)

TRANSFER_WORKFLOW = StateMachine(
    "transfer order",
    [
        Transition("submit", _values([TransferStatus.DRAFT]), TransferStatus.PENDING.value),
        Transition("approve", _values([TransferStatus.PENDING]), TransferStatus.APPROVED.value),
        Transition("reject", _values([TransferStatus.PENDING]), TransferStatus.REJECTED.value),
        Transition("complete", _values([TransferStatus.APPROVED]), TransferStatus.COMPLETED.value),
        Transition(
            "cancel",
            _values([TransferStatus.PENDING, TransferStatus.APPROVED]),
            TransferStatus.CANCELLED.value,
        ),
        Transition("edit", _values([TransferStatus.DRAFT, TransferStatus.PENDING]), ""),
    ],
    decided=_values([TransferStatus.REJECTED, TransferStatus.COMPLETED, TransferStatus.CANCELLED]),
)


def apply_transition(
    db: Session,
    model,
    record_id: int,
    machine: StateMachine,
    action: str,
    values: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Move one record through ``action`` with a compare-and-set UPDATE

    Does not commit. Returns the new status. When the guard matches no row
    the session is rolled back and NotFoundError (record missing) or
    AlreadyDecidedError/InvalidStateError (illegal source status) is raised.
    """
    transition = machine.transition(action)
    update_values = dict(values or {})
    if transition.target:
        update_values["status"] = transition.target

    updated = db.query(model).filter(
        model.id == record_id,
        model.status.in_(transition.sources),
    ).update(update_values, synchronize_session=False)

    if updated == 0:
        current = db.query(model.status).filter(model.id == record_id).scalar()
        db.rollback()
        if current is None:
            raise NotFoundError(model.__name__, record_id)
        logger.warning(
            f"Rejected {machine.name} {record_id} {action}: status is '{current}'"
        )
        raise machine.rejection(action, current)

    logger.info(f"{machine.name} {record_id}: {action} -> {transition.target or 'unchanged'}")
    return transition.target
