"""
Transaction Context: The Host Environment Seen From Inside a Flow.

A TxContext is created per transaction and passed explicitly into every
operation that needs the host: caller identity, fresh ids, transfers of
top-level assets to principals, publishing shared objects, emitting
events, and issuing invoices.

INVARIANTS:
- Every invoice opened through this context must be settled through this
  context before finish(); otherwise the transaction is aborted
- Once aborted, the context refuses all further work and can never finish
- Transfers move linear assets out of the flow: the transferred value is
  consumed and can no longer be used by the caller

The context only records intent. The workspace that owns it decides what
is persisted, and only after finish() succeeds.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from armory.models.failure import FailureKind, InvalidInputError, KnownError
from armory.models.invoice import (
    InvalidInvoiceError,
    Invoice,
    UnsettledInvoiceError,
    issue_invoice,
)
from armory.models.resource import LinearResource

if TYPE_CHECKING:
    from armory.models.shop import Shop

logger = logging.getLogger(__name__)


class TransactionAbortedError(KnownError):
    """
    Raised when work is attempted on an aborted or finished transaction.

    An aborted transaction is FINAL. Its provisional effects are discarded.
    """

    def __init__(self, tx_id: str, reason: str):
        self.tx_id = tx_id
        self.reason = reason
        super().__init__(
            kind=FailureKind.TRANSACTION_ABORTED,
            message="Transaction is no longer active",
            detail=f"tx={tx_id}: {reason}",
            suggestion="Start a new transaction.",
            status_code=409,
        )


@dataclass(frozen=True)
class Transfer:
    """A top-level asset handed to a principal."""

    asset: Any
    recipient: str


def _new_id() -> str:
    return uuid4().hex


class TxContext:
    """Per-transaction view of the host environment."""

    def __init__(self, sender: str, id_factory: Callable[[], str] | None = None) -> None:
        if not isinstance(sender, str) or not sender.strip():
            raise InvalidInputError("Transaction sender must be a non-empty principal")
        self._fresh_id = id_factory or _new_id
        self.id = self._fresh_id()
        self._sender = sender
        self._open_invoices: dict[str, Invoice] = {}
        self._settled_count = 0
        self._transfers: list[Transfer] = []
        self._shared: list["Shop"] = []
        self._minted: list[LinearResource] = []
        self._events: list[Any] = []
        self._abort_reason: str | None = None
        self._finished = False

    # -------------------------------------------------------------------------
    # Identity and lifecycle
    # -------------------------------------------------------------------------

    @property
    def sender(self) -> str:
        """The principal that initiated this transaction."""
        return self._sender

    @property
    def aborted(self) -> bool:
        return self._abort_reason is not None

    @property
    def abort_reason(self) -> str | None:
        return self._abort_reason

    @property
    def finished(self) -> bool:
        return self._finished

    def ensure_active(self) -> None:
        if self._abort_reason is not None:
            raise TransactionAbortedError(self.id, self._abort_reason)
        if self._finished:
            raise TransactionAbortedError(self.id, "already finished")

    def abort(self, reason: str) -> None:
        """Mark the transaction as failed. The first reason wins."""
        if self._abort_reason is None:
            self._abort_reason = reason
            logger.info("TX_ABORT %s: %s", self.id, reason)

    def finish(self) -> None:
        """
        Close the transaction for commit.

        Raises:
            TransactionAbortedError: If the transaction was aborted
            UnsettledInvoiceError: If any invoice is still open (aborts)
        """
        self.ensure_active()
        if self._open_invoices:
            open_ids = sorted(self._open_invoices)
            self.abort(f"{len(open_ids)} unsettled invoice(s)")
            raise UnsettledInvoiceError(open_ids)
        self._finished = True

    def fresh_id(self) -> str:
        """Allocate a globally unique id for a new asset."""
        return self._fresh_id()

    # -------------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------------

    def transfer_to(self, asset: Any, principal: str) -> None:
        """Hand exclusive ownership of a top-level asset to `principal`."""
        self.ensure_active()
        if not isinstance(principal, str) or not principal.strip():
            raise InvalidInputError("Recipient must be a non-empty principal")
        if isinstance(asset, LinearResource):
            asset._consume()
        self._transfers.append(Transfer(asset=asset, recipient=principal))
        logger.debug("TX_TRANSFER %s: %r -> %s", self.id, asset, principal)

    def publish_shared(self, shop: "Shop") -> None:
        """Register a shop as a globally addressable shared object."""
        self.ensure_active()
        self._shared.append(shop)

    def record_mint(self, resource: LinearResource) -> None:
        """Note a freshly created linear resource so it can be accounted for."""
        self.ensure_active()
        self._minted.append(resource)

    def emit(self, event: Any) -> None:
        self.ensure_active()
        self._events.append(event)

    @property
    def transfers(self) -> tuple[Transfer, ...]:
        return tuple(self._transfers)

    @property
    def shared(self) -> tuple["Shop", ...]:
        return tuple(self._shared)

    @property
    def minted(self) -> tuple[LinearResource, ...]:
        return tuple(self._minted)

    @property
    def events(self) -> tuple[Any, ...]:
        return tuple(self._events)

    # -------------------------------------------------------------------------
    # Obligations
    # -------------------------------------------------------------------------

    def open_invoice(self, shop_id: str, amount: int) -> Invoice:
        """Issue an invoice that must be settled before this transaction ends."""
        self.ensure_active()
        invoice = issue_invoice(self.fresh_id(), self.id, shop_id, amount)
        self._open_invoices[invoice.id] = invoice
        return invoice

    def close_invoice(self, invoice: Invoice, shop_id: str) -> None:
        """
        Consume a settled invoice.

        Raises:
            InvalidInvoiceError: If the invoice was settled already, comes
                from another transaction, or is owed to another shop
        """
        self.check_invoice(invoice, shop_id)
        invoice._consume()
        del self._open_invoices[invoice.id]
        self._settled_count += 1

    def check_invoice(self, invoice: Invoice, shop_id: str) -> None:
        """Validate an invoice for settlement without consuming it."""
        self.ensure_active()
        if not isinstance(invoice, Invoice):
            raise InvalidInvoiceError(repr(invoice), "not an invoice")
        if invoice.consumed:
            raise InvalidInvoiceError(invoice.id, "already settled")
        if invoice.tx_id != self.id or self._open_invoices.get(invoice.id) is not invoice:
            raise InvalidInvoiceError(invoice.id, "issued by another transaction")
        if invoice.shop_id != shop_id:
            raise InvalidInvoiceError(invoice.id, f"owed to shop {invoice.shop_id}, not {shop_id}")

    @property
    def open_invoice_count(self) -> int:
        return len(self._open_invoices)

    @property
    def settled_invoice_count(self) -> int:
        return self._settled_count

    def __repr__(self) -> str:
        state = "aborted" if self.aborted else "finished" if self._finished else "active"
        return f"<TxContext(id={self.id}, sender={self._sender}, {state})>"
