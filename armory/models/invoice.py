"""
Invoice: The Hot Potato.

An Invoice is the obligation produced by a purchase. It has no public
constructor: only TxContext.open_invoice() creates one, and the context
that created it is the only one that will accept its settlement.

INVARIANT: An Invoice cannot be copied, pickled or stored.

INVARIANT: An Invoice is consumed by exactly one settlement. There is no
partial payment and no refund; a failed amount check leaves it open.

INVARIANT: A transaction that ends with an open Invoice is aborted
(see TxContext.finish).
"""

from armory.models.failure import FailureKind, KnownError
from armory.models.resource import LinearResource

_INVOICE_SEAL = object()


class InvalidInvoiceError(KnownError):
    """Raised when an invoice is settled in the wrong place or twice."""

    def __init__(self, invoice_id: str, reason: str):
        self.invoice_id = invoice_id
        self.reason = reason
        super().__init__(
            kind=FailureKind.INVARIANT_VIOLATION,
            message=f"Invoice {invoice_id} cannot be settled: {reason}",
            status_code=500,
        )


class UnsettledInvoiceError(KnownError):
    """Raised when a transaction ends while invoices are still open."""

    def __init__(self, invoice_ids: list[str]):
        self.invoice_ids = invoice_ids
        super().__init__(
            kind=FailureKind.INVARIANT_VIOLATION,
            message=f"{len(invoice_ids)} invoice(s) left unsettled at end of transaction",
            detail=", ".join(invoice_ids),
            status_code=500,
        )


class Invoice(LinearResource):
    """An amount owed to one shop, valid only inside one transaction."""

    def __init__(
        self,
        invoice_id: str,
        tx_id: str,
        shop_id: str,
        amount: int,
        *,
        _seal: object | None = None,
    ) -> None:
        if _seal is not _INVOICE_SEAL:
            raise TypeError("Invoices are only issued by a transaction context")
        super().__init__()
        self._id = invoice_id
        self._tx_id = tx_id
        self._shop_id = shop_id
        self._amount = amount

    @property
    def id(self) -> str:
        return self._id

    @property
    def tx_id(self) -> str:
        return self._tx_id

    @property
    def shop_id(self) -> str:
        return self._shop_id

    @property
    def amount(self) -> int:
        return self._amount

    def _describe(self) -> str:
        return f"Invoice({self._id})"

    def __repr__(self) -> str:
        state = " settled" if self._consumed else ""
        return f"<Invoice(id={self._id}, shop={self._shop_id}, amount={self._amount}{state})>"


def issue_invoice(invoice_id: str, tx_id: str, shop_id: str, amount: int) -> Invoice:
    """Construct an invoice. Called by TxContext.open_invoice only."""
    return Invoice(invoice_id, tx_id, shop_id, amount, _seal=_INVOICE_SEAL)
