"""
Settlement Protocol: Every Purchase Is Paid For.

purchase() takes a weapon out of stock and returns it together with an
Invoice. The only ways to get rid of the Invoice are pay_in_full() and
trade_in(); the transaction context refuses to finish while one is open.

States of one invoice:
- Created: purchase() returned it. Earnings untouched.
- Settled: pay_in_full() or trade_in() consumed it. Earnings credited.

INVARIANTS:
- A settlement validates the payment BEFORE mutating anything. A failed
  amount check leaves the invoice open and the shop untouched
- There is no partial payment, no refund, and no second settlement
- Trade-in credit is floor(current price of the traded-in kind * 3 / 4)
"""

import logging

from armory.config import TRADE_IN_CREDIT_DENOMINATOR, TRADE_IN_CREDIT_NUMERATOR
from armory.host.context import TxContext
from armory.models.balance import Balance
from armory.models.failure import AmountMismatchError, WrongWeaponKindError
from armory.models.invoice import Invoice
from armory.models.shop import Shop
from armory.models.weapon import K, Weapon

logger = logging.getLogger(__name__)


def trade_in_credit(price: int) -> int:
    """Credit granted for returning a weapon whose kind currently costs `price`."""
    return price * TRADE_IN_CREDIT_NUMERATOR // TRADE_IN_CREDIT_DENOMINATOR


def purchase(tx: TxContext, shop: Shop, kind: type[K]) -> tuple[Weapon[K], Invoice]:
    """
    Take one weapon of `kind` from `shop` and open an invoice for its price.

    Raises:
        UnknownKindError: If the kind is not registered
        OutOfStockError: If the kind has no stock
    """
    tx.ensure_active()
    weapon, price = shop.take_one(kind)
    invoice = tx.open_invoice(shop.id, price)
    logger.debug(
        "INVOICE_OPEN %s: shop=%s kind=%s amount=%d", invoice.id, shop.id, kind.label(), price
    )
    return weapon, invoice


def pay_in_full(tx: TxContext, shop: Shop, invoice: Invoice, payment: Balance) -> None:
    """
    Settle `invoice` with a payment of exactly the amount owed.

    Raises:
        AmountMismatchError: If payment differs from the invoice amount
        InvalidInvoiceError: If the invoice is not open in this transaction
            for this shop
    """
    tx.check_invoice(invoice, shop.id)
    if payment.value != invoice.amount:
        raise AmountMismatchError(owed=invoice.amount, offered=payment.value)

    shop.deposit(payment)
    tx.close_invoice(invoice, shop.id)
    logger.debug("INVOICE_PAID %s: amount=%d", invoice.id, invoice.amount)


def trade_in(
    tx: TxContext,
    shop: Shop,
    invoice: Invoice,
    kind: type[K],
    weapon: Weapon[K],
    payment: Balance,
) -> None:
    """
    Settle `invoice` by returning a weapon of `kind` plus the discounted amount.

    The amount owed is reduced by trade_in_credit(current price of `kind`).
    The returned weapon goes back into that kind's stock.

    Raises:
        WrongWeaponKindError: If `weapon` is not of `kind`
        UnknownKindError: If `kind` is not registered at this shop
        AmountMismatchError: If payment differs from the adjusted amount,
            or the credit exceeds the amount owed
        InvalidInvoiceError: If the invoice is not open in this transaction
            for this shop
    """
    tx.check_invoice(invoice, shop.id)
    if weapon.kind is not kind:
        raise WrongWeaponKindError(kind.label(), weapon.kind.label())

    credit = trade_in_credit(shop.price(kind))
    adjusted = invoice.amount - credit
    if adjusted < 0:
        raise AmountMismatchError(
            owed=invoice.amount,
            offered=payment.value,
            detail=f"trade-in credit {credit} exceeds amount owed {invoice.amount}",
        )
    if payment.value != adjusted:
        raise AmountMismatchError(
            owed=adjusted,
            offered=payment.value,
            detail=f"invoice {invoice.amount} less trade-in credit {credit}",
        )

    shop.put_one(kind, weapon)
    shop.deposit(payment)
    tx.close_invoice(invoice, shop.id)
    logger.debug(
        "INVOICE_TRADED_IN %s: amount=%d credit=%d paid=%d",
        invoice.id,
        invoice.amount,
        credit,
        adjusted,
    )
