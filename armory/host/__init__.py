from armory.host.context import Transfer, TransactionAbortedError, TxContext

__all__ = [
    "Transfer",
    "TransactionAbortedError",
    "TxContext",
]
