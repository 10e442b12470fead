"""
Typed Exception Hierarchy for the Ops Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected operation in the ledger, obligation tracker, inventory
store or receipt generator is a local validation failure. Callers (a REST
handler, a batch import) must be able to tell them apart without parsing
messages:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        store.apply_sale(item_id, Decimal("10"))
    except InsufficientStockError as e:
        api_response(code=e.code, available=str(e.available))

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    OpsKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   +-- InvalidQuantityError
    |   +-- InvalidTransactionDateError
    |   +-- InvalidTransferError
    |   +-- ImmutableFieldError
    |
    +-- LedgerError
    |   +-- UnknownAccountError
    |   +-- DuplicateAccountError
    |
    +-- ObligationError
    |   +-- UnknownObligationError
    |   +-- DuplicateObligationError
    |   +-- OverPaymentError
    |
    +-- InventoryError
    |   +-- UnknownItemError
    |   +-- DuplicateItemError
    |   +-- UnknownSupplierError
    |   +-- InsufficientStockError
    |
    +-- ReceiptError
    |   +-- EmptyReceiptError
    |   +-- ReceiptNotFoundError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|--------------------------------------
Validation   | INVALID_AMOUNT            | Amount <= 0 (or negative price)
             | INVALID_QUANTITY          | Quantity <= 0
             | INVALID_TRANSACTION_DATE  | Timestamp earlier than last entry
             | INVALID_TRANSFER          | Missing or identical counter account
             | IMMUTABLE_FIELD           | Update touches a counter or unknown field
-------------|---------------------------|--------------------------------------
Ledger       | UNKNOWN_ACCOUNT           | Account ID doesn't exist
             | DUPLICATE_ACCOUNT         | Account ID already opened
-------------|---------------------------|--------------------------------------
Obligation   | UNKNOWN_OBLIGATION        | Payable/receivable ID doesn't exist
             | DUPLICATE_OBLIGATION      | Obligation ID already registered
             | OVER_PAYMENT              | Paid would exceed obligation amount
-------------|---------------------------|--------------------------------------
Inventory    | UNKNOWN_ITEM              | Item ID doesn't exist
             | DUPLICATE_ITEM            | Item ID already registered
             | UNKNOWN_SUPPLIER          | Supplier ID doesn't exist
             | INSUFFICIENT_STOCK        | Sale quantity > current stock
-------------|---------------------------|--------------------------------------
Receipt      | EMPTY_RECEIPT             | No line items
             | RECEIPT_NOT_FOUND         | Receipt number not issued
-------------|---------------------------|--------------------------------------
Config       | CONFIGURATION_ERROR       | Invalid configuration value

None of these errors is retried automatically. Every operation that
raises leaves the state it was about to change untouched.
"""


class OpsKernelError(Exception):
    """
    Base exception for all ops kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "OPS_KERNEL_ERROR"


# Validation exceptions


class ValidationError(OpsKernelError):
    """Base exception for rejected input values."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """Monetary amount is zero, negative or otherwise unusable."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str, reason: str = "amount must be positive"):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


class InvalidQuantityError(ValidationError):
    """Stock quantity is zero or negative."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: str, reason: str = "quantity must be positive"):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity}: {reason}")


class InvalidTransactionDateError(ValidationError):
    """Transaction timestamp would break the chronological sequence."""

    code: str = "INVALID_TRANSACTION_DATE"

    def __init__(self, account_id: str, occurred_at: str, last_occurred_at: str):
        self.account_id = account_id
        self.occurred_at = occurred_at
        self.last_occurred_at = last_occurred_at
        super().__init__(
            f"Transaction at {occurred_at} precedes last transaction "
            f"on account {account_id} ({last_occurred_at})"
        )


class InvalidTransferError(ValidationError):
    """Transfer has no counter account, or moves money to its own source."""

    code: str = "INVALID_TRANSFER"

    def __init__(self, from_account_id: str, to_account_id: str | None, reason: str):
        self.from_account_id = from_account_id
        self.to_account_id = to_account_id
        self.reason = reason
        super().__init__(f"Invalid transfer from {from_account_id}: {reason}")


class ImmutableFieldError(ValidationError):
    """Update names a running counter or a field the record does not have."""

    code: str = "IMMUTABLE_FIELD"

    def __init__(self, record_id: str, field: str):
        self.record_id = record_id
        self.field = field
        super().__init__(f"Field {field!r} of {record_id} cannot be updated")


# Ledger exceptions


class LedgerError(OpsKernelError):
    """Base exception for transaction ledger errors."""

    code: str = "LEDGER_ERROR"


class UnknownAccountError(LedgerError):
    """Bank account with given ID was not found."""

    code: str = "UNKNOWN_ACCOUNT"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Unknown account: {account_id}")


class DuplicateAccountError(LedgerError):
    """Bank account with given ID is already open."""

    code: str = "DUPLICATE_ACCOUNT"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account already exists: {account_id}")


# Obligation exceptions


class ObligationError(OpsKernelError):
    """Base exception for payable/receivable errors."""

    code: str = "OBLIGATION_ERROR"


class UnknownObligationError(ObligationError):
    """Payable or receivable with given ID was not found."""

    code: str = "UNKNOWN_OBLIGATION"

    def __init__(self, obligation_id: str):
        self.obligation_id = obligation_id
        super().__init__(f"Unknown obligation: {obligation_id}")


class DuplicateObligationError(ObligationError):
    """Payable or receivable with given ID is already registered."""

    code: str = "DUPLICATE_OBLIGATION"

    def __init__(self, obligation_id: str):
        self.obligation_id = obligation_id
        super().__init__(f"Obligation already exists: {obligation_id}")


class OverPaymentError(ObligationError):
    """
    Payment would push the paid total above the obligation amount.

    Rejected rather than capped: an overpayment means the upstream data
    is wrong.
    """

    code: str = "OVER_PAYMENT"

    def __init__(self, obligation_id: str, amount: str, paid: str, payment: str):
        self.obligation_id = obligation_id
        self.amount = amount
        self.paid = paid
        self.payment = payment
        super().__init__(
            f"Payment of {payment} on obligation {obligation_id} exceeds "
            f"amount {amount} (already paid {paid})"
        )


# Inventory exceptions


class InventoryError(OpsKernelError):
    """Base exception for inventory store errors."""

    code: str = "INVENTORY_ERROR"


class UnknownItemError(InventoryError):
    """Inventory item with given ID was not found."""

    code: str = "UNKNOWN_ITEM"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Unknown inventory item: {item_id}")


class DuplicateItemError(InventoryError):
    """Inventory item with given ID is already registered."""

    code: str = "DUPLICATE_ITEM"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Inventory item already exists: {item_id}")


class UnknownSupplierError(InventoryError):
    """Supplier with given ID was not found."""

    code: str = "UNKNOWN_SUPPLIER"

    def __init__(self, supplier_id: str):
        self.supplier_id = supplier_id
        super().__init__(f"Unknown supplier: {supplier_id}")


class InsufficientStockError(InventoryError):
    """Sale would drive current stock below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, requested: str, available: str):
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_id}: "
            f"requested {requested}, available {available}"
        )


# Receipt exceptions


class ReceiptError(OpsKernelError):
    """Base exception for receipt errors."""

    code: str = "RECEIPT_ERROR"


class EmptyReceiptError(ReceiptError):
    """Receipt requested with no line items."""

    code: str = "EMPTY_RECEIPT"

    def __init__(self, receipt_type: str):
        self.receipt_type = receipt_type
        super().__init__(f"Cannot generate {receipt_type} receipt without line items")


class ReceiptNotFoundError(ReceiptError):
    """No receipt was issued under the given number."""

    code: str = "RECEIPT_NOT_FOUND"

    def __init__(self, receipt_number: str):
        self.receipt_number = receipt_number
        super().__init__(f"Receipt not found: {receipt_number}")


# Configuration exceptions


class ConfigurationError(OpsKernelError):
    """Configuration value is missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid configuration for '{field}': {reason}")
