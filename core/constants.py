"""
Core — Constants

Audit action codes, pagination bounds and ledger markers shared across
apps.

@file core/constants.py
"""

# Audit actions (values of AuditLog.ActionChoices)
AUDIT_ACTION_CREATE = 'CREATE'
AUDIT_ACTION_UPDATE = 'UPDATE'
AUDIT_ACTION_STATUS_CHANGE = 'STATUS_CHANGE'
AUDIT_ACTION_ADD_ITEM = 'ADD_ITEM'
AUDIT_ACTION_REMOVE_ITEM = 'REMOVE_ITEM'
AUDIT_ACTION_DISPENSE = 'DISPENSE'
AUDIT_ACTION_STOCK_MOVEMENT = 'STOCK_MOVEMENT'
AUDIT_ACTION_STOCK_CHECK_FAIL = 'STOCK_CHECK_FAIL'
AUDIT_ACTION_CASH_HANDOVER = 'CASH_HANDOVER'
AUDIT_ACTION_PAYMENT_CANCEL = 'PAYMENT_CANCEL'

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Leading marker in Payment.notes for voided payments.
CANCELLED_PAYMENT_MARKER = '[CANCELLED]'
