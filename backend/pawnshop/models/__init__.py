from .tenancy import Branch, BranchConfig, PlatformSetting
from .staff import Staff, AdminInvite, SessionToken
from .customers import Customer
from .tickets import Ticket, TicketStatus, Loan, Transaction, TransactionKind, TicketSequence
from .inventory import Category, InventoryRecord
from .audit import ActivityLog

__all__ = [
    'Branch', 'BranchConfig', 'PlatformSetting',
    'Staff', 'AdminInvite', 'SessionToken',
    'Customer',
    'Ticket', 'TicketStatus', 'Loan', 'Transaction', 'TransactionKind', 'TicketSequence',
    'Category', 'InventoryRecord',
    'ActivityLog',
]
