from .auditlog import AuditLog
from .balance import Balance, BalanceTransaction
from .contract import SupplementaryContract
from .income import Income
from .payment import PaymentInstruction
from .people import Personnel
from .project import Project
from .sequence import NumberSequence
