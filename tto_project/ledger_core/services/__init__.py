from .budget import (BudgetDecision, can_accept_income,
                     ensure_can_accept_income, existing_incomes_total)
from .income import (ImportResult, ImportRowError, create_income,
                     import_incomes, project_financial_summary,
                     record_collection)
from .ledger import (allocate, credit, finalize, get_balance,
                     get_or_create_balance, record_debt, release, reserve,
                     retry_on_conflict)
from .payment import (complete_payment_instruction,
                      create_payment_instruction, delete_payment_instruction,
                      next_instruction_number, reject_payment_instruction,
                      reopen_payment_instruction,
                      transition_payment_instruction)
from .project import (add_supplementary_contract, approve_referee,
                      cancel_project, complete_project,
                      delete_supplementary_contract)
