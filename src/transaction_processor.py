import logging

from errors import LedgerError, ProcessingResult
from models import Transaction, TransactionType, ClientAccount
from state_manager import AccountRegistry, TransactionLedger

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions to client accounts, one record at a time.
    Returns a ProcessingResult describing the outcome of each record.
    Caller is responsible for holding the client lock when workers run concurrently.
    """

    def __init__(self, ledger: TransactionLedger, registry: AccountRegistry):
        self._ledger = ledger
        self._registry = registry

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        A rejected transaction leaves its account exactly as it was. Only
        successful deposits and withdrawals are appended to the ledger.
        """
        account = self._registry.get_or_create(transaction.client_id)

        if account.locked:
            logger.warning(f"Skipping {transaction}: account {account.client_id} is locked")
            return ProcessingResult.ACCOUNT_LOCKED

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                handler = self._handle_deposit
            case TransactionType.WITHDRAWAL:
                handler = self._handle_withdrawal
            case TransactionType.DISPUTE:
                handler = self._handle_dispute
            case TransactionType.RESOLVE:
                handler = self._handle_resolve
            case TransactionType.CHARGEBACK:
                handler = self._handle_chargeback
            case _:
                logger.warning(f"Skipping {transaction}: unsupported transaction type")
                return ProcessingResult.UNSUPPORTED_KIND

        try:
            return handler(account, transaction)
        except LedgerError as e:
            logger.warning(f"Rejected {transaction}: {e}")
            return e.result

    def _validate_new_transaction(self, transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None:
            logger.warning(f"Rejected {transaction}: amount is missing")
            return ProcessingResult.MISSING_AMOUNT
        if transaction.amount <= 0:
            logger.warning(f"Rejected {transaction}: amount must be positive")
            return ProcessingResult.NON_POSITIVE_AMOUNT
        if transaction.transaction_id in self._ledger:
            logger.warning(f"Rejected {transaction}: tx {transaction.transaction_id} already recorded")
            return ProcessingResult.DUPLICATE_TRANSACTION
        return ProcessingResult.SUCCESS

    def _record(self, transaction: Transaction) -> None:
        self._ledger.append(transaction)
        logger.debug(f"Applied {transaction}")

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        result = self._validate_new_transaction(transaction)
        if not result.is_success:
            return result

        account.credit(transaction.amount)
        self._record(transaction)
        return ProcessingResult.SUCCESS

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        result = self._validate_new_transaction(transaction)
        if not result.is_success:
            return result

        account.debit(transaction.amount)
        self._record(transaction)
        return ProcessingResult.SUCCESS

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        original = self._ledger.get(transaction.transaction_id)

        if original is None:
            logger.warning(f"Dispute for tx {transaction.transaction_id}: transaction not found")
            return ProcessingResult.UNKNOWN_TRANSACTION

        if original.client_id != transaction.client_id:
            logger.warning(
                f"Dispute for tx {transaction.transaction_id}: client mismatch "
                f"(owned by {original.client_id}, claimed by {transaction.client_id})"
            )
            return ProcessingResult.UNKNOWN_TRANSACTION

        if original.amount is None:
            logger.warning(f"Dispute for tx {transaction.transaction_id}: original has no amount")
            return ProcessingResult.UNKNOWN_TRANSACTION

        # Withdrawals are disputable too: the recorded amount is held out of available.
        account.hold(original.amount, transaction.transaction_id)
        logger.debug(f"Applied {transaction}: holding {original.amount}")
        return ProcessingResult.SUCCESS

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        amount = account.release(transaction.transaction_id)
        logger.debug(f"Applied {transaction}: released {amount}")
        return ProcessingResult.SUCCESS

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        amount = account.forfeit(transaction.transaction_id)
        logger.info(f"Chargeback of {amount} on tx {transaction.transaction_id}: account {account.client_id} locked")
        return ProcessingResult.SUCCESS
