import threading
from typing import Dict, Optional

from models import Transaction, ClientAccount


class TransactionLedger:
    """
    Append-only index of applied deposits and withdrawals, keyed by transaction id.
    Disputes, resolves and chargebacks look up their original amount and owner here.
    """

    def __init__(self):
        self._transactions: Dict[int, Transaction] = {}
        self._claims: Dict[int, int] = {}
        self._lock = threading.Lock()

    def get(self, transaction_id: int) -> Optional[Transaction]:
        """Retrieve stored transaction by ID."""
        with self._lock:
            return self._transactions.get(transaction_id)

    def append(self, transaction: Transaction) -> bool:
        """
        Store transaction for future dispute lookups.
        Returns False without overwriting if the id is already recorded (first write wins).
        """
        with self._lock:
            if transaction.transaction_id in self._transactions:
                return False
            self._transactions[transaction.transaction_id] = transaction
            return True

    def claim(self, transaction_id: int, client_id: int) -> bool:
        """
        Reserve a deposit/withdrawal id for the first client that uses it.
        Returns False if another client already holds the id.
        """
        with self._lock:
            owner = self._claims.setdefault(transaction_id, client_id)
            return owner == client_id

    def claimed_by(self, transaction_id: int) -> Optional[int]:
        with self._lock:
            return self._claims.get(transaction_id)

    def __contains__(self, transaction_id: int) -> bool:
        with self._lock:
            return transaction_id in self._transactions

    def __len__(self) -> int:
        with self._lock:
            return len(self._transactions)


class AccountRegistry:
    """
    Client accounts, created lazily, plus one lock per client.
    Callers hold the client lock while mutating that client's account.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}

        # Protects creation of new entries in _accounts and _client_locks.
        self._global_lock = threading.Lock()
        self._client_locks: Dict[int, threading.Lock] = {}

    def get_client_lock(self, client_id: int) -> threading.Lock:
        """Get or create the lock guarding one client's account."""
        with self._global_lock:
            if client_id not in self._client_locks:
                self._client_locks[client_id] = threading.Lock()
            return self._client_locks[client_id]

    def get_or_create(self, client_id: int) -> ClientAccount:
        """Get existing account or create a zeroed, unlocked one."""
        with self._global_lock:
            if client_id not in self._accounts:
                self._accounts[client_id] = ClientAccount(client_id=client_id)
            return self._accounts[client_id]

    def get(self, client_id: int) -> Optional[ClientAccount]:
        with self._global_lock:
            return self._accounts.get(client_id)

    def all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts ordered by client id (for final output)."""
        with self._global_lock:
            return {client_id: self._accounts[client_id] for client_id in sorted(self._accounts)}

    def __len__(self) -> int:
        with self._global_lock:
            return len(self._accounts)
