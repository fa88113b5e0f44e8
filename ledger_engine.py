import sys

from ledger_records import (
    Account,
    TransactionRecord,
    DEPOSIT,
    WITHDRAWAL,
    DISPUTE,
    RESOLVE,
    CHARGEBACK,
)


class LedgerEngine:
    # apply_* return None when applied, else the reason the event was skipped

    def __init__(self, reject_overdraft=False, error_stream=None):
        self.accounts = {}
        self.transactions = {}
        self.reject_overdraft = reject_overdraft
        self.error_stream = error_stream
        self.skipped = 0

        self.handlers = {
            DEPOSIT: self.apply_deposit,
            WITHDRAWAL: self.apply_withdrawal,
            DISPUTE: self.apply_dispute,
            RESOLVE: self.apply_resolve,
            CHARGEBACK: self.apply_chargeback,
        }

    def apply(self, event):
        handler = self.handlers.get(event.type)
        if handler is None:
            return self.skip(event, "unknown transaction type")
        return handler(event)

    def get_account(self, client_id):
        if client_id not in self.accounts:
            self.accounts[client_id] = Account(client_id)
        return self.accounts[client_id]

    def get_tx(self, tx_id):
        return self.transactions.get(tx_id)

    def apply_deposit(self, event):
        reason = self.check_new_tx(event)
        if reason:
            return self.skip(event, reason)

        account = self.get_account(event.client_id)
        account.available += event.amount
        self.add_tx(event)
        return None

    def apply_withdrawal(self, event):
        reason = self.check_new_tx(event)
        if reason:
            return self.skip(event, reason)

        if self.reject_overdraft:
            account = self.accounts.get(event.client_id)
            available = account.available if account is not None else 0
            if available < event.amount:
                return self.skip(event, "insufficient funds")

        account = self.get_account(event.client_id)
        account.available -= event.amount
        self.add_tx(event)
        return None

    def apply_dispute(self, event):
        tx, reason = self.find_owned_tx(event)
        if reason:
            return self.skip(event, reason)

        if tx.disputed:
            return self.skip(event, "tx is already disputed")

        account = self.accounts[tx.client_id]
        account.available -= tx.amount
        account.held += tx.amount
        tx.disputed = True
        return None

    def apply_resolve(self, event):
        tx, reason = self.find_disputed_tx(event)
        if reason:
            return self.skip(event, reason)

        account = self.accounts[tx.client_id]
        account.held -= tx.amount
        account.available += tx.amount
        tx.disputed = False
        return None

    def apply_chargeback(self, event):
        tx, reason = self.find_disputed_tx(event)
        if reason:
            return self.skip(event, reason)

        account = self.accounts[tx.client_id]
        account.held -= tx.amount
        account.locked = True
        tx.disputed = False
        tx.charged_back = True
        return None

    def check_new_tx(self, event):
        if event.transaction_id in self.transactions:
            return f"{event.type} duplicates existing tx_id"

        account = self.accounts.get(event.client_id)
        if account is not None and account.locked:
            return "account is locked"

        return None

    def find_owned_tx(self, event):
        tx = self.get_tx(event.transaction_id)
        if tx is None:
            return None, "tx not found"

        if tx.client_id != event.client_id:
            return None, "tx client_id mismatch"

        return tx, None

    def find_disputed_tx(self, event):
        tx, reason = self.find_owned_tx(event)
        if reason:
            return None, reason

        if not tx.disputed:
            if tx.charged_back:
                return None, "tx is charged back"
            return None, "tx is not disputed"

        return tx, None

    def add_tx(self, event):
        self.transactions[event.transaction_id] = TransactionRecord(
            event.transaction_id, event.client_id, event.type, event.amount
        )

    def skip(self, event, reason):
        self.skipped += 1
        self.error_log(reason, event.transaction_id, event.client_id, event.type, event.amount)
        return reason

    def error_log(self, message, tx_id=None, client_id=None, record_type=None, amount=None):
        stream = self.error_stream if self.error_stream is not None else sys.stderr
        if tx_id is not None and client_id is not None and record_type is not None:
            formatted_prefix = f"tx_id {tx_id}, client_id {client_id}, failed to apply {record_type}"
            amount_detail = ""
            if amount is not None:
                amount_detail = f" of ${amount}"
            print(f"{formatted_prefix}{amount_detail}: {message}", file=stream)
        else:
            print(f"transaction error: {message}", file=stream)

    def snapshot(self):
        return [self.accounts[client_id] for client_id in sorted(self.accounts)]
