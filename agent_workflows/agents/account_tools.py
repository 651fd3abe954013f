"""
Account Lookup Tools

Pure functions over a fixed demo dataset, exposed to the tool-calling agent.
"""

from langchain_core.tools import tool

_ACCOUNTS = {
    "john@example.com": "Account: John Doe, Plan: Premium, Status: Active, Member since: 2022-03-15",
    "jane@example.com": "Account: Jane Smith, Plan: Basic, Status: Active, Member since: 2023-01-20",
}

_BALANCES = {
    "john@example.com": "Current balance: €125.50, Next billing date: 2026-02-01",
    "jane@example.com": "Current balance: €0.00, Next billing date: 2026-02-15",
}

_TRANSACTIONS = {
    "john@example.com": (
        "John Doe",
        [
            "2026-01-10: Premium subscription renewal - €49.99",
            "2026-01-05: Add-on purchase - €15.00",
            "2025-12-10: Premium subscription renewal - €49.99",
        ],
    ),
    "jane@example.com": (
        "Jane Smith",
        [
            "2026-01-15: Basic subscription renewal - €9.99",
            "2025-12-15: Basic subscription renewal - €9.99",
            "2025-11-15: Basic subscription renewal - €9.99",
        ],
    ),
}


@tool
def get_account_info(email: str) -> str:
    """Get customer account information by email address."""
    return _ACCOUNTS.get(email.lower(), f"Account not found for email: {email}")


@tool
def get_account_balance(email: str) -> str:
    """Get the current balance for a customer account."""
    return _BALANCES.get(email.lower(), f"Balance not found for email: {email}")


@tool
def get_recent_transactions(email: str, count: int = 3) -> str:
    """Get recent transactions for a customer account.

    Args:
        email: Customer email address
        count: Number of transactions to retrieve
    """
    entry = _TRANSACTIONS.get(email.lower())
    if entry is None:
        return f"No transactions found for email: {email}"
    name, transactions = entry
    lines = [f"Last {count} transactions for {name}:"]
    lines.extend(f"- {line}" for line in transactions[:count])
    return "\n".join(lines)


ACCOUNT_TOOLS = (get_account_info, get_account_balance, get_recent_transactions)
