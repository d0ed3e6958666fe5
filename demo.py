#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: KipuBank Step by Step

Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1: Opening the bank     - withdraw limit and bank cap
  2: Deposits and the cap - accepted and rejected deposits
  3: Withdrawals          - the limit, the balance check, the payout
  4: Reentrancy           - a rail that tries to call back in
  5: Failed transfers     - the debit is restored
  6: Audit                - conservation check and replay

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from kipubank import (
    BankConfig, BoundedLedger, CallbackRail, EventLog, LedgerError,
    RecordingRail, ReentrancyDetected, TransferResult,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    bank_cap: int = 100
    withdraw_limit: int = 10
    first_deposit: int = 60
    oversized_deposit: int = 50
    oversized_withdrawal: int = 15


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def attempt(label: str, fn, *args):
    print(f">>> {label}")
    try:
        return fn(*args)
    except LedgerError as exc:
        print(f"    raised {type(exc).__name__}: {exc}")
        return None


# ============================================================================
# STEPS
# ============================================================================

def step_01_open_bank():
    step_header(1, "Opening the Bank",
        "A bank has two fixed limits: a per-withdrawal limit and a global cap.")
    config = BankConfig("kipu", withdraw_limit=CONFIG.withdraw_limit, bank_cap=CONFIG.bank_cap)
    rail = RecordingRail()
    log = EventLog()
    bank = BoundedLedger.from_config(config, transfer_rail=rail, event_sink=log)
    print(f"Withdraw limit:     {bank.withdraw_limit}")
    print(f"Bank cap:           {bank.bank_cap}")
    print(f"Remaining capacity: {bank.remaining_capacity}")
    wait_for_enter()
    return bank, rail, log


def step_02_deposits(bank: BoundedLedger):
    step_header(2, "Deposits and the Cap",
        "Deposits are accepted until the total would pass the cap.")
    attempt(f"bank.deposit('alice', {CONFIG.first_deposit})", bank.deposit, "alice", CONFIG.first_deposit)
    attempt(f"bank.deposit('alice', {CONFIG.oversized_deposit})", bank.deposit, "alice", CONFIG.oversized_deposit)
    print(f"\nalice: {bank.get_balance('alice')}, total: {bank.total_balance}")
    wait_for_enter()


def step_03_withdrawals(bank: BoundedLedger, rail: RecordingRail):
    step_header(3, "Withdrawals",
        "Withdrawals are checked against the limit, then the balance, then paid out.")
    attempt(f"bank.withdraw('alice', {CONFIG.oversized_withdrawal})",
            bank.withdraw, "alice", CONFIG.oversized_withdrawal)
    attempt(f"bank.withdraw('alice', {CONFIG.withdraw_limit})",
            bank.withdraw, "alice", CONFIG.withdraw_limit)
    print(f"\nalice: {bank.get_balance('alice')}, total: {bank.total_balance}")
    print(f"Paid out by rail: {rail.payouts}")
    wait_for_enter()


def step_04_reentrancy():
    step_header(4, "Reentrancy",
        "A payout that calls back into the bank is refused; the outer withdrawal completes.")
    holder = {}

    def greedy_rail(principal, amount):
        try:
            holder["bank"].withdraw(principal, amount)
        except ReentrancyDetected as exc:
            print(f"    nested call refused: {exc}")
        return TransferResult.success()

    bank = BoundedLedger("greedy", withdraw_limit=10, bank_cap=100,
                         transfer_rail=CallbackRail(greedy_rail))
    holder["bank"] = bank
    bank.deposit("mallory", 30)
    attempt("bank.withdraw('mallory', 10)", bank.withdraw, "mallory", 10)
    print(f"\nmallory: {bank.get_balance('mallory')} (debited once)")
    wait_for_enter()


def step_05_failed_transfer(bank: BoundedLedger, rail: RecordingRail):
    step_header(5, "Failed Transfers",
        "If the rail does not deliver, the debit is restored.")
    rail.fail_next("rail offline")
    before = bank.get_balance("alice")
    attempt("bank.withdraw('alice', 5)", bank.withdraw, "alice", 5)
    print(f"\nalice before: {before}, after: {bank.get_balance('alice')}")
    wait_for_enter()


def step_06_audit(bank: BoundedLedger, log: EventLog):
    step_header(6, "Audit",
        "The log replays to the same state and the totals always add up.")
    for record in log:
        print(f"    {record!r}")
    result = bank.verify_conservation()
    print(f"\nConservation valid: {result['valid']} "
          f"(total {result['total_balance']}, sum {result['sum_of_balances']})")
    bank.verbose = False
    replayed = bank.replay()
    print(f"Replay matches:     {replayed.snapshot().balances == bank.snapshot().balances}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       KIPUBANK - INTERACTIVE TUTORIAL")
    print("=" * 70)
    bank, rail, log = step_01_open_bank()
    step_02_deposits(bank)
    step_03_withdrawals(bank, rail)
    step_04_reentrancy()
    step_05_failed_transfer(bank, rail)
    step_06_audit(bank, log)


if __name__ == "__main__":
    main()
