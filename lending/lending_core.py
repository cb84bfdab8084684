"""
lending_core.py - Orchestration of supply, withdraw, borrow and repay

LendingCore is the entry point for every state-changing operation. Each one
runs the same pipeline under a single lock:

    accrue(user) -> validate -> mutate -> check invariants -> commit -> transfer -> emit

Key responsibilities:
    - Force accrual before any balance is read, so no decision uses stale balances
    - Enforce the collateral rule before committing a borrow
    - Roll back every effect (accrual, account creation, totals) if any step fails
    - Hand transfer instructions to AssetTransfer, then notify the EventSink,
      only after the mutation is committed. An exception from the sink
      propagates to the caller but leaves the operation committed and paid out
    - Own the logical clock, which only moves forward
"""

from __future__ import annotations
from datetime import datetime
from typing import Callable, List, Optional, Tuple
import threading

from .account import Account, apply_accrual
from .collateral import CollateralStatus, calculate_collateral_status, check_borrow
from .core import (
    EPOCH,
    AssetTransfer, EventSink, PriceOracle,
    EventType, LendingEvent, OperationResult, Transfer, TransferKind,
    ClockRegressionError, InvariantViolation, UnsupportedAssetError,
    require_positive,
)
from .interest import calculate_pending_interest
from .market import MarketLedger
from .pricing_source import AccessControl, PricingTable


# What an operation body hands back to the pipeline:
# (event type, event amount, transfer instruction or None)
_Outcome = Tuple[EventType, int, Optional[Transfer]]


class LendingCore:
    """
    Single-asset lending ledger with collateral enforcement.

    Thread Safety:
        All operations and queries are serialized behind one lock; no reader
        can observe totals updated without the matching account (or vice versa).

    Example:
        core = LendingCore("main", datetime(2025, 1, 1), verbose=False)
        core.supply("alice", to_base_units("1"))
        core.borrow("alice", to_base_units("0.74"))
        core.advance_time(datetime(2026, 1, 1))
        core.repay("alice", to_base_units("1"))   # refund of the overpayment
    """

    def __init__(
        self,
        name: str = "main",
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        market: Optional[MarketLedger] = None,
        pricing: Optional[PriceOracle] = None,
        events: Optional[EventSink] = None,
        transfers: Optional[AssetTransfer] = None,
        admin: str = "admin",
    ):
        """
        Create a lending core.

        Args:
            name: Identifier used in console output
            initial_time: Starting logical time (default: 1970-01-01)
            verbose: Print a line per applied or rejected operation (default: True)
            market: Existing MarketLedger; a default market is initialized if omitted
            pricing: Price source; a PricingTable administered by `admin` is
                     created if omitted
            events: Optional EventSink notified after each committed operation
            transfers: Optional AssetTransfer that executes transfer instructions
            admin: Privileged identity for the default PricingTable
        """
        self.name = name
        self.verbose = verbose
        self._current_time: datetime = initial_time or EPOCH
        self._lock = threading.Lock()

        if pricing is None:
            pricing = PricingTable(AccessControl(admin))
        if market is None:
            if not isinstance(pricing, PricingTable):
                raise ValueError("a market must be supplied when pricing is not a PricingTable")
            market = MarketLedger.initialize_defaults(pricing)
        # Fail fast if the market's asset has no price.
        pricing.get_price(market.asset_id)

        self.pricing = pricing
        self.market = market
        self.events = events
        self.transfers = transfers
        self.operation_log: List[OperationResult] = []

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    @property
    def asset_id(self) -> str:
        return self.market.asset_id

    def advance_time(self, new_time: datetime) -> None:
        """
        Move the logical clock forward.

        Raises:
            ClockRegressionError: if new_time is before the current time
        """
        with self._lock:
            if new_time < self._current_time:
                raise ClockRegressionError(
                    f"Cannot move time backwards: {new_time} < {self._current_time}"
                )
            self._current_time = new_time

    # ========================================================================
    # OPERATIONS (Mutating)
    # ========================================================================

    def supply(self, user: str, amount: Optional[int] = None, asset_id: Optional[str] = None) -> OperationResult:
        """
        Deposit `amount` into the pool.

        If amount is None, the value attached via the AssetTransfer
        collaborator (receive_in) is used.

        Raises:
            ZeroAmountError: if amount is not positive
        """
        def body(account: Account, value: int) -> _Outcome:
            self.market.record_supply(account, value)
            return EventType.SUPPLIED, value, None

        return self._run("supply", user, asset_id, amount, body, attached=amount is None)

    def withdraw(self, user: str, amount: int, asset_id: Optional[str] = None) -> OperationResult:
        """
        Withdraw `amount` from the user's supply balance and pay it out.

        Collateral is not re-checked: an account with borrows can withdraw
        into an under-collateralized state (see account_health()).

        Raises:
            ZeroAmountError: if amount is not positive
            InsufficientBalanceError: if amount exceeds the accrued supply balance
        """
        def body(account: Account, value: int) -> _Outcome:
            self.market.record_withdraw(account, value)
            return EventType.WITHDRAWN, value, Transfer(TransferKind.PAY_OUT, user, self.asset_id, value)

        return self._run("withdraw", user, asset_id, amount, body)

    def borrow(self, user: str, amount: int, asset_id: Optional[str] = None) -> OperationResult:
        """
        Borrow `amount` against the user's supply, priced at the current price.

        Raises:
            ZeroAmountError: if amount is not positive
            InsufficientCollateralError: if the borrow would breach the collateral factor
        """
        def body(account: Account, value: int) -> _Outcome:
            require_positive(value)
            check_borrow(
                supply_balance=account.supply_balance,
                borrow_balance=account.borrow_balance,
                proposed_amount=value,
                price=self.pricing.get_price(self.asset_id),
                collateral_factor_bps=self.market.params.collateral_factor_bps,
            )
            self.market.record_borrow(account, value)
            return EventType.BORROWED, value, Transfer(TransferKind.PAY_OUT, user, self.asset_id, value)

        return self._run("borrow", user, asset_id, amount, body)

    def repay(self, user: str, amount: Optional[int] = None, asset_id: Optional[str] = None) -> OperationResult:
        """
        Repay debt with `amount` sent by the user.

        Repayment is clamped to the accrued borrow balance; the excess is
        returned as a REFUND transfer. The Repaid event carries the amount
        actually applied.

        Raises:
            ZeroAmountError: if amount is not positive
        """
        def body(account: Account, value: int) -> _Outcome:
            repay_amount, refund = self.market.record_repay(account, value)
            transfer = Transfer(TransferKind.REFUND, user, self.asset_id, refund) if refund else None
            return EventType.REPAID, repay_amount, transfer

        return self._run("repay", user, asset_id, amount, body, attached=amount is None)

    def accrue(self, user: str) -> Tuple[int, int]:
        """
        Apply pending interest to `user`'s account without any other change.

        Returns:
            Tuple of (supply_interest, borrow_interest) added
        """
        with self._lock:
            checkpoint = self._checkpoint(user)
            try:
                interest = apply_accrual(self.market.account(user), self.market, self._current_time)
                self._assert_invariants()
            except Exception:
                self._rollback(checkpoint)
                raise
            return interest

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    def get_account(self, user: str) -> Account:
        """Copy of the stored account (balances as of its last accrual)."""
        with self._lock:
            return self.market.get_account(user)

    def supply_balance_of(self, user: str) -> int:
        """Supply balance projected to the current time, including pending interest."""
        with self._lock:
            return self._projected_balances(user)[0]

    def borrow_balance_of(self, user: str) -> int:
        """Borrow balance projected to the current time, including pending interest."""
        with self._lock:
            return self._projected_balances(user)[1]

    def account_health(self, user: str) -> CollateralStatus:
        """Loan-to-value position of `user` at the current price and time."""
        with self._lock:
            supply, borrow = self._projected_balances(user)
            return calculate_collateral_status(
                supply, borrow,
                self.pricing.get_price(self.asset_id),
                self.market.params.collateral_factor_bps,
            )

    def max_borrowable(self, user: str) -> int:
        """Largest amount borrow() would currently admit for `user`."""
        return self.account_health(user).max_borrow

    @property
    def total_supply(self) -> int:
        return self.market.total_supply

    @property
    def total_borrow(self) -> int:
        return self.market.total_borrow

    def verify_conservation(self) -> dict:
        with self._lock:
            return self.market.verify_conservation()

    # ========================================================================
    # PIPELINE
    # ========================================================================

    def _run(
        self,
        op_name: str,
        user: str,
        asset_id: Optional[str],
        amount: Optional[int],
        body: Callable[[Account, int], _Outcome],
        attached: bool = False,
    ) -> OperationResult:
        with self._lock:
            self._require_asset(asset_id)
            if attached:
                amount = self._receive(user)
            checkpoint = self._checkpoint(user)
            try:
                account = self.market.account(user)
                interest = apply_accrual(account, self.market, self._current_time)
                event_type, event_amount, transfer = body(account, amount)
                self._assert_invariants()
            except Exception as exc:
                self._rollback(checkpoint)
                if attached and amount:
                    # Attached value never entered the pool; send it back.
                    self.transfers.pay_out(user, amount)
                if self.verbose:
                    print(f"✗ REJECTED: {op_name} {user} {amount}: {exc}")
                raise

            event = LendingEvent(
                event_type=event_type,
                user=user,
                asset_id=self.asset_id,
                amount=event_amount,
                timestamp=self._current_time,
                sequence=len(self.operation_log),
            )
            result = OperationResult(event=event, transfer=transfer, interest_accrued=interest)
            self.operation_log.append(result)

            if transfer is not None and self.transfers is not None:
                self.transfers.pay_out(transfer.user, transfer.amount)
            if self.verbose:
                suffix = f", {transfer!r}" if transfer is not None else ""
                print(f"✓ {event!r} {self.asset_id} @ {self._current_time}{suffix}")
            # Committed and paid out; a failing sink cannot undo either.
            if self.events is not None:
                self.events.notify(event)
            return result

    def _projected_balances(self, user: str) -> Tuple[int, int]:
        acct = self.market.get_account(user)
        params = self.market.params
        supply = acct.supply_balance + calculate_pending_interest(
            acct.supply_balance, params.supply_rate_per_year, acct.last_accrual_time, self._current_time,
        )
        borrow = acct.borrow_balance + calculate_pending_interest(
            acct.borrow_balance, params.borrow_rate_per_year, acct.last_accrual_time, self._current_time,
        )
        return supply, borrow

    def _require_asset(self, asset_id: Optional[str]) -> None:
        if asset_id is not None and asset_id != self.market.asset_id:
            raise UnsupportedAssetError(f"Asset {asset_id} not supported")

    def _receive(self, user: str) -> int:
        if self.transfers is None:
            raise ValueError("amount is required when no AssetTransfer is configured")
        return self.transfers.receive_in(user)

    def _assert_invariants(self) -> None:
        violations = self.market.check_invariants()
        if violations:
            raise InvariantViolation(violations)

    def _checkpoint(self, user: str) -> Tuple[str, Optional[Account], int, int]:
        existing = self.market.get_account(user) if self.market.has_account(user) else None
        return user, existing, self.market.total_supply, self.market.total_borrow

    def _rollback(self, checkpoint: Tuple[str, Optional[Account], int, int]) -> None:
        user, account, total_supply, total_borrow = checkpoint
        if account is None:
            self.market._drop_account(user)
        else:
            self.market._restore_account(account)
        self.market.total_supply = total_supply
        self.market.total_borrow = total_borrow

    def __repr__(self) -> str:
        return f"LendingCore({self.name}, {self.market!r}, time={self._current_time})"
