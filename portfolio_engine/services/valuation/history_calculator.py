# portfolio_engine/services/valuation/history_calculator.py
"""
History Calculator for daily portfolio value time series.

Replays an irregular stream of cash and trade events over a calendar window
and values the running holdings against sparse daily close series.

Algorithm (Rolling State):
    1. Validate the window and every transaction (before any work)
    2. Stable-sort transactions by date and group them per day
    3. Start from zero cash and no holdings (initial_cash seeds the balance
       only when there are no transactions: a flat series)
    4. For each calendar day in the window:
        a. Apply the group dated exactly that day, in stored order
        b. Snapshot: value each non-zero holding at the latest close dated
           on or before the day (forward-fill only), 0 when there is none
    5. Groups dated before or after the window are never applied

Complexity: O(T log T + D × H × log P) where T = transactions, D = days,
H = symbols held, P = closes per series. Transactions are applied once,
never re-filtered per day.

Cash effects:
    DEPOSIT   cash += amount
    WITHDRAW  cash -= amount
    DIVIDEND  cash += amount
    BUY       cash -= amount, holdings[symbol] += |quantity|
    SELL      cash += amount, holdings[symbol] -= |quantity|
"""

from __future__ import annotations

import bisect
import logging
from datetime import date
from itertools import groupby
from typing import Iterable

from portfolio_engine.models import TransactionType
from portfolio_engine.services.exceptions import InvalidDateRangeError
from portfolio_engine.services.market_data.base import PricePoint
from portfolio_engine.services.valuation.types import HistoryPoint, Transaction
from portfolio_engine.utils.date_utils import iter_calendar_days

logger = logging.getLogger(__name__)


class _CloseIndex:
    """Ascending close series for one symbol, searchable by date."""

    __slots__ = ("dates", "closes")

    def __init__(self, points: Iterable[PricePoint]) -> None:
        ordered = sorted(points, key=lambda p: p.date)
        self.dates = [p.date for p in ordered]
        self.closes = [p.close for p in ordered]

    def close_on_or_before(self, day: date) -> float | None:
        position = bisect.bisect_right(self.dates, day)
        if position == 0:
            return None
        return self.closes[position - 1]


class HistoryCalculator:
    """
    Reconstructs daily (cash, invested, total) over a window.

    Stateless between calls: every build_history call owns its rolling
    state, so one instance can serve concurrent requests.

    Example:
        calc = HistoryCalculator()
        points = calc.build_history(
            transactions=[...],
            price_series={"AAPL": [PricePoint(...), ...]},
            start_date=date(2024, 1, 1),
            end_date=date(2024, 3, 31),
        )
        len(points)  # 91
    """

    def build_history(
            self,
            transactions: list[Transaction],
            price_series: dict[str, list[PricePoint]],
            start_date: date,
            end_date: date,
            initial_cash: float = 0.0,
    ) -> list[HistoryPoint]:
        """
        Build one HistoryPoint per calendar day in [start_date, end_date].

        Args:
            transactions: Events in any order (ties keep their input order)
            price_series: symbol -> close series; missing symbols value at 0
            start_date: First day of the window
            end_date: Last day of the window
            initial_cash: Flat cash balance used only when there are no
                transactions

        Returns:
            end_date - start_date + 1 points, ascending by date

        Raises:
            InvalidDateRangeError: start_date is after end_date
            ValidationError: A transaction has a negative amount, or a
                BUY/SELL has no symbol or a zero quantity
        """
        self._validate(transactions, start_date, end_date)

        groups = self._group_by_date(transactions)
        closes = {
            symbol.strip().upper(): _CloseIndex(points)
            for symbol, points in price_series.items()
        }

        # Rolling state - mutated as groups are applied
        cash = 0.0 if transactions else float(initial_cash)
        holdings_state: dict[str, float] = {}

        num_groups = len(groups)
        group_index = 0
        while group_index < num_groups and groups[group_index][0] < start_date:
            group_index += 1
        before_window = group_index
        points: list[HistoryPoint] = []

        for day in iter_calendar_days(start_date, end_date):
            # === PHASE 1: Apply the group dated exactly this day ===
            if group_index < num_groups and groups[group_index][0] == day:
                for txn in groups[group_index][1]:
                    cash = self._apply_transaction(txn, cash, holdings_state)
                group_index += 1

            # === PHASE 2: Snapshot ===
            points.append(self._snapshot_state(day, cash, holdings_state, closes))

        after_window = num_groups - group_index
        logger.debug(
            f"Built {len(points)} history points from {len(transactions)} transactions "
            f"({before_window} event days before {start_date} and "
            f"{after_window} after {end_date} ignored)"
        )

        return points

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    @staticmethod
    def _validate(
            transactions: list[Transaction],
            start_date: date,
            end_date: date,
    ) -> None:
        if start_date > end_date:
            raise InvalidDateRangeError(start_date, end_date)
        for txn in transactions:
            txn.validate()

    @staticmethod
    def _group_by_date(
            transactions: list[Transaction],
    ) -> list[tuple[date, list[Transaction]]]:
        """Stable sort by date, then group consecutive same-day events."""
        ordered = sorted(transactions, key=lambda t: t.date)
        return [(day, list(events)) for day, events in groupby(ordered, key=lambda t: t.date)]

    @staticmethod
    def _apply_transaction(
            txn: Transaction,
            cash: float,
            holdings_state: dict[str, float],
    ) -> float:
        """Apply one event to the holdings state and return the new cash balance."""
        if txn.type == TransactionType.DEPOSIT:
            return cash + txn.amount
        if txn.type == TransactionType.WITHDRAW:
            return cash - txn.amount
        if txn.type == TransactionType.DIVIDEND:
            return cash + txn.amount

        symbol = txn.normalized_symbol
        units = abs(txn.quantity)

        if txn.type == TransactionType.BUY:
            holdings_state[symbol] = holdings_state.get(symbol, 0.0) + units
            return cash - txn.amount

        # SELL
        holdings_state[symbol] = holdings_state.get(symbol, 0.0) - units
        return cash + txn.amount

    @staticmethod
    def _snapshot_state(
            day: date,
            cash: float,
            holdings_state: dict[str, float],
            closes: dict[str, _CloseIndex],
    ) -> HistoryPoint:
        invested = 0.0

        for symbol, quantity in holdings_state.items():
            if quantity == 0:
                continue
            price = HistoryCalculator._lookup_price(closes, symbol, day)
            if price is not None:
                invested += quantity * price

        return HistoryPoint(date=day, cash=cash, invested=invested, total=cash + invested)

    @staticmethod
    def _lookup_price(
            closes: dict[str, _CloseIndex],
            symbol: str,
            day: date,
    ) -> float | None:
        """Latest close dated on or before day; never looks forward."""
        index = closes.get(symbol)
        if index is None:
            return None
        return index.close_on_or_before(day)
