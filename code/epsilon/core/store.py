import json
import logging
import uuid
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from pydantic import ValidationError

from finance.autopilot import DEFAULT_TARGET_MONTHS, get_mode_and_pct
from finance.cash import runway_days
from finance.ledger import clean_text, sample_transactions
from finance.schemas import AutopilotInput, AutopilotRules
from finance.utils import clamp, finite_or, non_negative

from .models import FinancialSnapshot, Transaction
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

STORAGE_KEY = "epsilon_store_v1"
DEFAULT_AUTOPILOT_PCT = 16.0
MAX_AUTOPILOT_PCT = 30.0


def snapshot_from_json(raw: Optional[str]) -> FinancialSnapshot:
    """Rebuild a snapshot from stored JSON, defaulting anything unusable.

    Each numeric field falls back on its own and bad transactions are
    dropped one by one, so one corrupt row never costs the whole snapshot.
    """
    if not raw:
        return FinancialSnapshot()
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("Discarding malformed stored snapshot")
        return FinancialSnapshot()
    if not isinstance(parsed, dict):
        return FinancialSnapshot()

    txns: List[Transaction] = []
    seen: Set[str] = set()
    raw_txns = parsed.get("txns")
    for item in raw_txns if isinstance(raw_txns, list) else []:
        try:
            txn = Transaction.model_validate(item)
        except ValidationError:
            continue
        if txn.id in seen:
            continue
        seen.add(txn.id)
        txns.append(txn)

    return FinancialSnapshot(
        cash_balance=non_negative(parsed.get("cashBalance")),
        monthly_burn=non_negative(parsed.get("monthlyBurn")),
        autopilot_pct=clamp(finite_or(parsed.get("autopilotPct"), DEFAULT_AUTOPILOT_PCT), 0.0, MAX_AUTOPILOT_PCT),
        reserve_balance=non_negative(parsed.get("reserveBalance")),
        txns=txns,
    )


def snapshot_to_json(snapshot: FinancialSnapshot) -> str:
    return snapshot.model_dump_json(by_alias=True)


class AppStore:
    """Holds the financial snapshot and writes it back after every change.

    The store is passed explicitly to every consumer (API routes, the
    dashboard pipeline, the Streamlit view); nothing looks it up globally.
    Autopilot override is session state and is not persisted.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = STORAGE_KEY,
        target_months: float = DEFAULT_TARGET_MONTHS,
    ):
        self.storage = storage
        self.key = key
        self.target_months = target_months
        self.autopilot_override = False
        self._snapshot = snapshot_from_json(self._load_raw())
        self._issued_ids: Set[str] = {t.id for t in self._snapshot.txns}
        self._retired_ids: Set[str] = set()

    def _load_raw(self) -> Optional[str]:
        try:
            return self.storage.get_item(self.key)
        except Exception as e:
            logger.warning("Could not read stored snapshot: %s", e)
            return None

    def save(self) -> None:
        try:
            self.storage.set_item(self.key, snapshot_to_json(self._snapshot))
        except Exception as e:
            # In-memory state stays authoritative; the next change retries the write.
            logger.warning("Could not persist snapshot: %s", e)

    # --- reads -------------------------------------------------------------

    @property
    def cash_balance(self) -> float:
        return self._snapshot.cash_balance

    @property
    def monthly_burn(self) -> float:
        return self._snapshot.monthly_burn

    @property
    def autopilot_pct(self) -> float:
        return self._snapshot.autopilot_pct

    @property
    def reserve_balance(self) -> float:
        return self._snapshot.reserve_balance

    @property
    def txns(self) -> List[Transaction]:
        return list(self._snapshot.txns)

    def snapshot(self) -> FinancialSnapshot:
        return self._snapshot.model_copy(deep=True)

    def runway_days(self) -> Optional[int]:
        return runway_days(self.cash_balance, self.monthly_burn)

    def autopilot_rules(self) -> AutopilotRules:
        return get_mode_and_pct(
            AutopilotInput(
                reserve_balance=self.reserve_balance,
                monthly_burn=self.monthly_burn,
                target_months=self.target_months,
                runway_days=self.runway_days(),
            )
        )

    # --- numeric setters ---------------------------------------------------

    def set_cash_balance(self, value: float) -> None:
        self._snapshot.cash_balance = non_negative(value)
        self._after_input_change()

    def set_monthly_burn(self, value: float) -> None:
        self._snapshot.monthly_burn = non_negative(value)
        self._after_input_change()

    def set_reserve_balance(self, value: float) -> None:
        self._snapshot.reserve_balance = non_negative(value)
        self._after_input_change()

    def set_autopilot_pct(self, value: float) -> float:
        pct = clamp(finite_or(value), 0.0, MAX_AUTOPILOT_PCT)
        if self.autopilot_override:
            rules = self.autopilot_rules()
            pct = clamp(pct, float(rules.min_pct), float(rules.max_pct))
        self._snapshot.autopilot_pct = pct
        self.save()
        return pct

    def _after_input_change(self) -> None:
        if not self.autopilot_override:
            self._snapshot.autopilot_pct = float(self.autopilot_rules().suggested_pct)
        self.save()

    # --- autopilot override ------------------------------------------------

    def set_autopilot_override(self, enabled: bool) -> None:
        self.autopilot_override = bool(enabled)
        if not self.autopilot_override:
            self.sync_autopilot()

    def sync_autopilot(self) -> AutopilotRules:
        rules = self.autopilot_rules()
        if not self.autopilot_override and self._snapshot.autopilot_pct != rules.suggested_pct:
            self._snapshot.autopilot_pct = float(rules.suggested_pct)
            self.save()
        return rules

    # --- transactions ------------------------------------------------------

    def _new_id(self) -> str:
        txn_id = uuid.uuid4().hex
        while txn_id in self._issued_ids:
            txn_id = uuid.uuid4().hex
        self._issued_ids.add(txn_id)
        return txn_id

    def _build_transaction(self, name: str, amount: float, txn_date: Union[date, str, None], category: str) -> Transaction:
        cleaned_name = clean_text(name)
        if not cleaned_name:
            raise ValueError("Transaction name is required")
        return Transaction(
            id=self._new_id(),
            date=txn_date or date.today(),
            name=cleaned_name,
            category=clean_text(category) or "General",
            amount=amount,
        )

    def add_transaction(
        self,
        name: str,
        amount: float,
        txn_date: Union[date, str, None] = None,
        category: str = "General",
    ) -> Transaction:
        txn = self._build_transaction(name, amount, txn_date, category)
        self._snapshot.txns.insert(0, txn)
        self.save()
        return txn

    def delete_transaction(self, txn_id: str) -> bool:
        remaining = [t for t in self._snapshot.txns if t.id != txn_id]
        if len(remaining) == len(self._snapshot.txns):
            return False
        self._snapshot.txns = remaining
        self._retired_ids.add(txn_id)
        self.save()
        return True

    def replace_transactions(self, txns: Iterable[Union[Transaction, Dict[str, Any]]]) -> List[Transaction]:
        out: List[Transaction] = []
        seen: Set[str] = set()
        for item in txns:
            txn = item if isinstance(item, Transaction) else Transaction.model_validate(item)
            # Deleted or dropped ids are never handed out again.
            if txn.id in seen or txn.id in self._retired_ids:
                txn = txn.model_copy(update={"id": self._new_id()})
            seen.add(txn.id)
            self._issued_ids.add(txn.id)
            out.append(txn)
        self._retired_ids.update({t.id for t in self._snapshot.txns} - seen)
        self._snapshot.txns = out
        self.save()
        return list(out)

    def add_sample_transactions(self, today: Optional[date] = None) -> List[Transaction]:
        samples = [
            self._build_transaction(row["name"], row["amount"], row["date"], row["category"])
            for row in sample_transactions(today)
        ]
        self._snapshot.txns = samples + self._snapshot.txns
        self.save()
        return samples
