import logging
import os
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response

from epsilon.core.models import (
    ChatRequest,
    ChatResponse,
    DashboardView,
    FinancialSnapshot,
    NewTransaction,
    OverrideRequest,
    SnapshotUpdate,
    Transaction,
    TransactionList,
    TransactionStats,
)
from epsilon.core.pipeline import answer_chat, build_chat_context, build_dashboard
from epsilon.core.storage import JsonFileStorage
from epsilon.core.store import AppStore
from finance.ledger import categories, filter_transactions, signed_amount, transaction_stats

STORE_PATH = os.getenv("EPSILON_STORE_PATH", ".epsilon_store.json")
LOG_LEVEL = os.getenv("EPSILON_LOG_LEVEL", "INFO")

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def get_store(request: Request) -> AppStore:
    return request.app.state.store


def create_app(store: Optional[AppStore] = None) -> FastAPI:
    app = FastAPI(title="Epsilon Cash Dashboard API")
    app.state.store = store if store is not None else AppStore(JsonFileStorage(STORE_PATH))

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/snapshot", response_model=FinancialSnapshot)
    def read_snapshot(store: AppStore = Depends(get_store)):
        return store.snapshot()

    @app.patch("/snapshot", response_model=FinancialSnapshot)
    def update_snapshot(payload: SnapshotUpdate, store: AppStore = Depends(get_store)):
        if payload.autopilot_pct is not None and not store.autopilot_override:
            raise HTTPException(status_code=409, detail="Enable autopilot override before setting the percentage.")
        if payload.cash_balance is not None:
            store.set_cash_balance(payload.cash_balance)
        if payload.monthly_burn is not None:
            store.set_monthly_burn(payload.monthly_burn)
        if payload.reserve_balance is not None:
            store.set_reserve_balance(payload.reserve_balance)
        if payload.autopilot_pct is not None:
            store.set_autopilot_pct(payload.autopilot_pct)
        return store.snapshot()

    @app.get("/dashboard", response_model=DashboardView)
    def dashboard(store: AppStore = Depends(get_store)):
        return build_dashboard(store)

    @app.post("/autopilot/override", response_model=DashboardView)
    def autopilot_override(payload: OverrideRequest, store: AppStore = Depends(get_store)):
        store.set_autopilot_override(payload.enabled)
        return build_dashboard(store)

    @app.get("/transactions", response_model=TransactionList)
    def list_transactions(
        q: str = "",
        category: str = "All",
        window: str = "30d",
        store: AppStore = Depends(get_store),
    ):
        if window not in ("7d", "30d", "all"):
            raise HTTPException(status_code=422, detail="window must be one of 7d, 30d, all")
        txns = filter_transactions(store.txns, query=q, category=category, window=window)
        return TransactionList(
            txns=txns,
            stats=TransactionStats(**transaction_stats(txns)),
            categories=categories(store.txns),
        )

    @app.post("/transactions", response_model=Transaction, status_code=201)
    def create_transaction(payload: NewTransaction, store: AppStore = Depends(get_store)):
        amount = signed_amount(payload.amount, payload.kind)
        if amount is None:
            raise HTTPException(status_code=400, detail="Amount must be a number.")
        try:
            return store.add_transaction(
                name=payload.name,
                amount=amount,
                txn_date=payload.date or date.today(),
                category=payload.category,
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.post("/transactions/samples", response_model=List[Transaction], status_code=201)
    def add_samples(store: AppStore = Depends(get_store)):
        return store.add_sample_transactions()

    @app.delete("/transactions/{txn_id}", status_code=204)
    def delete_transaction(txn_id: str, store: AppStore = Depends(get_store)):
        if not store.delete_transaction(txn_id):
            raise HTTPException(status_code=404, detail="Transaction not found")
        return Response(status_code=204)

    @app.post("/chat", response_model=ChatResponse)
    def chat(payload: ChatRequest, store: AppStore = Depends(get_store)):
        context = payload.context or build_chat_context(store)
        return ChatResponse(reply=answer_chat(payload.message, context, store.target_months))

    return app


app = create_app()
