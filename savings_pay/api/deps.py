# savings_pay/api/deps.py
from fastapi import Depends, Request

from savings_pay.utils.balance import BalanceLedger
from savings_pay.utils.settlement import SettlementEngine
from savings_pay.utils.vault import ReferenceVault

# The engine and its ledger/vault are built once at startup (see main.py) and
# live on app.state for the lifetime of the process.

def get_settlement_engine(request: Request) -> SettlementEngine:
    return request.app.state.settlement_engine

def get_reference_vault(engine: SettlementEngine = Depends(get_settlement_engine)) -> ReferenceVault:
    return engine.vault

def get_balance_ledger(engine: SettlementEngine = Depends(get_settlement_engine)) -> BalanceLedger:
    return engine.ledger
