# clinic/core/clinic_context.py
import logging

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from clinic.core.config import Settings, get_settings
from clinic.core.database import get_db
from clinic.services.billing_service import BillingService
from clinic.services.clinic_state import ClinicState
from clinic.services.clinic_store import ClinicStore
from clinic.services.inventory_service import InventoryLedger
from clinic.services.treatment_service import TreatmentManager

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "system"


class ClinicContext:
    """
    Wraps everything one request works against.

    - store:   write-through adapter over this request's DB session
    - state:   clinic entities loaded from that store
    - user_id: caller identity recorded as created_by
    """

    def __init__(self, store: ClinicStore, state: ClinicState, user_id: str, settings: Settings):
        self.store = store
        self.state = state
        self.user_id = user_id
        self.settings = settings

    @property
    def ledger(self) -> InventoryLedger:
        return InventoryLedger(self.state, self.store)

    @property
    def treatments(self) -> TreatmentManager:
        return TreatmentManager(
            self.state,
            self.store,
            deduct_stock=self.settings.deduct_stock_on_treatment,
        )

    @property
    def billing(self) -> BillingService:
        return BillingService(self.state, self.store, tolerance=self.settings.payment_tolerance)


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """
    Caller identity from the X-User-Id header. Authentication happens
    upstream; a missing or blank header is recorded as "system".
    """
    if x_user_id is None or not x_user_id.strip():
        return DEFAULT_USER_ID
    return x_user_id.strip()[:255]


def get_clinic_context(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
) -> ClinicContext:
    """
    Build the store and load the clinic state for this request.
    """
    store = ClinicStore(db)
    state = ClinicState.load(store)
    return ClinicContext(store, state, user_id, settings)
