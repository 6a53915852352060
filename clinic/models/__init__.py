# clinic/models/__init__.py
from clinic.models.base import Base
from clinic.models.patient import Gender, Patient
from clinic.models.inventory import (
    InventoryCategory,
    InventoryItem,
    InventoryTransaction,
    ReferenceType,
    TransactionType,
)
from clinic.models.treatment import (
    PaymentStatus,
    Treatment,
    TreatmentMedication,
    TreatmentService,
)
from clinic.models.payment import Payment, PaymentMethod, PaymentRecordStatus
