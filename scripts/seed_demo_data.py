#!/usr/bin/env python3
# scripts/seed_demo_data.py
"""
Clinic demo data seeder.

Everything goes through the services, so the seeded data obeys the same
rules as the API: opening stock is a ledger entry, prescriptions deduct
stock, payments are capped at the treatment cost.

- ~20 inventory items across medication / supply / equipment, some already
  near their reorder level so the dashboard shows low-stock alerts.
- N patients (default 40) with realistic age / gender spread.
- Treatments spread across the last D days (default 60), each with 1-3
  medications and 0-2 services.
- Payments: roughly half paid in full, a third partial, the rest pending.

Run:
  python -m scripts.seed_demo_data --create-tables --seed
  python -m scripts.seed_demo_data --seed --patients 100 --days 120
"""
from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

# Allow "python -m scripts.seed_demo_data" from repo root
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))

from clinic.core.config import get_settings  # noqa: E402
from clinic.core.database import engine, session_scope  # noqa: E402
from clinic.core.exceptions import ClinicError  # noqa: E402
from clinic.models import Base, Gender, InventoryCategory, PaymentMethod  # noqa: E402
from clinic.schemas.inventory import InventoryItemCreate  # noqa: E402
from clinic.schemas.patient import PatientCreate  # noqa: E402
from clinic.schemas.payment import PaymentCreate  # noqa: E402
from clinic.schemas.treatment import MedicationLineCreate, ServiceLineCreate, TreatmentCreate  # noqa: E402
from clinic.services import patient_service  # noqa: E402
from clinic.services.billing_service import BillingService  # noqa: E402
from clinic.services.clinic_state import ClinicState  # noqa: E402
from clinic.services.clinic_store import ClinicStore  # noqa: E402
from clinic.services.inventory_service import InventoryLedger  # noqa: E402
from clinic.services.treatment_service import TreatmentManager  # noqa: E402
from clinic.utils.datetime_utils import utc_today  # noqa: E402

logger = logging.getLogger(__name__)

SEED_USER = "demo-seeder"

# name, category, unit, unit_cost, opening stock, reorder level, reorder qty, supplier
DEMO_ITEMS: list[tuple[str, InventoryCategory, str, str, int, int, int, str]] = [
    ("Paracetamol 500mg", InventoryCategory.MEDICATION, "tablet", "0.50", 2000, 200, 1000, "Medipharm"),
    ("Amoxicillin 250mg", InventoryCategory.MEDICATION, "capsule", "1.20", 800, 100, 500, "Medipharm"),
    ("Ibuprofen 400mg", InventoryCategory.MEDICATION, "tablet", "0.80", 1200, 150, 600, "Medipharm"),
    ("Metformin 500mg", InventoryCategory.MEDICATION, "tablet", "0.65", 900, 100, 500, "HealthLine"),
    ("Amlodipine 5mg", InventoryCategory.MEDICATION, "tablet", "0.90", 600, 80, 300, "HealthLine"),
    ("Artemether/Lumefantrine", InventoryCategory.MEDICATION, "pack", "12.00", 120, 20, 100, "Pharmanova"),
    ("Oral Rehydration Salts", InventoryCategory.MEDICATION, "sachet", "0.75", 400, 50, 200, "Pharmanova"),
    ("Cough Syrup 100ml", InventoryCategory.MEDICATION, "bottle", "4.50", 60, 15, 50, "HealthLine"),
    ("Ciprofloxacin 500mg", InventoryCategory.MEDICATION, "tablet", "1.50", 35, 40, 200, "Medipharm"),
    ("Omeprazole 20mg", InventoryCategory.MEDICATION, "capsule", "0.95", 500, 60, 300, "Pharmanova"),
    ("Disposable Syringe 5ml", InventoryCategory.SUPPLY, "piece", "0.30", 1500, 200, 1000, "SurgiCare"),
    ("Sterile Gauze", InventoryCategory.SUPPLY, "pack", "1.10", 300, 50, 200, "SurgiCare"),
    ("Examination Gloves", InventoryCategory.SUPPLY, "box", "6.00", 40, 10, 30, "SurgiCare"),
    ("Cotton Wool 500g", InventoryCategory.SUPPLY, "roll", "3.20", 8, 10, 20, "SurgiCare"),
    ("Alcohol Swabs", InventoryCategory.SUPPLY, "box", "2.50", 70, 15, 50, "SurgiCare"),
    ("Digital Thermometer", InventoryCategory.EQUIPMENT, "piece", "15.00", 12, 3, 5, "MedEquip"),
    ("Blood Pressure Monitor", InventoryCategory.EQUIPMENT, "piece", "85.00", 4, 2, 2, "MedEquip"),
    ("Pulse Oximeter", InventoryCategory.EQUIPMENT, "piece", "40.00", 2, 2, 3, "MedEquip"),
    ("Glucometer Strips", InventoryCategory.SUPPLY, "box", "18.00", 25, 5, 20, "MedEquip"),
    ("Nebulizer Mask", InventoryCategory.EQUIPMENT, "piece", "9.00", 10, 3, 10, "MedEquip"),
]

DEMO_SERVICES: list[tuple[str, str]] = [
    ("Consultation", "25.00"),
    ("Laboratory Test", "40.00"),
    ("Wound Dressing", "15.00"),
    ("Injection Administration", "10.00"),
    ("Malaria Rapid Test", "12.00"),
    ("Blood Sugar Test", "8.00"),
    ("Nebulization", "20.00"),
]

DIAGNOSES = [
    "Malaria",
    "Upper respiratory tract infection",
    "Hypertension review",
    "Type 2 diabetes review",
    "Gastritis",
    "Urinary tract infection",
    "Minor laceration",
    "Acute diarrhoea",
    "Tension headache",
    "Asthma exacerbation",
]

FIRST_NAMES = [
    "Chanda", "Mwila", "Bwalya", "Mutale", "Natasha", "Kondwani", "Thandiwe", "Lubasi",
    "Musonda", "Chipo", "Kalenga", "Nalishebo", "Tiyanjane", "Mapalo", "Chileshe", "Sepo",
]
LAST_NAMES = [
    "Banda", "Phiri", "Mwale", "Tembo", "Zulu", "Lungu", "Mulenga", "Sakala",
    "Chanda", "Mumba", "Kabwe", "Ngoma", "Daka", "Mbewe",
]
RESIDENCES = ["Lusaka", "Kabwe", "Ndola", "Kitwe", "Chipata", "Livingstone", "Mansa", "Solwezi"]
DOSAGES = ["1 tablet twice daily", "2 tablets three times daily", "1 capsule daily", "10ml three times daily"]


def _random_age(rng: random.Random) -> int:
    bucket = rng.choices([(1, 18), (19, 35), (36, 50), (51, 65), (66, 90)], weights=[20, 35, 25, 12, 8])[0]
    return rng.randint(*bucket)


def seed_inventory(ledger: InventoryLedger) -> list:
    items = []
    for name, category, unit, cost, opening, reorder_level, reorder_qty, supplier in DEMO_ITEMS:
        items.append(
            ledger.create_item(
                InventoryItemCreate(
                    name=name,
                    category=category,
                    unit=unit,
                    unit_cost=Decimal(cost),
                    current_stock=opening,
                    reorder_level=reorder_level,
                    reorder_quantity=reorder_qty,
                    supplier=supplier,
                ),
                created_by=SEED_USER,
            )
        )
    print(f"Created {len(items)} inventory items.")
    return items


def seed_patients(state: ClinicState, store: ClinicStore, count: int, rng: random.Random) -> list:
    patients = []
    for _ in range(count):
        gender = rng.choices([Gender.FEMALE, Gender.MALE, Gender.OTHER], weights=[52, 46, 2])[0]
        name = f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"
        patients.append(
            patient_service.create_patient(
                state,
                store,
                payload=PatientCreate(
                    name=name,
                    age=_random_age(rng),
                    gender=gender,
                    residence=rng.choice(RESIDENCES),
                    phone=f"+2609{rng.randint(10000000, 79999999)}",
                ),
                created_by=SEED_USER,
            )
        )
    print(f"Created {len(patients)} patients.")
    return patients


def seed_treatments(
    state: ClinicState,
    treatments: TreatmentManager,
    billing: BillingService,
    patients: list,
    days: int,
    rng: random.Random,
) -> None:
    today = utc_today()
    medications = [i for i in state.items if i.category == InventoryCategory.MEDICATION]
    created = skipped = paid = 0

    for patient in patients:
        for _ in range(rng.randint(1, 3)):
            treatment_date = today - timedelta(days=rng.randint(0, days))
            meds = [
                MedicationLineCreate(
                    inventory_item_id=item.id,
                    quantity=rng.randint(1, 20),
                    dosage=rng.choice(DOSAGES),
                )
                for item in rng.sample(medications, rng.randint(1, 3))
            ]
            services = [
                ServiceLineCreate(name=name, cost=Decimal(cost))
                for name, cost in rng.sample(DEMO_SERVICES, rng.randint(0, 2))
            ]
            try:
                treatment = treatments.create_treatment(
                    patient.id,
                    TreatmentCreate(
                        diagnosis=rng.choice(DIAGNOSES),
                        treatment_date=treatment_date,
                        due_date=treatment_date + timedelta(days=30),
                        medications=meds,
                        services=services,
                    ),
                    created_by=SEED_USER,
                )
            except ClinicError as e:
                # Stock ran out for this prescription
                logger.info("Skipping treatment for %s: %s", patient.name, e.detail)
                skipped += 1
                continue
            created += 1

            roll = rng.random()
            if roll < 0.5:
                amount = treatment.total_cost
            elif roll < 0.83:
                amount = (treatment.total_cost * Decimal(rng.randint(20, 80)) / 100).quantize(Decimal("0.01"))
            else:
                continue
            if amount <= 0:
                continue

            billing.apply_payment(
                treatment.id,
                PaymentCreate(
                    amount=amount,
                    method=rng.choice(list(PaymentMethod)),
                    payment_date=min(treatment_date + timedelta(days=rng.randint(0, 7)), today),
                ),
                created_by=SEED_USER,
            )
            paid += 1

    print(f"Created {created} treatments ({skipped} skipped for stock), {paid} payments.")


def seed(patient_count: int, days: int, random_seed: int) -> None:
    rng = random.Random(random_seed)
    settings = get_settings()

    with session_scope() as db:
        store = ClinicStore(db)
        state = ClinicState.load(store)
        if state.patients or state.items:
            print("Database already holds clinic data; seeding skipped.")
            return

        ledger = InventoryLedger(state, store)
        treatments = TreatmentManager(state, store, deduct_stock=settings.deduct_stock_on_treatment)
        billing = BillingService(state, store, tolerance=settings.payment_tolerance)

        seed_inventory(ledger)
        patients = seed_patients(state, store, patient_count, rng)
        seed_treatments(state, treatments, billing, patients, days, rng)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed clinic demo data")
    parser.add_argument("--create-tables", action="store_true", help="Create all tables (without Alembic)")
    parser.add_argument("--seed", action="store_true", help="Seed inventory, patients, treatments and payments")
    parser.add_argument("--patients", type=int, default=40, help="Number of patients (default: 40)")
    parser.add_argument("--days", type=int, default=60, help="Spread treatments over this many past days (default: 60)")
    parser.add_argument("--random-seed", type=int, default=11, help="Random seed for reproducible data")
    args = parser.parse_args()

    if not (args.create_tables or args.seed):
        parser.print_help()
        raise SystemExit(1)

    logging.basicConfig(level=get_settings().log_level.upper())

    try:
        if args.create_tables:
            Base.metadata.create_all(bind=engine)
            print("Tables created.")
        if args.seed:
            seed(args.patients, args.days, args.random_seed)
    except (SQLAlchemyError, ClinicError) as e:
        logger.error("Seed failed: %s", e, exc_info=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
