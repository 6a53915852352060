import uuid
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import OperationalError

from clinic.core.exceptions import BackendError, NotFoundError, ValidationError
from clinic.models import PaymentMethod, PaymentRecordStatus, PaymentStatus
from clinic.schemas.payment import PaymentCreate
from clinic.schemas.treatment import ServiceLineCreate, TreatmentCreate
from clinic.services.billing_service import classify, total_owed
from clinic.services.clinic_state import ClinicState


@pytest.fixture
def make_treatment(treatments):
    def _make(patient, cost, diagnosis="Consultation", treatment_date=None):
        return treatments.create_treatment(
            patient.id,
            TreatmentCreate(
                diagnosis=diagnosis,
                treatment_date=treatment_date,
                services=[ServiceLineCreate(name="Consultation", cost=Decimal(cost))],
            ),
            created_by="dr-1",
        )

    return _make


def pay(amount, **extra):
    return PaymentCreate(amount=Decimal(amount), **extra)


class TestClassify:
    @pytest.mark.parametrize(
        "paid, cost, expected",
        [
            ("0", "100", PaymentStatus.PENDING),
            ("0.01", "100", PaymentStatus.PARTIAL),
            ("99.99", "100", PaymentStatus.PARTIAL),
            ("100", "100", PaymentStatus.PAID),
            ("120", "100", PaymentStatus.PAID),
            # Rules are checked in order, so a free treatment with nothing paid is pending
            ("0", "0", PaymentStatus.PENDING),
        ],
    )
    def test_status_rules(self, paid, cost, expected):
        assert classify(Decimal(paid), Decimal(cost)) == expected


class TestApplyPayment:
    def test_partial_then_full_payment(self, billing, make_patient, make_treatment, store):
        """110.20 owed: 60.00 makes it partial, 60.20 more settles it at 110.20."""
        patient = make_patient()
        treatment = make_treatment(patient, "110.20")

        updated, payment = billing.apply_payment(treatment.id, pay("60.00"), created_by="cashier")
        assert updated.amount_paid == Decimal("60.00")
        assert updated.payment_status == PaymentStatus.PARTIAL
        assert payment.amount == Decimal("60.00")
        assert payment.status == PaymentRecordStatus.COMPLETED
        assert payment.patient_id == patient.id

        updated, payment = billing.apply_payment(treatment.id, pay("60.20"), created_by="cashier")
        assert updated.amount_paid == Decimal("110.20")
        assert updated.payment_status == PaymentStatus.PAID
        assert payment.amount == Decimal("50.20")
        assert "Overpayment of 10.00 not applied." in payment.notes

        reloaded = ClinicState.load(store).get_treatment(treatment.id)
        assert reloaded.amount_paid == Decimal("110.20")
        assert reloaded.payment_status == PaymentStatus.PAID

    def test_exact_payment_settles_treatment(self, billing, make_patient, make_treatment):
        patient = make_patient()
        treatment = make_treatment(patient, "110.20")
        billing.apply_payment(treatment.id, pay("60.00"), created_by="cashier")

        updated, payment = billing.apply_payment(
            treatment.id, pay("50.20", method=PaymentMethod.MOBILE), created_by="cashier"
        )

        assert updated.amount_paid == Decimal("110.20")
        assert updated.payment_status == PaymentStatus.PAID
        assert payment.amount == Decimal("50.20")
        assert payment.method == PaymentMethod.MOBILE
        assert payment.notes is None

    def test_overpayment_is_capped_and_noted(self, billing, make_patient, make_treatment):
        patient = make_patient()
        treatment = make_treatment(patient, "40.00")

        updated, payment = billing.apply_payment(
            treatment.id, pay("50.00", notes="Paid by relative"), created_by="cashier"
        )

        assert updated.amount_paid == Decimal("40.00")
        assert payment.amount == Decimal("40.00")
        assert payment.notes == "Paid by relative Overpayment of 10.00 not applied."

    def test_settled_treatment_rejects_payment(self, billing, make_patient, make_treatment):
        patient = make_patient()
        treatment = make_treatment(patient, "20.00")
        billing.apply_payment(treatment.id, pay("20.00"), created_by="cashier")

        with pytest.raises(ValidationError) as exc_info:
            billing.apply_payment(treatment.id, pay("5.00"), created_by="cashier")

        assert exc_info.value.code == "already_paid"
        assert len(billing.list_payments(treatment_id=treatment.id)) == 1

    @pytest.mark.parametrize("amount", ["0", "-10.00"])
    def test_non_positive_amount_is_rejected(self, billing, make_patient, make_treatment, amount):
        patient = make_patient()
        treatment = make_treatment(patient, "20.00")

        with pytest.raises(ValidationError):
            billing.apply_payment(treatment.id, pay(amount), created_by="cashier")

        assert billing.state.get_treatment(treatment.id).amount_paid == Decimal("0.00")
        assert billing.list_payments() == []

    def test_unknown_treatment(self, billing):
        with pytest.raises(NotFoundError):
            billing.apply_payment(uuid.uuid4(), pay("10.00"), created_by="cashier")

    def test_sub_cent_amount_is_rejected_by_schema(self):
        with pytest.raises(SchemaError):
            PaymentCreate(amount=Decimal("0.005"))
        with pytest.raises(SchemaError):
            PaymentCreate(amount=Decimal("10000000000.00"))

    def test_failed_write_leaves_state_and_database_unchanged(
        self, billing, make_patient, make_treatment, store, monkeypatch
    ):
        patient = make_patient()
        treatment = make_treatment(patient, "30.00")

        def broken_create_payment(**fields):
            raise OperationalError("INSERT INTO payments", {}, Exception("disk I/O error"))

        monkeypatch.setattr(store, "create_payment", broken_create_payment)

        with pytest.raises(BackendError):
            billing.apply_payment(treatment.id, pay("10.00"), created_by="cashier")

        assert billing.state.get_treatment(treatment.id).amount_paid == Decimal("0.00")
        assert billing.state.payments == []

        monkeypatch.undo()
        reloaded = ClinicState.load(store)
        assert reloaded.get_treatment(treatment.id).amount_paid == Decimal("0.00")
        assert reloaded.get_treatment(treatment.id).payment_status == PaymentStatus.PENDING
        assert reloaded.payments == []

    def test_payments_add_up_to_amount_paid(self, billing, make_patient, make_treatment):
        patient = make_patient()
        treatment = make_treatment(patient, "100.00")
        for amount in ("12.50", "30.00", "7.25", "80.00"):
            billing.apply_payment(treatment.id, pay(amount), created_by="cashier")

        payments = billing.list_payments(treatment_id=treatment.id)
        applied = sum((p.amount for p in payments), Decimal("0"))
        assert applied == billing.state.get_treatment(treatment.id).amount_paid == Decimal("100.00")


class TestListPayments:
    def test_newest_first_and_filters(self, billing, make_patient, make_treatment):
        alice = make_patient(name="Alice")
        bob = make_patient(name="Bob")
        t_alice = make_treatment(alice, "100.00")
        t_bob = make_treatment(bob, "100.00")

        billing.apply_payment(t_alice.id, pay("10.00", payment_date=date(2024, 3, 1)), created_by="c")
        billing.apply_payment(t_alice.id, pay("20.00", payment_date=date(2024, 3, 5)), created_by="c")
        billing.apply_payment(t_bob.id, pay("30.00", payment_date=date(2024, 3, 3)), created_by="c")

        assert [p.amount for p in billing.list_payments()] == [
            Decimal("20.00"),
            Decimal("30.00"),
            Decimal("10.00"),
        ]
        assert len(billing.list_payments(patient_id=alice.id)) == 2
        assert [p.amount for p in billing.list_payments(treatment_id=t_bob.id)] == [Decimal("30.00")]


class TestPatientBalance:
    def test_owed_sums_outstanding_across_treatments(self, billing, make_patient, make_treatment):
        """Treatments of 60.00 and 110.20, nothing paid: 170.20 owed."""
        patient = make_patient()
        make_treatment(patient, "60.00")
        make_treatment(patient, "110.20")

        balance = billing.patient_balance(patient.id)

        assert balance.treatment_count == 2
        assert balance.total_cost == Decimal("170.20")
        assert balance.total_paid == Decimal("0.00")
        assert balance.total_owed == Decimal("170.20")
        assert balance.has_outstanding_balance is True
        assert balance.payment_status == PaymentStatus.PENDING

    def test_balance_after_partial_payment(self, billing, make_patient, make_treatment):
        patient = make_patient()
        first = make_treatment(patient, "60.00")
        make_treatment(patient, "110.20")
        billing.apply_payment(first.id, pay("60.00"), created_by="cashier")

        balance = billing.patient_balance(patient.id)

        assert balance.total_paid == Decimal("60.00")
        assert balance.total_owed == Decimal("110.20")
        assert balance.payment_status == PaymentStatus.PARTIAL

    def test_fully_paid_patient(self, billing, make_patient, make_treatment):
        patient = make_patient()
        treatment = make_treatment(patient, "25.00")
        billing.apply_payment(treatment.id, pay("25.00"), created_by="cashier")

        balance = billing.patient_balance(patient.id)
        response = billing.patient_response(billing.state.get_patient(patient.id))

        assert balance.total_owed == Decimal("0.00")
        assert balance.has_outstanding_balance is False
        assert balance.payment_status == PaymentStatus.PAID
        assert response.total_outstanding == Decimal("0.00")
        assert response.has_outstanding_balance is False

    def test_patient_without_treatments(self, billing, make_patient):
        patient = make_patient()
        balance = billing.patient_balance(patient.id)
        assert balance.treatment_count == 0
        assert balance.total_owed == Decimal("0.00")
        assert balance.payment_status == PaymentStatus.PENDING

    def test_unknown_patient(self, billing):
        with pytest.raises(NotFoundError):
            billing.patient_balance(uuid.uuid4())

    def test_total_owed_is_never_negative(self, make_patient, make_treatment, billing):
        patient = make_patient()
        treatment = make_treatment(patient, "10.00")
        overpaid = treatment.model_copy(update={"amount_paid": Decimal("15.00")})
        assert total_owed([overpaid]) == Decimal("0.00")
