from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from django.db import OperationalError, connection
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from apps.core.exceptions import Conflict, Forbidden, InvalidRequest
from apps.prescriptions import services
from apps.prescriptions.exceptions import ExhaustedDispensations, Expired, RefillNotDue
from apps.prescriptions.models import Dispensation, Prescription
from apps.rbac.utils import actor_for

TODAY = date(2024, 1, 10)
NOW = timezone.make_aware(datetime(2024, 1, 10, 9, 30))


@pytest.fixture
def make_rx(patient, doctor):
    def _make(**kw):
        fields = {
            "patient": patient,
            "doctor": doctor,
            "medication_name": "Amoxicillin",
            "dosage": "500 mg",
            "frequency": "every 8 hours",
            "issue_date": date(2024, 1, 1),
            "expiration_date": date(2024, 1, 31),
        }
        fields.update(kw)
        return Prescription.objects.create(**fields)

    return _make


def dispense_as(user, rx, **kw):
    kw.setdefault("today", TODAY)
    kw.setdefault("now", NOW)
    return services.dispense(rx.pk, actor=actor_for(user), **kw)


# ---- create / update ----

@pytest.mark.django_db
def test_create_defaults_to_single_fill_for_thirty_days(doctor, patient):
    rx = services.create_prescription(
        actor_for(doctor.user),
        patient_id=patient.pk,
        medication_name="  Ibuprofen ",
        dosage="400 mg",
        frequency="every 12 hours",
        today=TODAY,
    )
    assert rx.doctor_id == doctor.pk
    assert rx.medication_name == "Ibuprofen"
    assert rx.issue_date == TODAY
    assert rx.expiration_date == TODAY + timedelta(days=30)
    assert rx.max_dispensations == 1
    assert rx.status == Prescription.ACTIVE
    assert rx.digital_signature.startswith("RX-")


@pytest.mark.django_db
def test_create_continuous_applies_rules(doctor, patient):
    rx = services.create_prescription(
        actor_for(doctor.user),
        patient_id=patient.pk,
        medication_name="Losartan",
        dosage="50 mg",
        frequency="daily",
        is_continuous=True,
        refill_every_days=10,
        treatment_end_date=date(2024, 1, 31),
        today=date(2024, 1, 1),
    )
    assert rx.max_dispensations == 4
    assert rx.expiration_date == date(2024, 1, 31)
    assert rx.next_refill_date == date(2024, 1, 11)


@pytest.mark.django_db
def test_create_unknown_patient_is_404(doctor):
    with pytest.raises(NotFound):
        services.create_prescription(
            actor_for(doctor.user), patient_id=999999, medication_name="X", dosage="1", frequency="1",
        )


@pytest.mark.django_db
def test_admin_must_name_doctor(admin_user, patient):
    with pytest.raises(ValidationError):
        services.create_prescription(
            actor_for(admin_user), patient_id=patient.pk, medication_name="X", dosage="1", frequency="1",
        )


@pytest.mark.django_db
def test_doctor_cannot_edit_someone_elses_prescription(make_rx, make_doctor):
    rx = make_rx()
    other = make_doctor()
    with pytest.raises(Forbidden):
        services.update_prescription(rx.pk, actor=actor_for(other.user), changes={"dosage": "1 g"})


@pytest.mark.django_db
def test_update_blank_values_keep_required_fields(make_rx, doctor):
    rx = make_rx()
    rx = services.update_prescription(
        rx.pk, actor=actor_for(doctor.user), changes={"dosage": "  ", "instructions": "with food"}
    )
    assert rx.dosage == "500 mg"
    assert rx.instructions == "with food"


@pytest.mark.django_db
def test_update_turning_off_continuity_clears_fields(make_rx, doctor):
    rx = make_rx(
        is_continuous=True, refill_every_days=14, treatment_end_date=date(2024, 6, 1),
        next_refill_date=date(2024, 1, 15), expiration_date=date(2024, 6, 1), max_dispensations=12,
    )
    rx = services.update_prescription(rx.pk, actor=actor_for(doctor.user), changes={"is_continuous": False})
    assert rx.refill_every_days is None
    assert rx.treatment_end_date is None
    assert rx.next_refill_date is None


@pytest.mark.django_db
def test_expiration_cannot_move_before_last_fill(make_rx, admin_user):
    rx = make_rx(current_dispensations=1, last_dispensed_at=NOW, max_dispensations=3)
    with pytest.raises(Conflict):
        services.update_prescription(
            rx.pk, actor=actor_for(admin_user), changes={"expiration_date": date(2024, 1, 5)}
        )
    rx.refresh_from_db()
    assert rx.expiration_date == date(2024, 1, 31)


@pytest.mark.django_db
def test_lowering_max_clamps_counter(make_rx, admin_user):
    rx = make_rx(current_dispensations=3, max_dispensations=3)
    rx = services.update_prescription(rx.pk, actor=actor_for(admin_user), changes={"max_dispensations": 2})
    assert rx.current_dispensations == 2


# ---- dispense: pharmacy ----

@pytest.mark.django_db
def test_pharmacy_dispense_appends_ledger_row(make_rx, pharmacy):
    rx = make_rx()
    record = dispense_as(pharmacy.user, rx, quantity=Decimal("21"), unit="tablet")

    assert isinstance(record, Dispensation)
    assert record.dispensation_number == 1
    assert record.actor_type == Dispensation.PHARMACY
    assert record.pharmacy_id == pharmacy.pk
    rx.refresh_from_db()
    assert rx.current_dispensations == 1
    assert rx.status == Prescription.USED
    assert rx.last_dispensed_at == NOW


@pytest.mark.django_db
def test_second_fill_of_single_prescription_is_exhausted(make_rx, pharmacy):
    rx = make_rx()
    dispense_as(pharmacy.user, rx, quantity=Decimal("1"))
    with pytest.raises(ExhaustedDispensations):
        dispense_as(pharmacy.user, rx, quantity=Decimal("1"))
    assert rx.dispensations.count() == 1


@pytest.mark.django_db
def test_expired_prescription_is_not_dispensed(make_rx, pharmacy):
    rx = make_rx(expiration_date=TODAY - timedelta(days=1))
    with pytest.raises(Expired):
        dispense_as(pharmacy.user, rx, quantity=Decimal("5"))
    rx.refresh_from_db()
    assert rx.current_dispensations == 0
    assert not Dispensation.objects.filter(prescription=rx).exists()


@pytest.mark.django_db
def test_pharmacy_needs_positive_quantity(make_rx, pharmacy):
    with pytest.raises(ValidationError):
        dispense_as(pharmacy.user, make_rx(), quantity=Decimal("0"))


@pytest.mark.django_db
def test_inactive_pharmacy_is_forbidden(make_rx, make_pharmacy):
    closed = make_pharmacy(is_active=False)
    with pytest.raises(Forbidden):
        dispense_as(closed.user, make_rx(), quantity=Decimal("1"))


@pytest.mark.django_db
def test_pharmacy_login_without_profile_is_forbidden(make_rx, make_user):
    with pytest.raises(Forbidden):
        dispense_as(make_user("pharmacy"), make_rx(), quantity=Decimal("1"))


@pytest.mark.django_db
def test_continuous_course_runs_to_completion(doctor, patient, pharmacy):
    rx = services.create_prescription(
        actor_for(doctor.user),
        patient_id=patient.pk,
        medication_name="Metformin",
        dosage="850 mg",
        frequency="twice daily",
        is_continuous=True,
        refill_every_days=10,
        treatment_end_date=date(2024, 1, 31),
        today=date(2024, 1, 1),
    )

    with pytest.raises(RefillNotDue):
        dispense_as(pharmacy.user, rx, quantity=Decimal("60"), today=date(2024, 1, 5))

    dispense_as(pharmacy.user, rx, quantity=Decimal("60"), today=date(2024, 1, 11))
    rx.refresh_from_db()
    assert rx.next_refill_date == date(2024, 1, 21)

    dispense_as(pharmacy.user, rx, quantity=Decimal("60"), today=date(2024, 1, 21))
    rx.refresh_from_db()
    assert rx.next_refill_date == date(2024, 1, 31)

    dispense_as(pharmacy.user, rx, quantity=Decimal("60"), today=date(2024, 1, 31))
    rx.refresh_from_db()
    assert rx.status == Prescription.COMPLETED
    assert rx.next_refill_date is None
    assert list(rx.dispensations.values_list("dispensation_number", flat=True)) == [1, 2, 3]


# ---- dispense: staff on behalf of a pharmacy ----

@pytest.mark.django_db
def test_secretary_dispenses_for_named_pharmacy(make_rx, secretary, pharmacy):
    record = dispense_as(secretary, make_rx(), pharmacy_id=pharmacy.pk, quantity=Decimal("2"))
    assert record.actor_type == Dispensation.STAFF
    assert record.pharmacy_id == pharmacy.pk
    assert record.performed_by_id == secretary.pk


@pytest.mark.django_db
def test_doctor_cannot_dispense_for_pharmacy(make_rx, doctor, pharmacy):
    with pytest.raises(Forbidden):
        dispense_as(doctor.user, make_rx(), pharmacy_id=pharmacy.pk, quantity=Decimal("2"))


@pytest.mark.django_db
def test_staff_dispense_unknown_pharmacy_is_404(make_rx, admin_user):
    with pytest.raises(NotFound):
        dispense_as(admin_user, make_rx(), pharmacy_id=999999, quantity=Decimal("2"))


# ---- dispense: patient self-report ----

@pytest.mark.django_db
def test_self_report_clamps_and_records_rows(make_rx, patient):
    rx = make_rx(max_dispensations=2)
    result = dispense_as(patient.user, rx, current_dispensations=5)

    assert isinstance(result, Prescription)
    assert result.current_dispensations == 2
    assert result.status == Prescription.USED
    rows = list(rx.dispensations.all())
    assert [r.dispensation_number for r in rows] == [1, 2]
    assert {r.actor_type for r in rows} == {Dispensation.PATIENT_SELF_REPORT}
    assert all(r.pharmacy_id is None for r in rows)


@pytest.mark.django_db
def test_self_report_cannot_lower_the_counter(make_rx, patient, pharmacy):
    rx = make_rx(max_dispensations=3)
    dispense_as(patient.user, rx, current_dispensations=2)

    with pytest.raises(ValidationError) as exc:
        dispense_as(patient.user, rx, current_dispensations=0)
    assert "current_dispensations" in exc.value.detail

    dispense_as(pharmacy.user, rx, quantity=Decimal("1"))

    rx.refresh_from_db()
    assert rx.current_dispensations == 3
    numbers = list(rx.dispensations.order_by("dispensation_number").values_list("dispensation_number", flat=True))
    assert numbers == [1, 2, 3]


@pytest.mark.django_db
def test_self_report_past_expiration_marks_expired(make_rx, patient):
    rx = make_rx(max_dispensations=3, expiration_date=TODAY - timedelta(days=2))
    result = dispense_as(patient.user, rx, current_dispensations=1)
    assert result.status == Prescription.EXPIRED


@pytest.mark.django_db
def test_self_report_on_another_patients_prescription(make_rx, make_patient):
    stranger = make_patient()
    with pytest.raises(Forbidden):
        dispense_as(stranger.user, make_rx(), current_dispensations=1)


@pytest.mark.django_db
def test_counter_report_from_non_patient_is_forbidden(make_rx, secretary):
    with pytest.raises(Forbidden):
        dispense_as(secretary, make_rx(), current_dispensations=1)


@pytest.mark.django_db
def test_unrecognized_payload(make_rx, doctor):
    with pytest.raises(InvalidRequest):
        dispense_as(doctor.user, make_rx())


@pytest.mark.django_db
def test_unknown_prescription_is_404(pharmacy):
    with pytest.raises(NotFound):
        services.dispense(424242, actor=actor_for(pharmacy.user), quantity=Decimal("1"))


# ---- search ----

@pytest.mark.django_db
def test_pharmacy_search_requires_document(pharmacy):
    with pytest.raises(ValidationError):
        services.search(actor_for(pharmacy.user))


@pytest.mark.django_db
def test_search_by_document_ignores_separators(make_rx, make_patient, pharmacy):
    owner = make_patient(document_id="12345678")
    mine = make_rx(patient=owner)
    make_rx()
    found = services.search(actor_for(pharmacy.user), patient_document_id="1234-567 8", today=TODAY)
    assert list(found) == [mine]


@pytest.mark.django_db
def test_status_filter_is_inverse_of_projection(make_rx, admin_user):
    active = make_rx()
    used = make_rx(current_dispensations=1)
    expired = make_rx(expiration_date=date(2024, 1, 5))
    cancelled = make_rx(status=Prescription.HIDDEN)
    actor = actor_for(admin_user)

    def ids(label):
        return set(services.search(actor, status=label, today=TODAY).values_list("id", flat=True))

    assert ids("active") == {active.pk}
    assert ids("used") == ids("dispensed") == {used.pk}
    assert ids("expired") == {expired.pk}
    assert ids("cancelled") == {cancelled.pk}
    with pytest.raises(ValidationError):
        ids("bogus")


@pytest.mark.django_db
def test_dispense_blocker_reports_codes(make_rx):
    assert services.dispense_blocker(make_rx(), today=TODAY) is None
    assert services.dispense_blocker(make_rx(expiration_date=date(2024, 1, 2)), today=TODAY) == "expired"
    assert services.dispense_blocker(make_rx(status=Prescription.PAUSED), today=TODAY) == "invalid_state"


# ---- row locking ----

def _refuse_prescription_selects(execute, sql, params, many, context):
    # what a NOWAIT lock held by another transaction looks like to the caller
    if sql.lstrip().upper().startswith("SELECT") and 'FROM "prescriptions_prescription"' in sql:
        raise OperationalError('could not obtain lock on row in relation "prescriptions_prescription"')
    return execute(sql, params, many, context)


@pytest.mark.django_db
def test_locked_prescription_cannot_be_dispensed(make_rx, pharmacy):
    rx = make_rx(max_dispensations=2)
    actor = actor_for(pharmacy.user)

    with pytest.raises(Conflict):
        with connection.execute_wrapper(_refuse_prescription_selects):
            services.dispense(rx.pk, actor=actor, quantity=Decimal("1"), today=TODAY, now=NOW)

    rx.refresh_from_db()
    assert rx.current_dispensations == 0
    assert rx.last_dispensed_at is None
    assert not Dispensation.objects.filter(prescription=rx).exists()


@pytest.mark.django_db
def test_locked_prescription_cannot_be_self_reported(make_rx, patient):
    rx = make_rx(max_dispensations=2)

    with pytest.raises(Conflict):
        with connection.execute_wrapper(_refuse_prescription_selects):
            dispense_as(patient.user, rx, current_dispensations=1)

    rx.refresh_from_db()
    assert rx.current_dispensations == 0
    assert not Dispensation.objects.filter(prescription=rx).exists()


@pytest.mark.django_db
def test_locked_prescription_cannot_be_updated(make_rx, doctor):
    rx = make_rx()

    with pytest.raises(Conflict):
        with connection.execute_wrapper(_refuse_prescription_selects):
            services.update_prescription(
                rx.pk, actor=actor_for(doctor.user), changes={"dosage": "250 mg"}
            )

    rx.refresh_from_db()
    assert rx.dosage == "500 mg"
