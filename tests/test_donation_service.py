"""Unit tests for donation recording, donor eligibility and donation status changes."""
import json
from datetime import date, timedelta

import pytest

from app.core.exceptions import (
    DonorIneligibleError,
    InsufficientInventoryError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.models.activity_log import ActivityLog
from app.models.donation import Donation, DonationStatus
from app.models.donor import HealthStatus
from app.services import inventory_service
from app.services.donation_service import (
    create_donation,
    donation_stats,
    donation_transition_sign,
    update_donation_status,
)


def test_create_donation_credits_inventory(db, bank, make_donor, units_of):
    donor = make_donor("O+")
    today = date.today()
    donation = create_donation(db, donor.id, bank.id, "o+", 3, today)

    assert donation.status == DonationStatus.VALID
    assert donation.blood_group == "O+"
    assert donation.expiry_date == today + timedelta(days=42)
    assert units_of("O+") == 3

    db.refresh(donor)
    assert donor.last_donation_date == today
    assert db.query(ActivityLog).filter(ActivityLog.activity_type == "donation").count() == 1


def test_blood_group_mismatch(db, bank, make_donor, units_of):
    donor = make_donor("A+")
    with pytest.raises(DonorIneligibleError) as exc_info:
        create_donation(db, donor.id, bank.id, "B+", 1, date.today())
    assert exc_info.value.message == "Blood group mismatch. Donor's blood group is A+, but donation is for B+"
    assert db.query(Donation).count() == 0
    assert units_of("B+") is None


def test_not_eligible_donor_rejected(db, bank, make_donor):
    donor = make_donor("O+", health_status=HealthStatus.NOT_ELIGIBLE)
    with pytest.raises(DonorIneligibleError, match="not eligible"):
        create_donation(db, donor.id, bank.id, "O+", 1, date.today())


def test_55_day_gap_rejected(db, bank, make_donor, units_of):
    today = date.today()
    donor = make_donor("O+", last_donation_date=today - timedelta(days=55))
    with pytest.raises(DonorIneligibleError) as exc_info:
        create_donation(db, donor.id, bank.id, "O+", 1, today)
    assert "(55 days)" in exc_info.value.message
    assert units_of("O+") is None


def test_56_day_gap_accepted(db, bank, make_donor, units_of):
    today = date.today()
    donor = make_donor("O+", last_donation_date=today - timedelta(days=56))
    create_donation(db, donor.id, bank.id, "O+", 1, today)
    assert units_of("O+") == 1


def test_missing_donor_or_bank(db, bank, make_donor):
    with pytest.raises(NotFoundError, match="Donor not found"):
        create_donation(db, 999, bank.id, "O+", 1, date.today())
    donor = make_donor("O+")
    with pytest.raises(NotFoundError, match="Blood bank not found"):
        create_donation(db, donor.id, 999, "O+", 1, date.today())


def test_non_positive_units_rejected(db, bank, make_donor):
    donor = make_donor("O+")
    with pytest.raises(ValidationError):
        create_donation(db, donor.id, bank.id, "O+", 0, date.today())


def test_transition_table():
    assert donation_transition_sign(DonationStatus.VALID, DonationStatus.EXPIRED) == -1
    assert donation_transition_sign(DonationStatus.VALID, DonationStatus.USED) == -1
    assert donation_transition_sign(DonationStatus.EXPIRED, DonationStatus.VALID) == 1
    assert donation_transition_sign(DonationStatus.USED, DonationStatus.VALID) == 1
    with pytest.raises(InvalidTransitionError, match="Cannot change status from expired to used"):
        donation_transition_sign(DonationStatus.EXPIRED, DonationStatus.USED)
    with pytest.raises(InvalidTransitionError, match="Cannot change status from used to expired"):
        donation_transition_sign(DonationStatus.USED, DonationStatus.EXPIRED)
    with pytest.raises(InvalidTransitionError, match="Donation status is already valid"):
        donation_transition_sign(DonationStatus.VALID, DonationStatus.VALID)


def test_used_then_valid_restores_counter(db, bank, make_donor, units_of):
    donor = make_donor("A-")
    donation = create_donation(db, donor.id, bank.id, "A-", 3, date.today())
    assert units_of("A-") == 3

    update_donation_status(db, donation.id, "used")
    assert units_of("A-") == 0

    _, old_status = update_donation_status(db, donation.id, "valid")
    assert old_status == DonationStatus.USED
    assert units_of("A-") == 3


@pytest.mark.parametrize("path, expected_delta", [
    (["expired"], -3),
    (["used", "valid"], 0),
    (["expired", "valid", "used"], -3),
    (["used", "valid", "expired", "valid"], 0),
])
def test_transition_sequences_net_to_final_status(db, bank, make_donor, units_of, path, expected_delta):
    donor = make_donor("B+")
    donation = create_donation(db, donor.id, bank.id, "B+", 3, date.today())
    start = units_of("B+")

    for status in path:
        update_donation_status(db, donation.id, status)

    assert units_of("B+") - start == expected_delta


def test_same_status_rejected_without_inventory_change(db, bank, make_donor, units_of):
    donor = make_donor("O+")
    donation = create_donation(db, donor.id, bank.id, "O+", 2, date.today())
    with pytest.raises(InvalidTransitionError, match="Donation status is already valid"):
        update_donation_status(db, donation.id, "valid")
    assert units_of("O+") == 2


def test_expired_to_used_rejected(db, bank, make_donor, units_of):
    donor = make_donor("O+")
    donation = create_donation(db, donor.id, bank.id, "O+", 2, date.today())
    update_donation_status(db, donation.id, "expired")
    with pytest.raises(InvalidTransitionError, match="Cannot change status from expired to used"):
        update_donation_status(db, donation.id, "used")
    assert units_of("O+") == 0


def test_decrement_fails_when_units_already_reserved(db, bank, make_donor, units_of):
    donor = make_donor("O+")
    donation = create_donation(db, donor.id, bank.id, "O+", 4, date.today())
    # Another flow has taken 3 of the 4 units
    inventory_service.remove_units(db, bank.id, "O+", 3)
    db.commit()

    with pytest.raises(InsufficientInventoryError):
        update_donation_status(db, donation.id, "used")

    db.refresh(donation)
    assert donation.status == DonationStatus.VALID
    assert units_of("O+") == 1


def test_invalid_status_value(db, bank, make_donor):
    donor = make_donor("O+")
    donation = create_donation(db, donor.id, bank.id, "O+", 1, date.today())
    with pytest.raises(ValidationError, match="Must be one of: valid, expired, used"):
        update_donation_status(db, donation.id, "discarded")


def test_status_change_is_logged(db, bank, make_donor, admin):
    donor = make_donor("O+")
    donation = create_donation(db, donor.id, bank.id, "O+", 1, date.today())
    update_donation_status(db, donation.id, "used", actor_id=admin.id)

    entry = db.query(ActivityLog).filter(
        ActivityLog.user_id == admin.id,
        ActivityLog.activity_type == "donation"
    ).one()
    details = json.loads(entry.details)
    assert details["old_status"] == "valid"
    assert details["new_status"] == "used"


def test_donation_stats(db, bank, make_donor):
    today = date.today()
    create_donation(db, make_donor("O+").id, bank.id, "O+", 2, today)
    create_donation(db, make_donor("A+", email="b@example.test").id, bank.id, "A+", 5, today)

    stats = donation_stats(db)
    assert stats["totals"] == {"total_donations": 2, "total_units": 7}
    assert stats["by_month"] == [{"month": today.strftime("%Y-%m"), "total_units": 7, "donation_count": 2}]
