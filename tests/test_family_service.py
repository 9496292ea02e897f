from datetime import datetime, timezone

import pytest

from app.models.family import Family, SubscriptionStatus
from app.models.reward import PendingReward
from app.services import family_service
from app.services.errors import ConflictError, ServiceError
from app.services.family_service import (
    authenticate_family,
    create_family,
    get_family_by_code,
    load_family_with_relations,
    serialize_family,
    update_family_subscription,
    update_recovery_email,
)
from app.services.reward_service import redeem_reward, save_reward

from .conftest import PASSWORD


def test_create_family_normalizes_email_and_hashes_password(db):
    fam = create_family(db, family_name="De Vries", city="Gouda", email="  Ouder@Example.COM ", password=PASSWORD)
    assert fam.email == "ouder@example.com"
    assert fam.password_hash != PASSWORD
    assert len(fam.family_code) == 6
    assert fam.subscription_status == SubscriptionStatus.INACTIVE


def test_duplicate_email_is_refused(db, family):
    with pytest.raises(ConflictError) as exc:
        create_family(db, family_name="Other", city="Delft", email="OUDER@example.com", password=PASSWORD)
    assert exc.value.code == "EMAIL_IN_USE"
    assert db.query(Family).count() == 1


def test_family_code_generation_retries_on_collision(db, family, monkeypatch):
    codes = iter([family.family_code, family.family_code, "NEWCDE"])
    monkeypatch.setattr(family_service, "generate_family_code", lambda: next(codes))
    other = create_family(db, family_name="Bakker", city="Ede", email="bakker@example.com", password=PASSWORD)
    assert other.family_code == "NEWCDE"


def test_family_code_generation_gives_up(db, family, monkeypatch):
    monkeypatch.setattr(family_service, "generate_family_code", lambda: family.family_code)
    with pytest.raises(ServiceError) as exc:
        create_family(db, family_name="Bakker", city="Ede", email="bakker@example.com", password=PASSWORD)
    assert exc.value.code == "FAMILY_CODE_UNAVAILABLE"


def test_authenticate_family(db, family):
    assert authenticate_family(db, "OUDER@example.com", PASSWORD).id == family.id
    assert authenticate_family(db, "ouder@example.com", "wrong-password") is None
    assert authenticate_family(db, "nobody@example.com", PASSWORD) is None


def test_lookup_by_code_ignores_case(db, family):
    assert get_family_by_code(db, family.family_code.lower()).id == family.id
    assert get_family_by_code(db, "ZZZZZZ") is None


def test_load_missing_family_is_none(db):
    assert load_family_with_relations(db, "does-not-exist") is None


def test_serialized_family_uses_camel_case(db, family, make_child):
    child = make_child(family, name="Noor", points=30, total_points_ever=30)
    reward_id = save_reward(db, family_id=family.id, name="Ice cream", points=10, type="experience", assigned_to=[child.id])
    redeem_reward(db, family_id=family.id, child_id=child.id, reward_id=reward_id)

    data = serialize_family(load_family_with_relations(db, family.id)).dump()
    assert data["familyCode"] == family.family_code
    assert data["subscription"]["status"] == "inactive"
    assert data["children"][0]["totalPointsEver"] == 30
    assert data["children"][0]["points"] == 20
    assert data["rewards"][0]["assignedTo"] == [child.id]
    pending = data["pendingRewards"][0]
    assert pending["childName"] == "Noor"
    assert pending["rewardName"] == "Ice cream"
    assert pending["points"] == 10
    assert pending["redeemedAt"].endswith("Z")


def test_pending_reward_names_degrade_to_empty_string():
    fam = Family(
        id="f1",
        family_code="ABCDEF",
        family_name="Jansen",
        city="Utrecht",
        email="ouder@example.com",
        password_hash="x",
    )
    fam.pending_rewards = [
        PendingReward(id="p1", child_id="gone", reward_id="gone-too", points=5,
                      redeemed_at=datetime(2024, 5, 1, tzinfo=timezone.utc)),
    ]
    data = serialize_family(fam).dump()
    assert data["pendingRewards"][0]["childName"] == ""
    assert data["pendingRewards"][0]["rewardName"] == ""
    assert data["pendingRewards"][0]["redeemedAt"] == "2024-05-01T00:00:00Z"


def test_update_recovery_email(db, family):
    update_recovery_email(db, family.id, "Backup@Example.com")
    assert load_family_with_relations(db, family.id).recovery_email == "backup@example.com"
    assert update_recovery_email(db, "missing", "x@example.com") is None


def test_subscription_update_overwrites_every_field(db, family):
    paid = datetime(2024, 3, 1, tzinfo=timezone.utc)
    update_family_subscription(db, family.id, plan="premium", status="active", interval="yearly",
                               last_payment_at=paid, order_id="order-1")
    fam = update_family_subscription(db, family.id, plan="premium", status="past_due")
    assert fam.subscription_status == SubscriptionStatus.PAST_DUE
    assert fam.subscription_interval is None
    assert fam.subscription_last_payment_at is None
    assert fam.subscription_order_id is None
