import pytest
from sqlalchemy import select, update

from app.models.child import Child
from app.models.reward import PendingReward, RewardAssignment, RewardType
from app.services import reward_service
from app.services.errors import NotFoundError, ServiceError
from app.services.reward_service import (
    clear_pending_reward,
    get_reward,
    redeem_reward,
    remove_reward,
    save_reward,
    update_reward,
)


def test_save_and_update_reward(db, family, make_child):
    a, b = make_child(family, name="A"), make_child(family, name="B")
    reward_id = save_reward(db, family_id=family.id, name="Cinema", points=40, type="experience",
                            assigned_to=[a.id, a.id, b.id])
    reward = get_reward(db, family.id, reward_id)
    assert sorted(x.child_id for x in reward.assignments) == sorted([a.id, b.id])

    update_reward(db, family_id=family.id, reward_id=reward_id, points=45)
    reward = get_reward(db, family.id, reward_id)
    assert reward.name == "Cinema"
    assert reward.points == 45
    assert reward.type == RewardType.EXPERIENCE
    assert sorted(x.child_id for x in reward.assignments) == sorted([a.id, b.id])


def test_update_missing_reward_fails(db, family):
    with pytest.raises(NotFoundError) as exc:
        update_reward(db, family_id=family.id, reward_id="missing", points=1)
    assert exc.value.code == "REWARD_NOT_FOUND"


def test_redeem_debits_balance_and_records_cost(db, family, make_child):
    child = make_child(family, points=60, total_points_ever=200)
    reward_id = save_reward(db, family_id=family.id, name="Sleepover", points=50, type="privilege")

    reward, redeemed_by = redeem_reward(db, family_id=family.id, child_id=child.id, reward_id=reward_id)

    assert redeemed_by.id == child.id
    assert child.points == 10
    assert child.total_points_ever == 200
    pending = db.scalars(select(PendingReward).where(PendingReward.child_id == child.id)).one()
    assert pending.points == 50
    assert pending.reward_id == reward.id

    # a later price change does not rewrite history
    update_reward(db, family_id=family.id, reward_id=reward_id, points=80)
    db.refresh(pending)
    assert pending.points == 50


def test_redeem_with_too_few_points_changes_nothing(db, family, make_child):
    child = make_child(family, points=40)
    reward_id = save_reward(db, family_id=family.id, name="Game", points=50, type="privilege")

    with pytest.raises(ServiceError) as exc:
        redeem_reward(db, family_id=family.id, child_id=child.id, reward_id=reward_id)

    assert exc.value.code == "INSUFFICIENT_POINTS"
    db.expire_all()
    assert child.points == 40
    assert db.scalars(select(PendingReward)).first() is None


def test_redeem_exact_balance_reaches_zero(db, family, make_child):
    child = make_child(family, points=50)
    reward_id = save_reward(db, family_id=family.id, name="Game", points=50, type="privilege")
    redeem_reward(db, family_id=family.id, child_id=child.id, reward_id=reward_id)
    assert child.points == 0


def test_redeem_unknown_reward_or_foreign_child(db, family, make_family, make_child):
    child = make_child(family, points=100)
    other = make_family()
    foreign_child = make_child(other, points=100)
    reward_id = save_reward(db, family_id=family.id, name="Zoo", points=10, type="experience")

    with pytest.raises(NotFoundError) as exc:
        redeem_reward(db, family_id=family.id, child_id=child.id, reward_id="missing")
    assert exc.value.code == "REWARD_NOT_FOUND"

    with pytest.raises(NotFoundError) as exc:
        redeem_reward(db, family_id=family.id, child_id=foreign_child.id, reward_id=reward_id)
    assert exc.value.code == "CHILD_NOT_FOUND"
    assert foreign_child.points == 100


def test_clear_pending_reward_twice(db, family, make_child):
    child = make_child(family, points=30)
    reward_id = save_reward(db, family_id=family.id, name="Charity", points=20, type="donation")
    redeem_reward(db, family_id=family.id, child_id=child.id, reward_id=reward_id)
    pending = db.scalars(select(PendingReward)).one()
    pending_id = pending.id

    assert clear_pending_reward(db, family.id, pending_id) is True
    assert clear_pending_reward(db, family.id, pending_id) is False
    assert child.points == 10


def test_clear_pending_reward_is_scoped_to_family(db, family, make_family, make_child):
    child = make_child(family, points=30)
    reward_id = save_reward(db, family_id=family.id, name="Charity", points=20, type="donation")
    redeem_reward(db, family_id=family.id, child_id=child.id, reward_id=reward_id)
    pending_id = db.scalars(select(PendingReward.id)).one()

    assert clear_pending_reward(db, make_family().id, pending_id) is False
    assert db.get(PendingReward, pending_id) is not None


def test_remove_reward_takes_assignments_and_pending_rows(db, family, make_child):
    child = make_child(family, points=30)
    reward_id = save_reward(db, family_id=family.id, name="Toy", points=5, type="money", assigned_to=[child.id])
    redeem_reward(db, family_id=family.id, child_id=child.id, reward_id=reward_id)

    remove_reward(db, family.id, reward_id)

    assert get_reward(db, family.id, reward_id) is None
    assert db.scalars(select(RewardAssignment)).first() is None
    assert db.scalars(select(PendingReward)).first() is None


def test_redeem_loses_race_for_the_same_points(db, session_factory, family, make_child, monkeypatch):
    child = make_child(family, points=60)
    reward_id = save_reward(db, family_id=family.id, name="Sleepover", points=50, type="privilege")
    real_get_child = reward_service.get_child

    def get_child_then_spend_elsewhere(session, family_id, child_id):
        found = real_get_child(session, family_id, child_id)
        # another request spends the balance after this one has read it
        other = session_factory()
        try:
            other.execute(update(Child).where(Child.id == child_id).values(points=Child.points - 30))
            other.commit()
        finally:
            other.close()
        return found

    monkeypatch.setattr(reward_service, "get_child", get_child_then_spend_elsewhere)

    with pytest.raises(ServiceError) as exc:
        redeem_reward(db, family_id=family.id, child_id=child.id, reward_id=reward_id)

    assert exc.value.code == "INSUFFICIENT_POINTS"
    db.expire_all()
    assert child.points == 30
    assert db.scalars(select(PendingReward)).first() is None


@pytest.mark.parametrize("stranger", ["foreign", "unknown"])
def test_reward_assignments_must_belong_to_the_family(db, family, make_family, make_child, stranger):
    own = make_child(family)
    other_id = make_child(make_family()).id if stranger == "foreign" else "missing"
    reward_id = save_reward(db, family_id=family.id, name="Ice cream", points=5, type="experience",
                            assigned_to=[own.id])

    with pytest.raises(NotFoundError) as exc:
        save_reward(db, family_id=family.id, name="Pizza", points=5, type="experience", assigned_to=[other_id])
    assert exc.value.code == "CHILD_NOT_FOUND"

    with pytest.raises(NotFoundError):
        update_reward(db, family_id=family.id, reward_id=reward_id, assigned_to=[own.id, other_id])
    reward = get_reward(db, family.id, reward_id)
    assert [a.child_id for a in reward.assignments] == [own.id]
    assert db.scalars(select(RewardAssignment.child_id)).all() == [own.id]
