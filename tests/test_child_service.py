import pytest
from sqlalchemy import select

from app.models.child import Child
from app.models.chore import ChoreAssignment, ChoreStatus
from app.models.reward import PendingReward, RewardAssignment
from app.services.child_service import (
    ensure_family_children,
    get_child,
    remove_child,
    save_child,
    update_child,
    update_child_points,
)
from app.services.chore_service import get_chore, save_chore, submit_chore_for_approval
from app.services.errors import NotFoundError
from app.services.reward_service import redeem_reward, save_reward


def test_save_child_inserts_then_updates(db, family):
    child_id = save_child(db, family_id=family.id, name="Sam", pin="1111", avatar="lion")
    save_child(db, family_id=family.id, child_id=child_id, name="Samuel", pin="2222", avatar="tiger")
    db.expire_all()
    child = get_child(db, family.id, child_id)
    assert (child.name, child.pin, child.avatar) == ("Samuel", "2222", "tiger")
    assert child.points == 0
    assert child.total_points_ever == 0


def test_update_child_keeps_omitted_fields(db, family, make_child):
    child = make_child(family, name="Sam", pin="1234", avatar="lion")
    update_child(db, family_id=family.id, child_id=child.id, name="Sammy")
    assert (child.name, child.pin, child.avatar) == ("Sammy", "1234", "lion")


def test_update_child_of_other_family_fails(db, family, make_family, make_child):
    child = make_child(family)
    other = make_family()
    with pytest.raises(NotFoundError) as exc:
        update_child(db, family_id=other.id, child_id=child.id, name="Hacked")
    assert exc.value.code == "CHILD_NOT_FOUND"


def test_remove_child_reverts_submitted_chore_and_cleans_up(db, family, make_child):
    child = make_child(family, points=50)
    sibling = make_child(family, name="Lot")
    chore_id = save_chore(db, family_id=family.id, name="Dishes", points=5, assigned_to=[child.id, sibling.id])
    submit_chore_for_approval(db, family_id=family.id, chore_id=chore_id, child_id=child.id,
                              emotion="happy", photo_url="https://img.example/1.jpg")
    reward_id = save_reward(db, family_id=family.id, name="Movie", points=20, type="experience", assigned_to=[child.id])
    redeem_reward(db, family_id=family.id, child_id=child.id, reward_id=reward_id)

    assert remove_child(db, family.id, child.id) is True

    db.expire_all()
    chore = get_chore(db, family.id, chore_id)
    assert chore.status == ChoreStatus.AVAILABLE
    assert chore.submitted_by_child_id is None
    assert chore.submitted_at is None
    assert chore.emotion is None
    assert chore.photo_url is None
    assert [a.child_id for a in chore.assignments] == [sibling.id]
    assert db.scalars(select(RewardAssignment).where(RewardAssignment.child_id == child.id)).first() is None
    assert db.scalars(select(PendingReward).where(PendingReward.child_id == child.id)).first() is None
    assert db.scalars(select(ChoreAssignment).where(ChoreAssignment.child_id == child.id)).first() is None
    assert db.get(Child, child.id) is None


def test_remove_child_of_other_family_is_a_noop(db, family, make_family, make_child):
    child = make_child(family)
    other = make_family()
    assert remove_child(db, other.id, child.id) is False
    assert get_child(db, family.id, child.id) is not None


def test_point_delta_only_adds_positive_amounts_to_lifetime_total(db, family, make_child):
    child = make_child(family, points=10, total_points_ever=100)
    assert update_child_points(db, family.id, child.id, 15)
    assert update_child_points(db, family.id, child.id, -5)
    db.commit()
    assert child.points == 20
    assert child.total_points_ever == 115


def test_point_delta_is_scoped_to_family(db, family, make_family, make_child):
    child = make_child(family, points=10, total_points_ever=10)
    other = make_family()
    assert update_child_points(db, other.id, child.id, 50) is False
    db.commit()
    db.expire_all()
    assert (child.points, child.total_points_ever) == (10, 10)


def test_credits_from_separate_sessions_both_land(db, session_factory, family, make_child):
    child = make_child(family, points=0, total_points_ever=0)
    first, second = session_factory(), session_factory()
    try:
        # both sessions have read the same starting balance before crediting
        assert first.get(Child, child.id).points == 0
        assert second.get(Child, child.id).points == 0
        update_child_points(first, family.id, child.id, 10)
        update_child_points(second, family.id, child.id, 7)
        first.commit()
        second.commit()
    finally:
        first.close()
        second.close()

    db.expire_all()
    assert child.points == 17
    assert child.total_points_ever == 17


def test_ensure_family_children(db, family, make_family, make_child):
    a, b = make_child(family, name="A"), make_child(family, name="B")
    foreign = make_child(make_family(), name="X")

    assert ensure_family_children(db, family.id, [b.id, a.id, b.id]) == [b.id, a.id]
    assert ensure_family_children(db, family.id, []) == []
    for ids in ([a.id, foreign.id], ["missing"]):
        with pytest.raises(NotFoundError) as exc:
            ensure_family_children(db, family.id, ids)
        assert exc.value.code == "CHILD_NOT_FOUND"
