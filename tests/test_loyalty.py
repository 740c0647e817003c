import asyncio
from datetime import date, datetime, timedelta

import pytest
from fastapi import HTTPException

from venuehq.domain.loyalty.config import (
    achievement_met,
    build_attendance_stats,
    calculate_event_points,
    generate_redemption_code,
    milestone_bonus,
    next_tier,
    tier_for_events,
    tier_meets,
)
from venuehq.domain.loyalty.schemas import LoyaltyEventBase, PointsAdjustment
from venuehq.domain.loyalty.service import LoyaltyService, expire_redemption_codes, seed_loyalty
from venuehq.models_loyalty import LoyaltyPointTransaction, LoyaltyReward

NOW = datetime(2026, 10, 17, 20, 0)


def test_points_scale_with_tier_and_event_type():
    assert calculate_event_points("member", "quiz") == 50
    assert calculate_event_points("bronze", "karaoke") == 120
    assert calculate_event_points("silver", "drag") == 225
    assert calculate_event_points("platinum", "tasting") == 600
    assert calculate_event_points("unknown", "mystery") == 50


def test_tiers_follow_lifetime_events():
    assert tier_for_events(0) == "member"
    assert tier_for_events(4) == "member"
    assert tier_for_events(5) == "bronze"
    assert tier_for_events(39) == "gold"
    assert tier_for_events(400) == "platinum"
    assert next_tier("gold") == "platinum"
    assert next_tier("platinum") is None
    assert tier_meets("silver", "bronze") is True
    assert tier_meets("member", "bronze") is False
    assert tier_meets("member", None) is True


def test_milestones_only_on_exact_counts():
    assert milestone_bonus(10) == 100
    assert milestone_bonus(11) == 0
    assert milestone_bonus(100) == 1000


def test_redemption_code_uses_category_prefix():
    code = generate_redemption_code("drink")
    assert code.startswith("DRK")
    assert len(code) == 7
    assert code[3:].isdigit()
    assert generate_redemption_code("unknown").startswith("SPL")


def test_attendance_stats_drive_achievements():
    attendance = [
        (date(2026, 6, 1), "quiz"),
        (date(2026, 7, 3), "bingo"),
        (date(2026, 7, 10), "quiz"),
        (date(2026, 8, 14), "drag"),
        (date(2026, 8, 21), "quiz"),
    ]
    stats = build_attendance_stats(attendance, date_of_birth=date(1990, 7, 10))

    assert stats["consecutive_months"] == 3
    assert stats["birthday_attended"] is True
    assert achievement_met({"type": "consecutive_months", "value": 3}, stats)
    assert achievement_met({"type": "event_type_count", "event_type": "quiz", "value": 3}, stats)
    assert not achievement_met({"type": "unique_event_types", "value": 5}, stats)
    assert achievement_met({"type": "seasonal_attendance", "months": [6, 7, 8], "value": 5}, stats)
    assert not achievement_met({"type": "monthly_attendance", "month": 12, "value": 1}, stats)
    assert achievement_met({"type": "birthday_attendance"}, stats)
    assert not achievement_met({"type": "something_new"}, stats)


def test_streak_breaks_on_a_missed_month():
    stats = build_attendance_stats([(date(2026, 1, 5), "quiz"), (date(2026, 3, 5), "quiz")])
    assert stats["consecutive_months"] == 1
    assert stats["birthday_attended"] is False


@pytest.fixture()
def loyalty(db):
    seed_loyalty(db)
    return LoyaltyService(db)


@pytest.fixture()
def member(loyalty, make_customer, sent_sms):
    customer = make_customer(first_name="Robin")
    return asyncio.run(loyalty.enrol_member(customer.id))


def make_event(loyalty, admin, name="Quiz Night", event_type="quiz", event_date=date(2026, 10, 14)):
    return loyalty.create_event(LoyaltyEventBase(name=name, event_type=event_type, event_date=event_date), admin)


def reward_named(db, name):
    return db.query(LoyaltyReward).filter(LoyaltyReward.name == name).one()


def test_enrolment_awards_welcome_bonus(loyalty, member, sent_sms, db):
    assert member.available_points == 50
    assert member.lifetime_points == 50
    assert member.tier == "member"
    assert "You've earned 50 welcome points" in sent_sms[0]["body"]

    with pytest.raises(HTTPException) as exc:
        asyncio.run(loyalty.enrol_member(member.customer_id))
    assert exc.value.status_code == 409

    ledger = db.query(LoyaltyPointTransaction).filter(LoyaltyPointTransaction.member_id == member.id).all()
    assert [(row.points, row.transaction_type, row.balance_after) for row in ledger] == [(50, "bonus", 50)]


def test_opted_out_member_is_not_texted(loyalty, make_customer, sent_sms):
    customer = make_customer(sms_opt_in=False)
    asyncio.run(loyalty.enrol_member(customer.id))
    assert sent_sms == []


def test_first_check_in_unlocks_first_timer(loyalty, member, admin, sent_sms):
    event = make_event(loyalty, admin)
    result = asyncio.run(loyalty.check_in(member.id, event.id, admin))

    assert result == {
        "points_earned": 50,
        "bonus_points": 25,
        "new_balance": 125,
        "tier": "member",
        "tier_upgraded": False,
        "achievements_unlocked": ["First Timer"],
    }
    assert member.last_visit_date == date(2026, 10, 14)
    assert "Thanks for coming to Quiz Night" in sent_sms[1]["body"]
    assert "Achievement unlocked: First Timer" in sent_sms[2]["body"]

    with pytest.raises(HTTPException) as exc:
        asyncio.run(loyalty.check_in(member.id, event.id, admin))
    assert exc.value.status_code == 409
    assert exc.value.detail == "Already checked in to this event"


def test_tenth_event_pays_milestone_and_upgrades_tier(loyalty, member, admin, db, sent_sms):
    member.lifetime_events = 9
    db.commit()

    event = make_event(loyalty, admin, name="Drag Brunch", event_type="drag")
    result = asyncio.run(loyalty.check_in(member.id, event.id, admin))

    # Points use the tier held before the upgrade
    assert result["points_earned"] == 75
    assert result["tier"] == "silver"
    assert result["tier_upgraded"] is True
    assert result["bonus_points"] == 100 + 25
    assert result["new_balance"] == 50 + 75 + 100 + 25
    assert any("You're now a Silver VIP member" in m["body"] for m in sent_sms)

    summary = loyalty.get_member_summary(member.id)
    assert summary["next_tier"] == "gold"
    assert summary["events_to_next_tier"] == 10
    assert [a["key"] for a in summary["achievements"]] == ["first_timer"]


def test_reward_redemption_and_code_use(loyalty, member, admin, sent_sms, db):
    loyalty.adjust_points(member.id, PointsAdjustment(points=1000, reason="Goodwill"), admin)
    drink = reward_named(db, "House Drink")

    redemption = asyncio.run(loyalty.redeem_reward(member.id, drink.id, now=NOW))
    assert redemption.code.startswith("DRK")
    assert redemption.status == "pending"
    assert redemption.expires_at == NOW + timedelta(minutes=5)
    assert loyalty.get_member(member.id).available_points == 650
    assert f"is {redemption.code}" in sent_sms[-1]["body"]

    used = loyalty.redeem_code(redemption.code.lower(), admin, now=NOW + timedelta(minutes=2))
    assert used.status == "redeemed"
    assert used.redeemed_by == admin.id

    with pytest.raises(HTTPException) as exc:
        loyalty.redeem_code(redemption.code, admin, now=NOW + timedelta(minutes=3))
    assert exc.value.detail == "Code already used"

    with pytest.raises(HTTPException) as exc:
        loyalty.redeem_code("XXX0000", admin, now=NOW)
    assert exc.value.status_code == 404
    assert exc.value.detail == "Invalid code"


def test_late_code_is_expired_and_refunded(loyalty, member, admin, db, sent_sms):
    loyalty.adjust_points(member.id, PointsAdjustment(points=500, reason="Goodwill"), admin)
    snack = reward_named(db, "House Snack")
    redemption = asyncio.run(loyalty.redeem_reward(member.id, snack.id, now=NOW))
    assert loyalty.get_member(member.id).available_points == 250

    with pytest.raises(HTTPException) as exc:
        loyalty.redeem_code(redemption.code, admin, now=NOW + timedelta(minutes=6))
    assert exc.value.detail == "Code expired"

    db.refresh(redemption)
    assert redemption.status == "expired"
    assert loyalty.get_member(member.id).available_points == 550


def test_expiry_sweep_refunds_pending_codes(loyalty, member, admin, db, sent_sms):
    loyalty.adjust_points(member.id, PointsAdjustment(points=500, reason="Goodwill"), admin)
    snack = reward_named(db, "House Snack")
    redemption = asyncio.run(loyalty.redeem_reward(member.id, snack.id, now=NOW))

    assert expire_redemption_codes(db, now=NOW + timedelta(minutes=4)) == 0
    assert expire_redemption_codes(db, now=NOW + timedelta(minutes=10)) == 1
    assert expire_redemption_codes(db, now=NOW + timedelta(minutes=20)) == 0

    db.refresh(redemption)
    assert redemption.status == "expired"
    refunds = (
        db.query(LoyaltyPointTransaction)
        .filter(LoyaltyPointTransaction.transaction_type == "refunded")
        .all()
    )
    assert [row.points for row in refunds] == [300]


def test_rewards_explain_why_they_are_blocked(loyalty, member, db):
    rewards = {r["name"]: r for r in loyalty.get_available_rewards(member.id, now=NOW)}
    assert rewards["House Snack"]["available"] is False
    assert rewards["House Snack"]["reason"] == "Insufficient points"
    assert rewards["Premium Drink"]["reason"] == "This reward requires Bronze VIP tier or above"

    with pytest.raises(HTTPException) as exc:
        asyncio.run(loyalty.redeem_reward(member.id, reward_named(db, "Premium Drink").id, now=NOW))
    assert exc.value.status_code == 400


def test_daily_member_limit(loyalty, member, admin, db, sent_sms):
    loyalty.adjust_points(member.id, PointsAdjustment(points=2000, reason="Goodwill"), admin)
    snack = reward_named(db, "House Snack")
    for minute in range(3):
        asyncio.run(loyalty.redeem_reward(member.id, snack.id, now=NOW + timedelta(minutes=minute)))

    with pytest.raises(HTTPException) as exc:
        asyncio.run(loyalty.redeem_reward(member.id, snack.id, now=NOW + timedelta(minutes=3)))
    assert exc.value.detail == "Daily redemption limit reached"

    # A new day resets the count
    asyncio.run(loyalty.redeem_reward(member.id, snack.id, now=NOW + timedelta(days=1)))


def test_adjustment_cannot_go_negative(loyalty, member, admin):
    with pytest.raises(HTTPException) as exc:
        loyalty.adjust_points(member.id, PointsAdjustment(points=-51, reason="Correction"), admin)
    assert exc.value.detail == "Points balance cannot go negative"

    member = loyalty.adjust_points(member.id, PointsAdjustment(points=-50, reason="Correction"), admin)
    assert member.available_points == 0
    assert member.lifetime_points == 50


def test_deleted_reward_is_only_deactivated(loyalty, admin, db):
    snack = reward_named(db, "House Snack")
    loyalty.delete_reward(snack.id, admin)
    assert db.get(LoyaltyReward, snack.id).is_active is False
    assert "House Snack" not in [r.name for r in loyalty.list_rewards()]
    assert "House Snack" in [r.name for r in loyalty.list_rewards(include_inactive=True)]


def test_event_with_check_ins_cannot_be_deleted(loyalty, member, admin, sent_sms):
    event = make_event(loyalty, admin)
    asyncio.run(loyalty.check_in(member.id, event.id, admin))
    with pytest.raises(HTTPException) as exc:
        loyalty.delete_event(event.id, admin)
    assert exc.value.detail == "Events with check-ins cannot be deleted"


def test_loyalty_api_enrol_and_summary(client, admin_headers, make_customer, sent_sms, loyalty):
    customer = make_customer(first_name="Jo")
    response = client.post("/loyalty/members", json={"customer_id": customer.id}, headers=admin_headers)
    assert response.status_code == 201
    member_id = response.json()["id"]
    assert response.json()["available_points"] == 50

    summary = client.get(f"/loyalty/members/{member_id}", headers=admin_headers).json()
    assert summary["customer_name"] == "Jo Guest"
    assert summary["tier_name"] == "VIP Member"
    assert summary["next_tier"] == "bronze"
    assert summary["events_to_next_tier"] == 5

    bad = client.post(
        f"/loyalty/members/{member_id}/adjust", json={"points": 0, "reason": "Oops"}, headers=admin_headers
    )
    assert bad.status_code == 422
