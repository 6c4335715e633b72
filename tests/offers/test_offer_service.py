"""Tests for OfferService: availability check, conditional decrement, owner operations."""
from decimal import Decimal

import pytest

from groupshare.core.errors import (
    AuthorizationError,
    ExhaustedError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from groupshare.models import Group, Offer
from groupshare.services.offers.service import OfferService


class TestReserveSlot:
    def test_active_offer_with_slots(self, db, make_user, make_offer):
        offer = make_offer(make_user("Owner"), slots_total=2)
        reserved = OfferService(db).reserve_slot(offer.id)
        assert reserved.id == offer.id
        db.refresh(offer)
        assert offer.slots_available == 2

    def test_unknown_offer(self, db):
        with pytest.raises(NotFoundError):
            OfferService(db).reserve_slot("missing")

    def test_no_slots_left(self, db, make_user, make_offer):
        offer = make_offer(make_user("Owner"), slots_total=1, slots_available=0)
        with pytest.raises(UnavailableError):
            OfferService(db).reserve_slot(offer.id)

    def test_inactive_offer(self, db, make_user, make_offer):
        offer = make_offer(make_user("Owner"), slots_total=3, status="inactive")
        with pytest.raises(UnavailableError):
            OfferService(db).reserve_slot(offer.id)


class TestDecrementSlot:
    def test_decrements_by_one(self, db, make_user, make_offer):
        offer = make_offer(make_user("Owner"), slots_total=2)
        OfferService(db).decrement_slot(offer.id)
        db.commit()
        db.refresh(offer)
        assert offer.slots_available == 1

    def test_last_slot_then_exhausted(self, db, make_user, make_offer):
        offer = make_offer(make_user("Owner"), slots_total=1)
        svc = OfferService(db)
        svc.decrement_slot(offer.id)
        db.commit()
        with pytest.raises(ExhaustedError):
            svc.decrement_slot(offer.id)
        db.rollback()
        db.refresh(offer)
        assert offer.slots_available == 0

    def test_unknown_offer(self, db):
        with pytest.raises(NotFoundError):
            OfferService(db).decrement_slot("missing")

    def test_never_goes_negative(self, db, make_user, make_offer):
        offer = make_offer(make_user("Owner"), slots_total=2)
        svc = OfferService(db)
        results = []
        for _ in range(5):
            try:
                svc.decrement_slot(offer.id)
                results.append("ok")
            except ExhaustedError:
                results.append("exhausted")
        db.commit()
        db.refresh(offer)
        assert results == ["ok", "ok", "exhausted", "exhausted", "exhausted"]
        assert offer.slots_available == 0


class TestOwnerOperations:
    def _group(self, db, owner):
        group = Group(owner_id=owner.id, name="Family plan")
        db.add(group)
        db.commit()
        return group

    def test_create_offer(self, db, make_user):
        owner = make_user("Owner")
        group = self._group(db, owner)
        offer = OfferService(db).create_offer(
            owner.id, group.id, "spotify", 4, "12.50", "invite link in the group chat"
        )
        assert offer.slots_total == 4
        assert offer.slots_available == 4
        assert offer.price_per_slot == Decimal("12.50")
        assert offer.currency == "PLN"
        assert offer.status == "active"
        instructions = OfferService(db).get_access_instructions(offer.id)
        assert instructions.instructions == "invite link in the group chat"

    @pytest.mark.parametrize("slots_total", [0, -1, "3", 2.5, True])
    def test_create_rejects_bad_slots(self, db, make_user, slots_total):
        owner = make_user("Owner")
        group = self._group(db, owner)
        with pytest.raises(ValidationError):
            OfferService(db).create_offer(owner.id, group.id, "spotify", slots_total, "10", "x")

    @pytest.mark.parametrize("price", [0, "-1", "abc", "NaN"])
    def test_create_rejects_bad_price(self, db, make_user, price):
        owner = make_user("Owner")
        group = self._group(db, owner)
        with pytest.raises(ValidationError):
            OfferService(db).create_offer(owner.id, group.id, "spotify", 2, price, "x")

    def test_create_requires_group_owner(self, db, make_user):
        owner = make_user("Owner")
        stranger = make_user("Stranger")
        group = self._group(db, owner)
        with pytest.raises(AuthorizationError):
            OfferService(db).create_offer(stranger.id, group.id, "spotify", 2, "10", "x")
        assert db.query(Offer).count() == 0

    def test_update_keeps_slots_in_range(self, db, make_user, make_offer):
        owner = make_user("Owner")
        offer = make_offer(owner, slots_total=3)
        with pytest.raises(ValidationError):
            OfferService(db).update_offer(owner.id, offer.id, slots_available=4)
        db.refresh(offer)
        assert offer.slots_available == 3

        updated = OfferService(db).update_offer(owner.id, offer.id, slots_total=5, price_per_slot="9.99")
        assert updated.slots_total == 5
        assert updated.price_per_slot == Decimal("9.99")

    def test_update_by_stranger(self, db, make_user, make_offer):
        offer = make_offer(make_user("Owner"))
        with pytest.raises(AuthorizationError):
            OfferService(db).update_offer(make_user("Stranger").id, offer.id, status="inactive")

    def test_deactivate_hides_from_listing(self, db, make_user, make_offer):
        owner = make_user("Owner")
        offer = make_offer(owner, slots_total=2)
        svc = OfferService(db)
        assert [o.id for o in svc.list_offers()] == [offer.id]
        svc.deactivate_offer(owner.id, offer.id)
        assert svc.list_offers() == []


class TestListOffers:
    def test_filters_and_ordering(self, db, make_user, make_offer):
        owner = make_user("Owner")
        cheap = make_offer(owner, slots_total=2, price="5.00")
        pricey = make_offer(owner, slots_total=2, price="30.00")
        make_offer(owner, slots_total=2, slots_available=0, price="10.00")

        svc = OfferService(db)
        by_price = svc.list_offers(order_by="price_per_slot", ascending=True)
        assert [o.id for o in by_price] == [cheap.id, pricey.id]
        assert [o.id for o in svc.list_offers(min_price=Decimal("20"))] == [pricey.id]
        assert len(svc.list_offers(available_only=False)) == 3

    def test_rejects_unknown_order_field(self, db):
        with pytest.raises(ValidationError):
            OfferService(db).list_offers(order_by="slots_total; drop table")

    def test_rejects_oversized_page(self, db):
        with pytest.raises(ValidationError):
            OfferService(db).list_offers(limit=1000)
