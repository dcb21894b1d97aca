"""Tests for request creation from canister level readings."""
import pytest

from app.core.errors import InvalidCoordinates, MachineNotFound, ValidationError
from app.db.mongodb import KITCHENS, MACHINES, REQUESTS, REQUEST_STATUS_UPDATES
from app.domains.requests.service import RequestService
from factories import at, make_kitchen, make_machine


@pytest.fixture
def service():
    return RequestService()


class TestNoOps:
    """Readings that must never create a request."""

    @pytest.mark.asyncio
    async def test_level_above_threshold(self, seeded, service):
        result = await service.check_canister_level("M001", 21, now=at(10))

        assert result.success
        assert "above threshold" in result.message
        assert await seeded[REQUESTS].count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_machine_without_mapped_kitchen(self, db, service):
        await db[MACHINES].insert_one(make_machine(kitchenId=[]))

        result = await service.check_canister_level("M001", 15, now=at(10))

        assert not result.success
        assert "No kitchen mapped" in result.message
        assert await db[REQUESTS].count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_blocked_near_end_time(self, db, service):
        await db[MACHINES].insert_one(make_machine(endTime="14:00"))
        await db[KITCHENS].insert_one(make_kitchen("K1"))

        result = await service.check_canister_level("M001", 10, now=at(13, 30))

        assert not result.success
        assert "within 1 hour of end time" in result.message
        assert await db[REQUESTS].count_documents({}) == 0


class TestRejectedInput:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("level", [-1, 101])
    async def test_level_out_of_range(self, db, service, level):
        with pytest.raises(ValidationError):
            await service.check_canister_level("M001", level)

    @pytest.mark.asyncio
    async def test_unknown_machine(self, db, service):
        with pytest.raises(MachineNotFound):
            await service.check_canister_level("NOPE", 10, now=at(10))

    @pytest.mark.asyncio
    async def test_machine_with_unusable_coordinates(self, db, service):
        await db[MACHINES].insert_one(make_machine(gisLatitude="not a number"))

        with pytest.raises(InvalidCoordinates):
            await service.check_canister_level("M001", 10, now=at(10))
        assert await db[REQUESTS].count_documents({}) == 0


class TestRequestCreation:
    @pytest.mark.asyncio
    async def test_creates_pending_request_with_audit_rows(self, seeded, service):
        await seeded[KITCHENS].insert_one(make_kitchen("K2", km=2.0))
        await seeded[MACHINES].update_one({"id": "M001"}, {"$set": {"kitchenId": ["K1", "K2"]}})

        result = await service.check_canister_level("M001", 15, now=at(10))

        assert result.success
        assert result.request_id == "REQ-0001"
        assert result.kitchen_user_ids == ["K1", "K2"]
        assert result.quantity == 5
        assert [n.user_id for n in result.notifications] == ["K1", "K2"]
        assert {n.status for n in result.notifications} == {"Pending"}

        request = await seeded[REQUESTS].find_one({"requestId": "REQ-0001"})
        assert request["requestStatus"] == "Pending"
        assert request["kitchenUserId"] == ["K1", "K2"]
        assert request["dstLatitude"] == pytest.approx(12.9716)
        assert request["dstAddress"] == "Tower A, 1, MG Road, Bengaluru, Karnataka"
        assert request["requestDateTime"] == "17/10/2026, 10:00:00 am"

        rows = await seeded[REQUEST_STATUS_UPDATES].find({"requestId": "REQ-0001"}).to_list(length=None)
        assert sorted(row["userId"] for row in rows) == ["K1", "K2"]
        assert all(row["status"] == "Pending" and row["isProceedNext"] is False for row in rows)

    @pytest.mark.asyncio
    async def test_only_online_kitchens_are_offered(self, seeded, service):
        await seeded[KITCHENS].insert_one(make_kitchen("K2", status="offline"))
        await seeded[MACHINES].update_one({"id": "M001"}, {"$set": {"kitchenId": ["K1", "K2"]}})

        result = await service.check_canister_level("M001", 15, now=at(10))

        assert result.kitchen_user_ids == ["K1"]
        assert await seeded[REQUEST_STATUS_UPDATES].count_documents({"userId": "K2"}) == 0

    @pytest.mark.asyncio
    async def test_single_kitchen_id_string_is_accepted(self, seeded, service):
        await seeded[MACHINES].update_one({"id": "M001"}, {"$set": {"kitchenId": "K1"}})

        result = await service.check_canister_level("M001", 15, now=at(10))

        assert result.kitchen_user_ids == ["K1"]

    @pytest.mark.asyncio
    async def test_no_online_kitchen_still_records_request(self, db, service):
        await db[MACHINES].insert_one(make_machine())
        await db[KITCHENS].insert_one(make_kitchen("K1", status="offline"))

        result = await service.check_canister_level("M001", 15, now=at(10))

        assert not result.success
        assert result.request_id == "REQ-0001"
        assert result.notifications == []
        request = await db[REQUESTS].find_one({"requestId": "REQ-0001"})
        assert request["requestStatus"] == "No Kitchens Found"
        assert request["kitchenUserId"] == []
        assert await db[REQUEST_STATUS_UPDATES].count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_closing_window_uses_end_quantity(self, seeded, service):
        result = await service.check_canister_level("M001", 15, now=at(20, 30))
        assert result.quantity == 2


class TestPriority:
    """First request of the day for a machine jumps the queue."""

    @pytest.mark.asyncio
    async def test_first_request_of_day_has_priority_one(self, seeded, service):
        first = await service.check_canister_level("M001", 15, now=at(9))
        second = await service.check_canister_level("M001", 12, now=at(11))

        assert first.priority == 1
        assert second.priority == 2
        assert second.request_id == "REQ-0002"

    @pytest.mark.asyncio
    async def test_new_day_resets_priority(self, seeded, service):
        await service.check_canister_level("M001", 15, now=at(9, day=16))
        result = await service.check_canister_level("M001", 15, now=at(9, day=17))
        assert result.priority == 1

    @pytest.mark.asyncio
    async def test_other_machines_do_not_count(self, seeded, service):
        await seeded[MACHINES].insert_one(make_machine(id="M002"))
        await service.check_canister_level("M002", 15, now=at(9))

        result = await service.check_canister_level("M001", 15, now=at(10))
        assert result.priority == 1
