"""Tests for kitchen decline and reassignment."""
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from app.core.errors import InvalidCoordinates, RequestNotFound, StatusUpdateNotFound, ValidationError
from app.db.mongodb import KITCHENS, REQUESTS, REQUEST_STATUS_UPDATES
from app.domains.kitchens.service import KitchenService
from app.domains.requests.service import RequestService
from app.domains.requests.transitions import TransitionService
from app.schemas.request import TransitionInput
from factories import at, make_kitchen, transition


@pytest.fixture
def service():
    return KitchenService()


@pytest_asyncio.fixture
async def request_id(seeded):
    """REQ-0001 offered to K1 only."""
    result = await RequestService().check_canister_level("M001", 15, now=at(10))
    return result.request_id


async def rows_for(db, request_id):
    return await db[REQUEST_STATUS_UPDATES].find({"requestId": request_id}).to_list(length=None)


class TestDeclineAndReassign:
    @pytest.mark.asyncio
    async def test_widens_search_until_a_kitchen_is_found(self, seeded, request_id, service):
        """Nothing within 2 km, so the 2.5 km kitchen is found at 3 km."""
        await seeded[KITCHENS].insert_one(make_kitchen("K2", km=2.5))

        result = await service.decline_and_reassign("K1", request_id, "declined", now=at(10, 5))

        assert result.success
        assert result.new_kitchens == ["K2"]
        assert result.radius_km == 3
        assert [(n.user_id, n.status) for n in result.notifications] == [("K2", "Pending")]

    @pytest.mark.asyncio
    async def test_records_decline_and_offers_new_kitchen(self, seeded, request_id, service):
        await seeded[KITCHENS].insert_one(make_kitchen("K2", km=2.5))

        await service.decline_and_reassign("K1", request_id, "declined", now=at(10, 5))

        rows = {row["userId"]: row for row in await rows_for(seeded, request_id)}
        assert rows["K1"]["status"] == "declined"
        assert rows["K2"]["status"] == "Pending"
        assert rows["K2"]["isProceedNext"] is False

    @pytest.mark.asyncio
    async def test_request_itself_is_untouched_on_success(self, seeded, request_id, service):
        await seeded[KITCHENS].insert_one(make_kitchen("K2", km=2.5))

        await service.decline_and_reassign("K1", request_id, "declined", now=at(10, 5))

        request = await seeded[REQUESTS].find_one({"requestId": request_id})
        assert request["requestStatus"] == "Pending"
        assert request["kitchenUserId"] == ["K1"]

    @pytest.mark.asyncio
    async def test_previously_offered_kitchens_are_never_offered_again(self, seeded, request_id, service):
        """K3 sits closest but already declined this request once."""
        await seeded[KITCHENS].insert_many([make_kitchen("K2", km=2.5), make_kitchen("K3", km=0.5)])
        await seeded[REQUEST_STATUS_UPDATES].insert_one(
            {"requestId": request_id, "userId": "K3", "status": "declined", "dateAndTime": "earlier"}
        )

        result = await service.decline_and_reassign("K1", request_id, "declined", now=at(10, 5))

        assert result.new_kitchens == ["K2"]

    @pytest.mark.asyncio
    async def test_offline_kitchens_are_skipped(self, seeded, request_id, service):
        await seeded[KITCHENS].insert_many([make_kitchen("K2", km=0.5, status="offline"), make_kitchen("K3", km=4.5)])

        result = await service.decline_and_reassign("K1", request_id, "declined", now=at(10, 5))

        assert result.new_kitchens == ["K3"]
        assert result.radius_km == 5

    @pytest.mark.asyncio
    async def test_no_candidates_marks_request_unavailable(self, seeded, request_id, service):
        await seeded[KITCHENS].insert_one(make_kitchen("K2", km=6.0))

        result = await service.decline_and_reassign("K1", request_id, "declined", now=at(10, 5))

        assert not result.success
        assert result.new_kitchens == []
        request = await seeded[REQUESTS].find_one({"requestId": request_id})
        assert request["requestStatus"] == "No Available Kitchens"


class TestDeclineRejections:
    @pytest.mark.asyncio
    async def test_status_must_be_declined(self, seeded, request_id, service):
        with pytest.raises(ValidationError):
            await service.decline_and_reassign("K1", request_id, "Declined")

    @pytest.mark.asyncio
    async def test_kitchen_never_offered_the_request(self, seeded, request_id, service):
        with pytest.raises(StatusUpdateNotFound):
            await service.decline_and_reassign("K9", request_id, "declined")

    @pytest.mark.asyncio
    async def test_missing_request(self, db, service):
        await db[REQUEST_STATUS_UPDATES].insert_one({"requestId": "REQ-0404", "userId": "K1", "status": "Pending"})

        with pytest.raises(RequestNotFound):
            await service.decline_and_reassign("K1", "REQ-0404", "declined")

        row = await db[REQUEST_STATUS_UPDATES].find_one({"requestId": "REQ-0404"})
        assert row["status"] == "Pending"

    @pytest.mark.asyncio
    async def test_destination_without_coordinates(self, seeded, request_id, service):
        await seeded[REQUESTS].update_one({"requestId": request_id}, {"$unset": {"dstLatitude": ""}})

        with pytest.raises(InvalidCoordinates):
            await service.decline_and_reassign("K1", request_id, "declined")


class TestDeclineAfterPending:
    """Once the request has left Pending, a decline changes nothing."""

    @pytest.mark.asyncio
    async def test_accepted_request_is_not_rebroadcast(self, seeded, request_id, service):
        await seeded[KITCHENS].insert_one(make_kitchen("K2", km=2.5))
        accepted = await TransitionService().kitchen_accept_or_decline(
            TransitionInput.model_validate(transition("K1", request_id, "Accepted"))
        )
        assert accepted.success
        before = await rows_for(seeded, request_id)

        result = await service.decline_and_reassign("K1", request_id, "declined", now=at(10, 5))

        assert not result.success
        assert result.message == "Request is Accepted, cannot decline"
        assert result.new_kitchens == []
        assert await rows_for(seeded, request_id) == before
        request = await seeded[REQUESTS].find_one({"requestId": request_id})
        assert request["requestStatus"] == "Accepted"
        assert request["kitchenUserId"] == "K1"

    @pytest.mark.asyncio
    async def test_completed_request_keeps_its_status(self, seeded, request_id, service):
        await seeded[REQUESTS].update_one(
            {"requestId": request_id},
            {"$set": {"requestStatus": "Completed", "kitchenUserId": "K1", "agentUserId": "A1"}},
        )

        result = await service.decline_and_reassign("K1", request_id, "declined", now=at(10, 5))

        assert not result.success
        assert result.message == "Request is Completed, cannot decline"
        request = await seeded[REQUESTS].find_one({"requestId": request_id})
        assert request["requestStatus"] == "Completed"
        row = await seeded[REQUEST_STATUS_UPDATES].find_one({"requestId": request_id, "userId": "K1"})
        assert row["status"] == "Pending"

    @pytest.mark.asyncio
    async def test_request_accepted_during_decline_is_not_marked_unavailable(self, seeded, request_id, service):
        service.request_repo.patch_if_status = AsyncMock(return_value=False)

        result = await service.decline_and_reassign("K1", request_id, "declined", now=at(10, 5))

        assert not result.success
        assert result.message == "Request was updated by someone else, please retry"
        service.request_repo.patch_if_status.assert_awaited_once()
        assert service.request_repo.patch_if_status.await_args.args[1] == "Pending"
        request = await seeded[REQUESTS].find_one({"requestId": request_id})
        assert request["requestStatus"] == "Pending"
