"""Unit tests for identity card binding."""

from uuid import uuid4

import pytest

from conexus.core.exceptions import NotFoundError, ValidationError
from conexus.services.card_service import CardConflictError, CardService, normalize_card
from conexus.services.registration_service import RegistrationService


def test_normalize_card():
    """Reader padding is stripped; blank values are refused."""
    assert normalize_card("  04A1B2C3\n") == "04A1B2C3"

    with pytest.raises(ValidationError):
        normalize_card("   ")


@pytest.mark.asyncio
async def test_bind_card(test_session, make_registration):
    """Test binding a free card."""
    registration = await make_registration()

    bound = await RegistrationService(test_session).bind_card(registration.id, " 04A1B2C3 ")

    assert bound.bound_card == "04A1B2C3"
    assert await CardService(test_session).find_holder("04A1B2C3") == registration.id


@pytest.mark.asyncio
async def test_rebind_same_card_is_noop(test_session, make_registration):
    """Binding the card a registration already holds succeeds quietly."""
    service = RegistrationService(test_session)
    registration = await make_registration()
    await service.bind_card(registration.id, "CARD-7")

    again = await service.bind_card(registration.id, "CARD-7")

    assert again.bound_card == "CARD-7"


@pytest.mark.asyncio
async def test_card_conflict_names_holder(test_session, make_registration):
    """A card held by someone else is refused with the holder's ID."""
    service = RegistrationService(test_session)
    holder = await make_registration()
    other = await make_registration()
    await service.bind_card(holder.id, "CARD-7")

    with pytest.raises(CardConflictError) as exc_info:
        await service.bind_card(other.id, "CARD-7")

    error = exc_info.value
    assert error.status_code == 409
    assert error.code == "CARD_CONFLICT"
    assert error.held_by == holder.id
    assert error.problem_details["held_by"] == str(holder.id)

    reloaded = await service.get_registration_by_id_or_raise(other.id)
    assert reloaded.bound_card is None


@pytest.mark.asyncio
async def test_replace_card(test_session, make_registration):
    """Binding a new card frees the previous one."""
    service = RegistrationService(test_session)
    first = await make_registration()
    second = await make_registration()
    await service.bind_card(first.id, "OLD")

    await service.bind_card(first.id, "NEW")
    taken = await service.bind_card(second.id, "OLD")

    assert taken.bound_card == "OLD"
    assert await CardService(test_session).find_holder("NEW") == first.id


@pytest.mark.asyncio
async def test_bind_card_unknown_registration(test_session):
    """Test binding a card to a registration that does not exist."""
    with pytest.raises(NotFoundError):
        await RegistrationService(test_session).bind_card(uuid4(), "CARD-1")
