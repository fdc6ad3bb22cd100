"""Identity binder: attaches contactless cards to registrations."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, ValidationError
from ..core.locks import resource_lock
from ..core.observability import metrics_collector
from ..models.registration import Registration

logger = logging.getLogger(__name__)


class CardConflictError(ConflictError):
    """Exception when a card is already bound to another registration."""

    def __init__(self, card: str, held_by: UUID | None):
        super().__init__(
            detail="Card already in use by another registration",
            conflicting_resource={
                "card": card,
                "held_by": str(held_by) if held_by else None
            }
        )
        self.problem_details.update({
            "code": "CARD_CONFLICT",
            "retryable": False,
            "held_by": str(held_by) if held_by else None
        })
        self.card = card
        self.held_by = held_by


def normalize_card(card_value: str) -> str:
    """Strip reader padding from a card value."""
    card = (card_value or "").strip()
    if not card:
        raise ValidationError("Card value must not be empty")
    return card


class CardService:
    """Service for binding identity cards to registrations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_holder(self, card: str) -> UUID | None:
        """Return the ID of the registration holding ``card``, if any."""
        result = await self.db.execute(
            select(Registration.id).where(Registration.bound_card == card)
        )
        return result.scalar_one_or_none()

    async def bind(self, registration: Registration, card_value: str) -> Registration:
        """
        Bind a card to a registration and commit.

        The holder check and the write run under a per-card lock; the unique
        index on ``bound_card`` backs this up across processes. Rebinding
        the card a registration already holds is a no-op.

        Args:
            registration: Registration to bind, loaded by the caller
            card_value: Raw card value

        Returns:
            The updated registration

        Raises:
            ValidationError: If the card value is blank
            CardConflictError: If another registration holds the card
        """
        card = normalize_card(card_value)

        if registration.bound_card == card:
            return registration

        async with resource_lock(self.db, "card", card):
            holder = await self.find_holder(card)
            if holder is not None and holder != registration.id:
                metrics_collector.record_card_binding("conflict")
                logger.warning(
                    "Card binding rejected - card in use",
                    extra={"registration_id": str(registration.id), "held_by": str(holder)}
                )
                raise CardConflictError(card=card, held_by=holder)

            previous = registration.bound_card
            registration.bound_card = card

            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                holder = await self.find_holder(card)
                metrics_collector.record_card_binding("conflict")
                logger.warning(
                    "Card binding lost race on unique index",
                    extra={"held_by": str(holder) if holder else None}
                )
                raise CardConflictError(card=card, held_by=holder) from None

        metrics_collector.record_card_binding("bound")
        logger.info(
            "Card bound",
            extra={
                "registration_id": str(registration.id),
                "replaced_card": previous is not None
            }
        )

        return registration

    def unbind(self, registration: Registration) -> None:
        """Clear a registration's card; the caller commits."""
        if registration.bound_card is None:
            return

        registration.bound_card = None
        metrics_collector.record_card_binding("unbound")
