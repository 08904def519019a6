from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from transitions import MachineError
from transitions.extensions.asyncio import AsyncMachine

from portal.core.clock import Clock, default_clock
from portal.core.exceptions import InvalidStateTransition, NotExpiredError
from portal.core.logging_config import logger
from portal.crud.offers import get_offer_or_raise, update_offer_if
from portal.models.enums import OfferStatus
from portal.models.offers import Offer


class OfferStateMachine:
    states = [status.value for status in OfferStatus]

    def __init__(self, offer_id: int, status: str, deadline: datetime, now: datetime):
        self.offer_id = offer_id
        self.deadline = deadline
        self.now = now
        self.machine = AsyncMachine(
            model=self,
            states=OfferStateMachine.states,
            initial=status,
            auto_transitions=False,
            send_event=True
        )

        self.machine.add_transition(
            "expire", OfferStatus.ACTIVE.value, OfferStatus.UNDER_EVALUATION.value, conditions="deadline_passed"
        )
        self.machine.add_transition("choose_winner", OfferStatus.UNDER_EVALUATION.value, OfferStatus.RESULT.value)
        self.machine.add_transition(
            "declare_unsuccessful",
            OfferStatus.UNDER_EVALUATION.value,
            OfferStatus.UNSUCCESSFUL.value,
            conditions="deadline_passed"
        )

    def deadline_passed(self, event) -> bool:
        return self.now >= self.deadline

    async def on_enter_under_evaluation(self, event):
        logger.info(f"Offer {self.offer_id} entered state under_evaluation")

    async def on_enter_result(self, event):
        logger.info(f"Offer {self.offer_id} entered state result")

    async def on_enter_unsuccessful(self, event):
        logger.info(f"Offer {self.offer_id} entered state unsuccessful")


class OfferLifecycleManager:
    """Applies state-machine transitions to stored offers with conditional writes.

    Every write is guarded by the status the caller observed, so a sweep, an
    on-demand check and a committee action racing on the same offer cannot
    overwrite each other: the loser's write matches zero rows.
    """

    def __init__(self, clock: Clock = default_clock):
        self.clock = clock

    def _machine(self, offer: Offer) -> OfferStateMachine:
        return OfferStateMachine(offer.id, offer.status, offer.deadline, self.clock.now())

    async def try_expire(self, db: AsyncSession, offer: Offer) -> bool:
        """Moves an expired active offer to under_evaluation. True only for the caller whose write landed."""
        offer_id, observed = offer.id, offer.status
        sm = self._machine(offer)
        try:
            if not await sm.expire():
                return False
        except MachineError:
            return False

        applied = await update_offer_if(db, offer_id, {"status": observed}, {"status": sm.state})
        if applied:
            logger.info(f"Offer {offer_id} moved from {observed} to {sm.state} after deadline {offer.deadline}")
        else:
            logger.info(f"Offer {offer_id} was already moved out of {observed} by another caller")
        return applied

    async def evaluate_expiry(self, db: AsyncSession, offer: Offer) -> Offer:
        offer_id = offer.id
        await self.try_expire(db, offer)
        return await get_offer_or_raise(db, offer_id)

    async def set_winner(self, db: AsyncSession, offer: Offer, winner_name: str) -> Offer:
        offer_id, observed = offer.id, offer.status
        winner_name = (winner_name or "").strip()
        if not winner_name:
            raise InvalidStateTransition(offer_id, observed, "set an empty winner on")

        sm = self._machine(offer)
        try:
            await sm.choose_winner()
        except MachineError:
            raise InvalidStateTransition(offer_id, observed, "set a winner on")

        applied = await update_offer_if(
            db, offer_id, {"status": observed}, {"status": sm.state, "winner_name": winner_name}
        )
        current = await get_offer_or_raise(db, offer_id)
        if not applied:
            raise InvalidStateTransition(offer_id, current.status, "set a winner on")
        logger.info(f"Winner '{winner_name}' set for offer {offer_id}")
        return current

    async def set_unsuccessful(self, db: AsyncSession, offer: Offer) -> Offer:
        offer_id, observed, deadline = offer.id, offer.status, offer.deadline
        sm = self._machine(offer)
        try:
            moved = await sm.declare_unsuccessful()
        except MachineError:
            raise InvalidStateTransition(offer_id, observed, "mark unsuccessful")
        if not moved:
            raise NotExpiredError(offer_id, deadline)

        applied = await update_offer_if(db, offer_id, {"status": observed}, {"status": sm.state})
        current = await get_offer_or_raise(db, offer_id)
        if not applied:
            raise InvalidStateTransition(offer_id, current.status, "mark unsuccessful")
        logger.info(f"Offer {offer_id} marked unsuccessful")
        return current
