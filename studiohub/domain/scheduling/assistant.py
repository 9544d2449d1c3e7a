"""
Smart Booking Assistant
Combines the booking conflict checker, the inventory availability checker and the
resource tag matcher into one conflict report with a human-readable suggestion.

Read-only: safe to call before the user commits to a booking.
"""

import asyncio
import logging
from datetime import date, time
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ...config import ALTERNATIVES_FALLBACK_LIMIT
from ...exceptions import OracleError, StorageQueryFailed
from ...models import InventoryItem, StudioBooking
from ...services.ai_gateway import AiGatewayClient
from ..inventory.matcher import derive_required_tags, find_alternatives
from ..inventory.repository import InventoryRepository
from ..inventory.service import check_availability
from .conflicts import describe_booking, find_conflicting_bookings
from .overlap import format_time, validate_time_range
from .schemas import AlternativeResource, ConflictingBooking, ConflictReport

logger = logging.getLogger(__name__)


def fallback_suggestion(
    conflict_names: list[str],
    unavailable_names: list[str],
    alternative_names: list[str],
) -> str:
    """Deterministic suggestion used whenever the AI gateway can't answer. Never empty."""
    parts = []
    if conflict_names:
        parts.append(
            f"This time slot overlaps {', '.join(conflict_names)}. Please choose another time."
        )
    if unavailable_names:
        if alternative_names:
            parts.append(
                f"Resources unavailable: {', '.join(unavailable_names)}. "
                f"Matching alternatives: {', '.join(alternative_names)}."
            )
        else:
            parts.append(
                f"Resources unavailable: {', '.join(unavailable_names)}. "
                "No matching alternatives are currently available."
            )
    return " ".join(parts) or "Time slot conflict detected. Please choose another time."


def build_suggestion_prompt(
    booking_type: str,
    day: date,
    start: time,
    end: time,
    conflicts: list[StudioBooking],
    unavailable_names: list[str],
    alternatives: list[InventoryItem],
    required_tags: list[str],
) -> str:
    lines = [
        f"You are a helpful studio booking assistant. A user is trying to book a {booking_type} "
        f"session on {day.isoformat()} from {format_time(start)} to {format_time(end)}.",
        "",
    ]
    if conflicts:
        conflict_info = ", ".join(
            f"{describe_booking(c)} ({format_time(c.start_time)}-{format_time(c.end_time)})"
            for c in conflicts
        )
        lines.append(f"Time conflicts: {conflict_info}")
    if unavailable_names:
        lines.append(f"Unavailable resources: {', '.join(unavailable_names)}")
    if alternatives:
        alternative_info = ", ".join(
            f"{a.item_name} ({a.category}; tags: {', '.join(a.tags or []) or 'none'})"
            for a in alternatives
        )
        lines.append(f"Available alternatives: {alternative_info}")
    if required_tags:
        lines.append(
            f"Only suggest alternatives matching the required tags: {', '.join(required_tags)}."
        )
    lines.append("")
    lines.append(
        "Provide a brief, helpful suggestion (max 2 sentences) for an alternative. "
        "Be specific and professional. Suggest a different time or alternative equipment "
        "from the list above if available."
    )
    return "\n".join(lines)


class SmartBookingAssistant:
    """Orchestrates the conflict report for a candidate booking"""

    def __init__(
        self,
        session_factory: sessionmaker,
        oracle: AiGatewayClient,
        fallback_limit: int = ALTERNATIVES_FALLBACK_LIMIT,
    ):
        self.session_factory = session_factory
        self.oracle = oracle
        self.fallback_limit = fallback_limit

    async def check(
        self,
        day: date,
        start: time,
        end: time,
        booking_type: str,
        required_resources: Optional[list[str]] = None,
        required_tags: Optional[list[str]] = None,
    ) -> ConflictReport:
        validate_time_range(start, end)
        resources = list(dict.fromkeys(r for r in (required_resources or []) if r))

        # Independent reads, each on its own session
        conflicts, unavailable_ids = await asyncio.gather(
            asyncio.to_thread(self._find_conflicts, day, start, end),
            asyncio.to_thread(self._find_unavailable, resources, day),
        )

        if not conflicts and not unavailable_ids:
            logger.info(f"✅ Slot clear: {day.isoformat()} {format_time(start)}-{format_time(end)}")
            return ConflictReport(hasConflict=False)

        unavailable_names, alternatives, tags = await asyncio.to_thread(
            self._collect_alternatives, day, resources, unavailable_ids, required_tags
        )

        suggestion = await self._suggest(
            booking_type, day, start, end, conflicts, unavailable_names, alternatives, tags
        )

        return ConflictReport(
            hasConflict=True,
            conflicts=[
                ConflictingBooking(
                    id=c.id,
                    eventName=c.event_name,
                    startTime=format_time(c.start_time),
                    endTime=format_time(c.end_time),
                )
                for c in conflicts
            ],
            unavailableResources=unavailable_names,
            availableAlternatives=[
                AlternativeResource(
                    id=a.id, itemName=a.item_name, category=a.category, tags=list(a.tags or [])
                )
                for a in alternatives
            ],
            suggestion=suggestion,
        )

    def _find_conflicts(self, day: date, start: time, end: time) -> list[StudioBooking]:
        with self.session_factory() as db:
            conflicts = find_conflicting_bookings(db, day, start, end)
            # Detach loaded rows so they stay readable after the session closes
            db.expunge_all()
            return conflicts

    def _find_unavailable(self, resources: list[str], day: date) -> list[str]:
        if not resources:
            return []
        with self.session_factory() as db:
            return check_availability(db, resources, day, day)

    def _collect_alternatives(
        self,
        day: date,
        resources: list[str],
        unavailable_ids: list[str],
        required_tags: Optional[list[str]],
    ) -> tuple[list[str], list[InventoryItem], list[str]]:
        with self.session_factory() as db:
            try:
                requested = {
                    item.id: item for item in InventoryRepository.get_items_by_ids(db, resources)
                }
                reserved_today = InventoryRepository.find_reserved_inventory_ids(db, None, day, day)
            except SQLAlchemyError as e:
                logger.error(f"❌ Failed to load inventory for alternatives: {e}")
                raise StorageQueryFailed("Could not load inventory for alternatives") from e

            unavailable_names = [
                requested[i].item_name if i in requested else i for i in unavailable_ids
            ]

            if required_tags:
                tags = list(required_tags)
            else:
                # Tags of the gear that was refused; with only a time conflict, of all requested gear
                source_ids = unavailable_ids or resources
                tags = derive_required_tags(requested[i] for i in source_ids if i in requested)

            alternatives = find_alternatives(
                db,
                tags,
                exclude_ids=set(resources) | reserved_today,
                limit=self.fallback_limit,
            )
            db.expunge_all()

        return unavailable_names, alternatives, tags

    async def _suggest(
        self,
        booking_type: str,
        day: date,
        start: time,
        end: time,
        conflicts: list[StudioBooking],
        unavailable_names: list[str],
        alternatives: list[InventoryItem],
        tags: list[str],
    ) -> str:
        fallback = fallback_suggestion(
            [describe_booking(c) for c in conflicts],
            unavailable_names,
            [a.item_name for a in alternatives],
        )

        if not self.oracle.configured:
            return fallback

        prompt = build_suggestion_prompt(
            booking_type, day, start, end, conflicts, unavailable_names, alternatives, tags
        )
        try:
            return await self.oracle.complete(prompt)
        except OracleError as e:
            logger.warning(f"⚠️ AI suggestion unavailable, using fallback: {e}")
        except Exception as e:
            logger.error(f"❌ AI suggestion error, using fallback: {e}")
        return fallback
