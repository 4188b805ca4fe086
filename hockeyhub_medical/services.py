"""
Medical record workflows that touch more than one table.

Each multi-table write runs inside one transaction, so a failure part way
through leaves nothing behind.
"""

import math
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from .database import MedicalDatabase
from .errors import InvalidInputError
from .logging_config import get_logger

DETAIL_PAGE_SIZE = 100


async def fetch_every(find: Callable[..., Awaitable[List[Dict[str, Any]]]], scope_value: Any,
                      page_size: int = DETAIL_PAGE_SIZE) -> List[Dict[str, Any]]:
    """Call a paginated repository finder page by page until a short page comes back."""
    rows = []
    offset = 0
    while True:
        page = await find(scope_value, limit=page_size, offset=offset)
        rows.extend(page)
        if len(page) < page_size:
            return rows
        offset += page_size


class MedicalRecordsService:
    """Injury reporting, listing and closing on top of :class:`MedicalDatabase`."""

    def __init__(self, db: MedicalDatabase):
        self.db = db
        self.logger = get_logger('hockeyhub.medical_records')

    async def report_injury(
        self,
        organization_id: str,
        injury: Mapping[str, Any],
        initial_plan: Optional[Mapping[str, Any]] = None,
        availability: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Record a new injury with its first treatment plan and availability change.

        Args:
            organization_id: Organization of the reporting staff member
            injury: Injury fields (see ``schema.INJURIES``)
            initial_plan: Optional first-phase plan for the injury
            availability: Optional availability status caused by the injury

        Returns:
            Dict with ``injury`` and, when supplied, ``plan`` and ``availability``
        """
        async with self.db.transaction('reporting injury') as tx:
            created = await tx.injuries.insert(organization_id, injury)
            result = {'injury': created}

            if initial_plan is not None:
                result['plan'] = await tx.treatment_plans.insert(created['id'], initial_plan)

            if availability is not None:
                status = {
                    'teamId': created['team_id'],
                    'injuryId': created['id'],
                    **availability,
                }
                result['availability'] = await tx.availability.insert(created['player_id'], status)

        self.logger.info(f"Injury {created['id']} reported for player {created['player_id']} in {organization_id}")
        return result

    async def list_injuries(self, organization_id: str, page: int = 1, limit: int = 20, **filters: Any) -> Dict[str, Any]:
        """Get one page of injuries with paging metadata."""
        if page < 1:
            raise InvalidInputError(f"page must be 1 or greater, got {page}")
        data = await self.db.injuries.find_injuries(
            organization_id, limit=limit, offset=(page - 1) * limit, **filters
        )
        total = await self.db.injuries.count_injuries(organization_id, **filters)
        return {
            'data': data,
            'total': total,
            'page': page,
            'limit': limit,
            'total_pages': math.ceil(total / limit) if total else 0,
        }

    async def get_injury_details(self, injury_id: str, organization_id: str) -> Optional[Dict[str, Any]]:
        """Get an injury with its updates, treatments and plans (each plan with its items)."""
        injury = await self.db.injuries.get_by_id(injury_id, organization_id)
        if not injury:
            return None

        plans = await fetch_every(self.db.treatment_plans.find_by_injury, injury_id)
        for plan in plans:
            plan['items'] = await fetch_every(self.db.treatment_plan_items.find_by_plan, plan['id'])

        return {
            **injury,
            'updates': await fetch_every(self.db.injury_updates.find_by_injury, injury_id),
            'treatments': await fetch_every(self.db.treatments.find_by_injury, injury_id),
            'plans': plans,
        }

    async def record_treatment(self, injury_id: str, organization_id: str, treatment: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Add a treatment to an injury of the organization. Returns None if there is no such injury."""
        if not await self.db.injuries.get_by_id(injury_id, organization_id):
            return None
        return await self.db.treatments.insert(injury_id, treatment)

    async def close_injury(
        self,
        injury_id: str,
        organization_id: str,
        updated_by_user_id: str,
        as_of: Optional[date] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Resolve an injury and clear the player to play from ``as_of``.

        Closing an injury that is already resolved writes nothing and returns
        it as stored.

        Returns:
            The resolved injury, or None if it is not in the organization
        """
        as_of = as_of or date.today()
        async with self.db.transaction('closing injury') as tx:
            current = await tx.injuries.lock_by_id(injury_id, organization_id)
            if current is None:
                return None
            if current['status'] == 'resolved':
                self.logger.debug(f"Injury {injury_id} is already resolved")
                return current

            injury = await tx.injuries.update(injury_id, organization_id, {'status': 'resolved'})
            await tx.availability.insert(injury['player_id'], {
                'currentStatus': 'available',
                'effectiveFrom': as_of,
                'injuryId': injury['id'],
                'teamId': injury['team_id'],
                'updatedByUserId': updated_by_user_id,
            })

        self.logger.info(f"Injury {injury_id} resolved by {updated_by_user_id}")
        return injury
