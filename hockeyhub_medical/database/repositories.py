"""
Database Repositories for HockeyHub Medical
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Individual repository classes for each medical table.

:copyright: (c) 2024-present HockeyHub
"""

from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..errors import InvalidInputError
from . import query_builder
from .base import BaseRepository, Gateway
from .query_builder import DEFAULT_LIMIT
from .schema import (
    INJURIES, INJURY_UPDATES, TREATMENTS, TREATMENT_PLANS,
    TREATMENT_PLAN_ITEMS, PLAYER_AVAILABILITY, MEDICAL_DOCUMENTS
)


class InjuryRepository(BaseRepository):
    """Repository for injuries table. Every statement is scoped to one organization."""

    def __init__(self, gateway: Gateway):
        super().__init__(gateway, INJURIES)

    async def find_injuries(
        self,
        organization_id: str,
        *,
        player_id: Optional[str] = None,
        team_id: Optional[str] = None,
        status: Optional[str] = None,
        severity: Optional[str] = None,
        injury_type: Optional[str] = None,
        body_part: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        List injuries in an organization, newest first.

        ``body_part`` matches case-insensitively anywhere in the column;
        ``date_from``/``date_to`` bound ``date_occurred`` inclusively.
        """
        criteria = {
            'player_id': player_id,
            'team_id': team_id,
            'status': status,
            'severity': severity,
            'injury_type': injury_type,
            'body_part': body_part,
            'date_from': date_from,
            'date_to': date_to,
        }
        return await self._find(organization_id, criteria, limit, offset, 'fetching injuries')

    async def count_injuries(self, organization_id: str, **filters: Any) -> int:
        """Count injuries matching the same filters as :meth:`find_injuries`."""
        return await self._count(organization_id, filters, 'counting injuries')

    async def find_active_by_player(self, player_id: str, organization_id: str) -> List[Dict[str, Any]]:
        """Get a player's injuries that are not resolved yet."""
        query = f"""
            SELECT * FROM {self.table.name}
            WHERE organization_id = $1 AND player_id = $2 AND status <> 'resolved'
            ORDER BY date_occurred DESC
        """
        return await self._fetch_all(query, (organization_id, player_id), 'fetching active injuries')

    async def get_by_id(self, injury_id: str, organization_id: str) -> Optional[Dict[str, Any]]:
        """Get an injury by its ID."""
        return await self._get(injury_id, organization_id, 'fetching injury')

    async def lock_by_id(self, injury_id: str, organization_id: str) -> Optional[Dict[str, Any]]:
        """Get an injury and hold a row lock on it until the current transaction ends."""
        query, params = query_builder.build_get(self.table, injury_id, organization_id)
        return await self._fetch_one(f"{query} FOR UPDATE", params, 'locking injury')

    async def insert(self, organization_id: str, injury: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert a new injury. ``dateReported`` and ``status`` fall back to the table defaults."""
        return await self._insert(organization_id, injury, 'creating injury')

    async def update(self, injury_id: str, organization_id: str, injury: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Update the supplied fields of an injury. Returns None if it is not in the organization."""
        return await self._update(injury_id, organization_id, injury, 'updating injury')

    async def delete(self, injury_id: str, organization_id: str) -> bool:
        """Hard delete an injury. Updates, treatments and plans go with it."""
        return await self._delete(injury_id, organization_id, 'deleting injury')


class InjuryUpdateRepository(BaseRepository):
    """Repository for injury_updates table."""

    def __init__(self, gateway: Gateway):
        super().__init__(gateway, INJURY_UPDATES)

    async def find_by_injury(
        self,
        injury_id: str,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Get the progress notes of an injury, newest first."""
        criteria = {'date_from': date_from, 'date_to': date_to}
        return await self._find(injury_id, criteria, limit, offset, 'fetching injury updates')

    async def get_by_id(self, update_id: str, injury_id: str) -> Optional[Dict[str, Any]]:
        return await self._get(update_id, injury_id, 'fetching injury update')

    async def insert(self, injury_id: str, update: Mapping[str, Any]) -> Dict[str, Any]:
        """Append a progress note to an injury."""
        return await self._insert(injury_id, update, 'creating injury update')

    async def update(self, update_id: str, injury_id: str, update: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Update is not implemented for injury updates - they are append-only."""
        raise NotImplementedError('Update not implemented for injury updates - they are append-only')

    async def delete(self, update_id: str, injury_id: str) -> bool:
        """Delete is not implemented for injury updates - they go with their injury."""
        raise NotImplementedError('Delete not implemented for injury updates - they are removed with their injury')


class TreatmentRepository(BaseRepository):
    """Repository for treatments table."""

    def __init__(self, gateway: Gateway):
        super().__init__(gateway, TREATMENTS)

    async def find_by_injury(
        self,
        injury_id: str,
        *,
        treatment_type: Optional[str] = None,
        performed_by_user_id: Optional[str] = None,
        notes: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Get the treatments given for an injury, newest first."""
        criteria = {
            'treatment_type': treatment_type,
            'performed_by_user_id': performed_by_user_id,
            'notes': notes,
            'date_from': date_from,
            'date_to': date_to,
        }
        return await self._find(injury_id, criteria, limit, offset, 'fetching treatments')

    async def count_by_injury(self, injury_id: str, **filters: Any) -> int:
        return await self._count(injury_id, filters, 'counting treatments')

    async def get_by_id(self, treatment_id: str, injury_id: str) -> Optional[Dict[str, Any]]:
        return await self._get(treatment_id, injury_id, 'fetching treatment')

    async def insert(self, injury_id: str, treatment: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._insert(injury_id, treatment, 'creating treatment')

    async def update(self, treatment_id: str, injury_id: str, treatment: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update(treatment_id, injury_id, treatment, 'updating treatment')

    async def delete(self, treatment_id: str, injury_id: str) -> bool:
        return await self._delete(treatment_id, injury_id, 'deleting treatment')


class TreatmentPlanRepository(BaseRepository):
    """Repository for treatment_plans table. An injury may have one plan per rehab phase."""

    def __init__(self, gateway: Gateway):
        super().__init__(gateway, TREATMENT_PLANS)

    async def find_by_injury(
        self,
        injury_id: str,
        *,
        phase: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Get the plans of an injury in the order they were created."""
        return await self._find(injury_id, {'phase': phase}, limit, offset, 'fetching treatment plans')

    async def get_by_id(self, plan_id: str, injury_id: str) -> Optional[Dict[str, Any]]:
        return await self._get(plan_id, injury_id, 'fetching treatment plan')

    async def insert(self, injury_id: str, plan: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._insert(injury_id, plan, 'creating treatment plan')

    async def update(self, plan_id: str, injury_id: str, plan: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update(plan_id, injury_id, plan, 'updating treatment plan')

    async def delete(self, plan_id: str, injury_id: str) -> bool:
        return await self._delete(plan_id, injury_id, 'deleting treatment plan')


class TreatmentPlanItemRepository(BaseRepository):
    """Repository for treatment_plan_items table."""

    NEXT_SEQUENCE = (
        "(SELECT COALESCE(MAX(sequence), 0) + 1 FROM treatment_plan_items "
        "WHERE treatment_plan_id = $1)"
    )

    # Appends and reorders hold this lock so sequence numbers are handed out one plan at a time
    LOCK_PLAN = "SELECT id FROM treatment_plans WHERE id = $1 FOR UPDATE"

    def __init__(self, gateway: Gateway):
        super().__init__(gateway, TREATMENT_PLAN_ITEMS)

    async def find_by_plan(
        self,
        plan_id: str,
        *,
        exercise_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Get the items of a plan in sequence order."""
        return await self._find(plan_id, {'exercise_id': exercise_id}, limit, offset, 'fetching treatment plan items')

    async def get_by_id(self, item_id: str, plan_id: str) -> Optional[Dict[str, Any]]:
        return await self._get(item_id, plan_id, 'fetching treatment plan item')

    async def insert(self, plan_id: str, item: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert a plan item. Without a ``sequence`` it is appended after the last item."""
        if item.get('sequence') is not None:
            return await self._insert(plan_id, item, 'creating treatment plan item')

        item = {name: value for name, value in item.items() if name != 'sequence'}
        async with self._transaction('creating treatment plan item') as tx:
            items = TreatmentPlanItemRepository(tx)
            await items._fetch_all(self.LOCK_PLAN, (plan_id,), 'locking treatment plan')
            return await items._insert(plan_id, item, 'creating treatment plan item', {'sequence': self.NEXT_SEQUENCE})

    async def update(self, item_id: str, plan_id: str, item: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        return await self._update(item_id, plan_id, item, 'updating treatment plan item')

    async def delete(self, item_id: str, plan_id: str) -> bool:
        return await self._delete(item_id, plan_id, 'deleting treatment plan item')

    async def reorder(self, plan_id: str, item_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """
        Renumber a plan's items 1..n in the given order, atomically.

        Args:
            plan_id: The plan whose items are reordered
            item_ids: Every item ID of the plan, in the new order

        Returns:
            The plan's items in their new order

        Raises:
            InvalidInputError: if ``item_ids`` contains duplicates or an item outside the plan
        """
        if len(set(item_ids)) != len(item_ids):
            raise InvalidInputError("Duplicate item IDs in reorder request")

        async with self._transaction('reordering treatment plan items') as tx:
            items = TreatmentPlanItemRepository(tx)
            await items._fetch_all(self.LOCK_PLAN, (plan_id,), 'locking treatment plan')
            query = f"SELECT id FROM {self.table.name} WHERE treatment_plan_id = $1 FOR UPDATE"
            current = {str(row['id']) for row in await items._fetch_all(query, (plan_id,), 'locking treatment plan items')}
            if current != {str(item_id) for item_id in item_ids}:
                raise InvalidInputError(f"Reorder must list exactly the items of plan {plan_id}")

            query = f"""
                UPDATE {self.table.name}
                SET sequence = $1, updated_at = NOW()
                WHERE id = $2 AND treatment_plan_id = $3
            """
            for position, item_id in enumerate(item_ids, start=1):
                await items._fetch_all(query, (position, item_id, plan_id), 'reordering treatment plan items')

            return await items.find_by_plan(plan_id, limit=max(len(item_ids), 1))


class PlayerAvailabilityRepository(BaseRepository):
    """
    Repository for player_availability_statuses table.

    Each status change is a new row; a player's current status is the latest
    row that is already in effect. History is never rewritten.
    """

    def __init__(self, gateway: Gateway):
        super().__init__(gateway, PLAYER_AVAILABILITY)

    async def get_current_status(self, player_id: str, as_of: Optional[date] = None) -> Optional[Dict[str, Any]]:
        """Get the status in effect for a player on ``as_of`` (today by default)."""
        query = f"""
            SELECT * FROM {self.table.name}
            WHERE player_id = $1 AND effective_from <= $2
            ORDER BY effective_from DESC, created_at DESC
            LIMIT 1
        """
        return await self._fetch_one(query, (player_id, as_of or date.today()), 'fetching current availability')

    async def get_history(
        self,
        player_id: str,
        *,
        current_status: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Get a player's status changes, newest first."""
        criteria = {'current_status': current_status, 'date_from': date_from, 'date_to': date_to}
        return await self._find(player_id, criteria, limit, offset, 'fetching availability history')

    async def find_current_by_team(self, team_id: str, as_of: Optional[date] = None) -> List[Dict[str, Any]]:
        """Get the status in effect for every player of a team that has one."""
        query = f"""
            SELECT DISTINCT ON (player_id) * FROM {self.table.name}
            WHERE team_id = $1 AND effective_from <= $2
            ORDER BY player_id, effective_from DESC, created_at DESC
        """
        return await self._fetch_all(query, (team_id, as_of or date.today()), 'fetching team availability')

    async def get_by_id(self, status_id: str, player_id: str) -> Optional[Dict[str, Any]]:
        return await self._get(status_id, player_id, 'fetching availability status')

    async def insert(self, player_id: str, status: Mapping[str, Any]) -> Dict[str, Any]:
        """Record a new status for a player."""
        return await self._insert(player_id, status, 'creating availability status')

    async def update(self, status_id: str, player_id: str, status: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Update is not implemented for availability - record a new status instead."""
        raise NotImplementedError('Update not implemented for availability - statuses are versioned, insert a new one')

    async def delete(self, status_id: str, player_id: str) -> bool:
        """Delete is not implemented for availability - history is kept."""
        raise NotImplementedError('Delete not implemented for availability - status history is kept')


class MedicalDocumentRepository(BaseRepository):
    """Repository for medical_documents table. Documents are immutable once uploaded."""

    def __init__(self, gateway: Gateway):
        super().__init__(gateway, MEDICAL_DOCUMENTS)

    async def find_by_player(
        self,
        player_id: str,
        *,
        document_type: Optional[str] = None,
        injury_id: Optional[str] = None,
        team_id: Optional[str] = None,
        title: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        criteria = {
            'document_type': document_type,
            'injury_id': injury_id,
            'team_id': team_id,
            'title': title,
        }
        return await self._find(player_id, criteria, limit, offset, 'fetching medical documents')

    async def count_by_player(self, player_id: str, **filters: Any) -> int:
        return await self._count(player_id, filters, 'counting medical documents')

    async def get_by_id(self, document_id: str, player_id: str) -> Optional[Dict[str, Any]]:
        return await self._get(document_id, player_id, 'fetching medical document')

    async def insert(self, player_id: str, document: Mapping[str, Any]) -> Dict[str, Any]:
        return await self._insert(player_id, document, 'creating medical document')

    async def update(self, document_id: str, player_id: str, document: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Update is not implemented for documents - upload a new one instead."""
        raise NotImplementedError('Update not implemented for medical documents - documents are immutable')

    async def delete(self, document_id: str, player_id: str) -> bool:
        """Delete the document record. The stored file is the caller's to remove."""
        return await self._delete(document_id, player_id, 'deleting medical document')
