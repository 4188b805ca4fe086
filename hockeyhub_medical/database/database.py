"""
Database Module for HockeyHub Medical - Main Database Class
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Main database interface that provides access to all repositories.

:copyright: (c) 2024-present HockeyHub
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from ..config import DEFAULT_SERVICE
from .base import Gateway, MigrationManager, connect, guarded_transaction
from .repositories import (
    InjuryRepository, InjuryUpdateRepository, TreatmentRepository,
    TreatmentPlanRepository, TreatmentPlanItemRepository,
    PlayerAvailabilityRepository, MedicalDocumentRepository
)


class MedicalDatabase:
    """
    Main database interface for the medical service.

    Provides access to all repository classes over one gateway.

    Example:
        db = await MedicalDatabase.open(database_params('MEDICAL'))

        injuries = await db.injuries.find_injuries(org_id, status='active')
        plan = await db.treatment_plans.get_by_id(plan_id, injury_id)

        await db.close()
    """

    def __init__(self, gateway: Gateway):
        """
        Initialize the repositories.

        Args:
            gateway: An open gateway; owned by the caller
        """
        self.connection = gateway

        self.injuries = InjuryRepository(gateway)
        self.injury_updates = InjuryUpdateRepository(gateway)
        self.treatments = TreatmentRepository(gateway)
        self.treatment_plans = TreatmentPlanRepository(gateway)
        self.treatment_plan_items = TreatmentPlanItemRepository(gateway)
        self.availability = PlayerAvailabilityRepository(gateway)
        self.documents = MedicalDocumentRepository(gateway)

        self.migrations = MigrationManager(gateway)

    @classmethod
    async def open(
        cls,
        conn_params: Dict[str, Any],
        service: str = DEFAULT_SERVICE,
        auto_migrate: bool = True,
        strict: bool = False,
    ) -> 'MedicalDatabase':
        """
        Connect and build the database interface.

        Args:
            conn_params: Database connection parameters
            service: Owning service name
            auto_migrate: Whether to run pending migrations on startup
            strict: Fail instead of continuing with an unavailable database
        """
        gateway = await connect(conn_params, service, strict=strict)
        db = cls(gateway)

        if auto_migrate and await gateway.health_check():
            await db.migrations.run_migrations()

        return db

    async def close(self) -> None:
        await self.connection.close()

    async def health_check(self) -> bool:
        """Check if database connection is healthy."""
        return await self.connection.health_check()

    @asynccontextmanager
    async def transaction(self, action: str = 'running transaction'):
        """
        Yield a MedicalDatabase whose repositories share one transaction.

        Args:
            action: Describes the unit of work in ``DatabaseError`` messages
                when the transaction cannot be opened or committed
        """
        async with guarded_transaction(self.connection, action) as tx:
            yield MedicalDatabase(tx)

    async def get_stats(self, organization_id: str, team_id: Optional[str] = None) -> Dict[str, int]:
        """Get injury counts for an organization, optionally for one team."""
        filters = {'team_id': team_id} if team_id else {}
        return {
            'injuries': await self.injuries.count_injuries(organization_id, **filters),
            'active': await self.injuries.count_injuries(organization_id, status='active', **filters),
            'recovering': await self.injuries.count_injuries(organization_id, status='recovering', **filters),
            'resolved': await self.injuries.count_injuries(organization_id, status='resolved', **filters),
            'chronic': await self.injuries.count_injuries(organization_id, status='chronic', **filters),
        }
