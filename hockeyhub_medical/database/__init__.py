"""
Database Module for HockeyHub Medical
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Scoped, parameterized data access for the medical service.

:copyright: (c) 2024-present HockeyHub
"""

__title__ = 'hockeyhub medical database'
__author__ = 'HockeyHub'
__license__ = 'None'
__version__ = '0.3.0'
__copyright__ = 'Copyright 2024-present HockeyHub'

from .base import (
    Gateway, DatabaseConnection, TransactionConnection, UnavailableDatabase,
    BaseRepository, MigrationManager, connect, guarded_transaction
)
from .database import MedicalDatabase
from .repositories import (
    InjuryRepository, InjuryUpdateRepository, TreatmentRepository,
    TreatmentPlanRepository, TreatmentPlanItemRepository,
    PlayerAvailabilityRepository, MedicalDocumentRepository
)
from ..errors import DatabaseError, DatabaseUnavailableError, InvalidInputError

__all__ = [
    'MedicalDatabase',
    'Gateway',
    'DatabaseConnection',
    'TransactionConnection',
    'UnavailableDatabase',
    'BaseRepository',
    'MigrationManager',
    'connect',
    'guarded_transaction',
    'DatabaseError',
    'DatabaseUnavailableError',
    'InvalidInputError',
    'InjuryRepository',
    'InjuryUpdateRepository',
    'TreatmentRepository',
    'TreatmentPlanRepository',
    'TreatmentPlanItemRepository',
    'PlayerAvailabilityRepository',
    'MedicalDocumentRepository',
]
