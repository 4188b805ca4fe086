"""
Database Module for HockeyHub Medical - Table Declarations
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Field-to-column maps, filters and scoping for every medical table.

Field names are the camelCase keys used by the service's API payloads. A key
that is not listed here never reaches SQL.

:copyright: (c) 2024-present HockeyHub
"""

from .query_builder import Table, contains, date_range, equals

INJURY_SEVERITIES = ('minor', 'moderate', 'severe', 'critical')
INJURY_STATUSES = ('active', 'recovering', 'resolved', 'chronic')
AVAILABILITY_STATUSES = ('available', 'limited', 'unavailable', 'day_to_day')


INJURIES = Table(
    'injuries',
    scope='organization_id',
    fields={
        'playerId': 'player_id',
        'teamId': 'team_id',
        'dateOccurred': 'date_occurred',
        'dateReported': 'date_reported',
        'bodyPart': 'body_part',
        'injuryType': 'injury_type',
        'mechanism': 'mechanism',
        'severity': 'severity',
        'description': 'description',
        'diagnosis': 'diagnosis',
        'estimatedReturnDate': 'estimated_return_date',
        'reportedByUserId': 'reported_by_user_id',
        'status': 'status',
    },
    read_only=('playerId', 'reportedByUserId'),
    required=('playerId', 'teamId', 'dateOccurred', 'bodyPart', 'injuryType', 'severity', 'reportedByUserId'),
    filters=(
        equals('player_id'),
        equals('team_id'),
        equals('status'),
        equals('severity'),
        equals('injury_type'),
        contains('body_part'),
        *date_range('date_occurred'),
    ),
    order_by='date_occurred DESC, created_at DESC',
)

INJURY_UPDATES = Table(
    'injury_updates',
    scope='injury_id',
    fields={
        'date': 'date',
        'note': 'note',
        'subjectiveAssessment': 'subjective_assessment',
        'objectiveAssessment': 'objective_assessment',
        'createdByUserId': 'created_by_user_id',
    },
    read_only=('createdByUserId',),
    required=('date', 'note', 'createdByUserId'),
    filters=date_range('date'),
    order_by='date DESC, created_at DESC',
)

TREATMENTS = Table(
    'treatments',
    scope='injury_id',
    fields={
        'date': 'date',
        'treatmentType': 'treatment_type',
        'notes': 'notes',
        'duration': 'duration',
        'performedByUserId': 'performed_by_user_id',
    },
    read_only=('performedByUserId',),
    required=('date', 'treatmentType', 'performedByUserId'),
    filters=(
        equals('treatment_type'),
        equals('performed_by_user_id'),
        contains('notes'),
        *date_range('date'),
    ),
    order_by='date DESC, created_at DESC',
)

TREATMENT_PLANS = Table(
    'treatment_plans',
    scope='injury_id',
    fields={
        'phase': 'phase',
        'description': 'description',
        'expectedDuration': 'expected_duration',
        'goals': 'goals',
        'precautions': 'precautions',
        'createdByUserId': 'created_by_user_id',
    },
    read_only=('createdByUserId',),
    required=('phase', 'description', 'createdByUserId'),
    filters=(equals('phase'),),
    order_by='created_at ASC',
)

TREATMENT_PLAN_ITEMS = Table(
    'treatment_plan_items',
    scope='treatment_plan_id',
    fields={
        'description': 'description',
        'frequency': 'frequency',
        'duration': 'duration',
        'sets': 'sets',
        'reps': 'reps',
        'progressionCriteria': 'progression_criteria',
        'exerciseId': 'exercise_id',
        'sequence': 'sequence',
    },
    required=('description',),
    filters=(equals('exercise_id'),),
    order_by='sequence ASC, created_at ASC',
)

PLAYER_AVAILABILITY = Table(
    'player_availability_statuses',
    scope='player_id',
    fields={
        'currentStatus': 'current_status',
        'effectiveFrom': 'effective_from',
        'expectedEndDate': 'expected_end_date',
        'injuryId': 'injury_id',
        'notes': 'notes',
        'updatedByUserId': 'updated_by_user_id',
        'teamId': 'team_id',
    },
    # Rows are versions; nothing is ever updated in place
    read_only=('currentStatus', 'effectiveFrom', 'expectedEndDate', 'injuryId',
               'notes', 'updatedByUserId', 'teamId'),
    required=('currentStatus', 'effectiveFrom', 'updatedByUserId', 'teamId'),
    filters=(
        equals('current_status'),
        *date_range('effective_from'),
    ),
    order_by='effective_from DESC, created_at DESC',
)

MEDICAL_DOCUMENTS = Table(
    'medical_documents',
    scope='player_id',
    fields={
        'title': 'title',
        'documentType': 'document_type',
        'filePath': 'file_path',
        'fileSize': 'file_size',
        'mimeType': 'mime_type',
        'injuryId': 'injury_id',
        'uploadedByUserId': 'uploaded_by_user_id',
        'teamId': 'team_id',
    },
    read_only=('title', 'documentType', 'filePath', 'fileSize', 'mimeType',
               'injuryId', 'uploadedByUserId', 'teamId'),
    required=('title', 'documentType', 'filePath', 'uploadedByUserId', 'teamId'),
    filters=(
        equals('document_type'),
        equals('injury_id'),
        equals('team_id'),
        contains('title'),
    ),
)

ALL_TABLES = (
    INJURIES,
    INJURY_UPDATES,
    TREATMENTS,
    TREATMENT_PLANS,
    TREATMENT_PLAN_ITEMS,
    PLAYER_AVAILABILITY,
    MEDICAL_DOCUMENTS,
)
