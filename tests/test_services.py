"""
Tests for multi-table medical workflows.

Business rule: an injury report and the records created with it are written
atomically. If any insert fails, nothing is kept.
"""
from datetime import date

import pytest

from hockeyhub_medical.database import MedicalDatabase, UnavailableDatabase
from hockeyhub_medical.errors import DatabaseError, DatabaseUnavailableError, InvalidInputError
from hockeyhub_medical.services import MedicalRecordsService

from conftest import INJURY_ID, ORG_ID, PLAYER_ID, STAFF_ID, TEAM_ID


@pytest.fixture
def service(db):
    return MedicalRecordsService(db)


@pytest.fixture
def new_injury():
    return {
        'playerId': PLAYER_ID,
        'teamId': TEAM_ID,
        'dateOccurred': date(2025, 6, 20),
        'bodyPart': 'wrist',
        'injuryType': 'fracture',
        'severity': 'severe',
        'description': 'Wrist fracture from fall',
        'reportedByUserId': STAFF_ID,
    }


@pytest.mark.asyncio
class TestReportInjury:

    async def test_injury_plan_and_availability_are_committed_together(self, service, gateway, injury_row, new_injury):
        gateway.respond([injury_row], [{'id': 'plan1'}], [{'id': 'status1'}])

        result = await service.report_injury(
            ORG_ID,
            new_injury,
            initial_plan={'phase': 'acute', 'description': 'Immobilise', 'createdByUserId': STAFF_ID},
            availability={'currentStatus': 'unavailable', 'effectiveFrom': date(2025, 6, 20), 'updatedByUserId': STAFF_ID},
        )

        assert result == {'injury': injury_row, 'plan': {'id': 'plan1'}, 'availability': {'id': 'status1'}}
        assert gateway.transactions == ['BEGIN', 'COMMIT']
        assert [sql.split(' (')[0] for sql, _ in gateway.calls] == [
            'INSERT INTO injuries',
            'INSERT INTO treatment_plans',
            'INSERT INTO player_availability_statuses',
        ]
        plan_params = gateway.calls[1][1]
        assert plan_params == [INJURY_ID, 'acute', 'Immobilise', STAFF_ID]
        availability_params = gateway.calls[2][1]
        assert availability_params == [PLAYER_ID, 'unavailable', date(2025, 6, 20), INJURY_ID, STAFF_ID, TEAM_ID]

    async def test_failed_plan_insert_rolls_back_the_injury(self, service, gateway, injury_row, new_injury):
        gateway.respond([injury_row], RuntimeError('null value in column "phase"'))

        with pytest.raises(DatabaseError, match='Database error while creating treatment plan'):
            await service.report_injury(
                ORG_ID, new_injury,
                initial_plan={'phase': 'acute', 'description': 'Immobilise', 'createdByUserId': STAFF_ID},
            )

        assert gateway.transactions == ['BEGIN', 'ROLLBACK']

    async def test_injury_alone(self, service, gateway, injury_row, new_injury):
        gateway.respond([injury_row])

        result = await service.report_injury(ORG_ID, new_injury)

        assert result == {'injury': injury_row}
        assert len(gateway.calls) == 1

    async def test_invalid_injury_rolls_back_before_any_insert(self, service, gateway, new_injury):
        del new_injury['bodyPart']

        with pytest.raises(InvalidInputError):
            await service.report_injury(ORG_ID, new_injury)

        assert gateway.calls == []
        assert gateway.transactions == ['BEGIN', 'ROLLBACK']

    async def test_unavailable_database_names_the_action(self, new_injury):
        service = MedicalRecordsService(MedicalDatabase(UnavailableDatabase('MEDICAL')))

        with pytest.raises(DatabaseError) as excinfo:
            await service.report_injury(ORG_ID, new_injury)

        assert str(excinfo.value) == 'Database error while reporting injury.'
        assert isinstance(excinfo.value.__cause__, DatabaseUnavailableError)


@pytest.mark.asyncio
class TestListAndDetails:

    async def test_list_injuries_pages_and_counts(self, service, gateway, injury_row):
        gateway.respond([injury_row], [{'total': 45}])

        page = await service.list_injuries(ORG_ID, page=2, limit=20, status='active')

        assert page == {'data': [injury_row], 'total': 45, 'page': 2, 'limit': 20, 'total_pages': 3}
        find_params = gateway.calls[0][1]
        assert find_params == [ORG_ID, 'active', 20, 20]
        assert gateway.calls[1][1] == [ORG_ID, 'active']

    async def test_empty_listing_has_no_pages(self, service):
        page = await service.list_injuries(ORG_ID)

        assert page['total'] == 0
        assert page['total_pages'] == 0

    async def test_page_must_be_positive(self, service, gateway):
        with pytest.raises(InvalidInputError):
            await service.list_injuries(ORG_ID, page=0)
        assert gateway.calls == []

    async def test_details_of_unknown_injury(self, service, gateway):
        assert await service.get_injury_details(INJURY_ID, ORG_ID) is None
        assert len(gateway.calls) == 1

    async def test_details_include_children(self, service, gateway, injury_row):
        gateway.respond(
            [injury_row],
            [{'id': 'plan1', 'phase': 'acute'}],
            [{'id': 'item1', 'sequence': 1}],
            [{'id': 'update1'}],
            [{'id': 'treatment1'}],
        )

        details = await service.get_injury_details(INJURY_ID, ORG_ID)

        assert details['id'] == INJURY_ID
        assert details['plans'] == [{'id': 'plan1', 'phase': 'acute', 'items': [{'id': 'item1', 'sequence': 1}]}]
        assert details['updates'] == [{'id': 'update1'}]
        assert details['treatments'] == [{'id': 'treatment1'}]

    async def test_details_read_every_page_of_a_long_history(self, service, gateway, injury_row):
        first_page = [{'id': f'treatment{n}'} for n in range(100)]
        gateway.respond(
            [injury_row],
            [],
            [],
            first_page,
            [{'id': 'treatment100'}],
        )

        details = await service.get_injury_details(INJURY_ID, ORG_ID)

        assert len(details['treatments']) == 101
        assert details['treatments'][-1] == {'id': 'treatment100'}
        treatment_pages = [params for sql, params in gateway.calls if 'FROM treatments' in sql]
        assert treatment_pages == [[INJURY_ID, 100, 0], [INJURY_ID, 100, 100]]

    async def test_treatment_for_other_organization_is_refused(self, service, gateway):
        result = await service.record_treatment(
            INJURY_ID, 'other-org',
            {'date': date(2025, 6, 21), 'treatmentType': 'physiotherapy', 'performedByUserId': STAFF_ID}
        )

        assert result is None
        assert len(gateway.calls) == 1


@pytest.mark.asyncio
class TestCloseInjury:

    async def test_resolves_and_clears_player(self, service, gateway, injury_row):
        gateway.respond([injury_row], [{**injury_row, 'status': 'resolved'}], [{'id': 'status2'}])

        injury = await service.close_injury(INJURY_ID, ORG_ID, STAFF_ID, as_of=date(2025, 7, 15))

        assert injury['status'] == 'resolved'
        assert gateway.transactions == ['BEGIN', 'COMMIT']
        assert gateway.calls[0][0].endswith('FOR UPDATE')
        assert gateway.calls[1][1] == ['resolved', INJURY_ID, ORG_ID]
        assert gateway.calls[2][1] == [PLAYER_ID, 'available', date(2025, 7, 15), INJURY_ID, STAFF_ID, TEAM_ID]

    async def test_unknown_injury_is_not_closed(self, service, gateway):
        assert await service.close_injury(INJURY_ID, ORG_ID, STAFF_ID) is None
        assert len(gateway.calls) == 1

    async def test_closing_twice_writes_once(self, service, gateway, injury_row):
        resolved = {**injury_row, 'status': 'resolved'}
        gateway.respond([resolved])

        injury = await service.close_injury(INJURY_ID, ORG_ID, STAFF_ID)

        assert injury == resolved
        assert len(gateway.calls) == 1
        assert not any(sql.startswith(('UPDATE', 'INSERT')) for sql, _ in gateway.calls)
        assert gateway.transactions == ['BEGIN', 'COMMIT']

    async def test_unavailable_database_names_the_action(self):
        service = MedicalRecordsService(MedicalDatabase(UnavailableDatabase('MEDICAL')))

        with pytest.raises(DatabaseError) as excinfo:
            await service.close_injury(INJURY_ID, ORG_ID, STAFF_ID)

        assert str(excinfo.value) == 'Database error while closing injury.'
        assert isinstance(excinfo.value.__cause__, DatabaseUnavailableError)
