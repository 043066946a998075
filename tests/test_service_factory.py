import unittest

from sideline.models import MatchState, TeamConfig
from sideline.services import (
    FinalStatsExporter, FormationValidationService, InMemoryPersistenceManager,
    JsonFilePersistenceManager, ServiceFactory,
)


class ServiceFactoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.factory = ServiceFactory(time_source=lambda: 42)

    def test_shared_validation_service(self) -> None:
        session = self.factory.create_match_session()
        manager = self.factory.create_substitution_manager(TeamConfig())
        self.assertIs(session.validation_service, manager.validation_service)

    def test_custom_services_are_injected(self) -> None:
        validation = FormationValidationService()
        exporter = FinalStatsExporter()
        self.factory.configure_custom_validation_service(validation)
        self.factory.configure_custom_export_service(exporter)

        self.assertIs(self.factory.create_match_session().validation_service, validation)
        self.assertIs(self.factory.create_report_service(MatchState()).export_service, exporter)

    def test_clock_uses_factory_time_source(self) -> None:
        state = MatchState()
        clock = self.factory.create_clock(state)
        self.assertEqual(clock.now(), 42)
        self.assertIs(clock.timer, state.timer)

    def test_persistence_and_restore(self) -> None:
        self.assertIsInstance(self.factory.create_persistence_manager("match.json"), JsonFilePersistenceManager)
        session = self.factory.restore_match_session(InMemoryPersistenceManager())
        self.assertEqual(session.clock.now(), 42)
