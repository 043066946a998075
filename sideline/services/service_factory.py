"""
Service factory for dependency injection.

Builds match sessions and their collaborators with shared, configurable
dependencies (time source, validation rules, persistence, export).
"""
from pathlib import Path
from typing import Callable, Optional, Union

from ..models import MatchState, TeamConfig
from .clock import Clock
from .formation_validator import FormationValidationService
from .match_report_service import FinalStatsExporter, MatchReportService
from .match_session import MatchSession
from .persistence_service import JsonFilePersistenceManager, PersistenceManager
from .substitution_manager import SubstitutionManager


class ServiceFactory:
    """
    Factory for creating service instances with their dependencies injected.
    """

    def __init__(self, time_source: Optional[Callable[[], int]] = None):
        """Initialize factory with default configurations."""
        self.time_source = time_source
        self._validation_service: Optional[FormationValidationService] = None
        self._export_service: Optional[FinalStatsExporter] = None

    def create_clock(self, state: Optional[MatchState] = None) -> Clock:
        """Clock over the timer marks of ``state``."""
        return Clock(state.timer if state is not None else None, self.time_source)

    def create_substitution_manager(self, team_config: TeamConfig,
                                    clock: Optional[Clock] = None) -> SubstitutionManager:
        """
        Create a SubstitutionManager.

        Args:
            team_config: Team configuration the manager enforces
            clock: Pause-aware clock; a fresh one when omitted

        Returns:
            Configured SubstitutionManager instance
        """
        return SubstitutionManager(team_config, clock or self.create_clock(),
                                   self._get_validation_service())

    def create_persistence_manager(self, file_path: Union[str, Path]) -> PersistenceManager:
        """JSON file persistence at ``file_path``."""
        return JsonFilePersistenceManager(file_path)

    def create_match_session(self, state: Optional[MatchState] = None,
                             persistence: Optional[PersistenceManager] = None) -> MatchSession:
        """
        Create a MatchSession.

        Args:
            state: Existing state to control (a fresh match when omitted)
            persistence: Where snapshots are saved after each command

        Returns:
            Configured MatchSession instance
        """
        return MatchSession(state, time_source=self.time_source, persistence=persistence,
                            validation_service=self._get_validation_service())

    def restore_match_session(self, persistence: PersistenceManager) -> MatchSession:
        """Rebuild the saved session (or a fresh one) from ``persistence``."""
        return MatchSession.restore(persistence, time_source=self.time_source,
                                    validation_service=self._get_validation_service())

    def create_report_service(self, state: MatchState) -> MatchReportService:
        """Report service over ``state`` using the shared exporter."""
        return MatchReportService(state, export_service=self._get_export_service())

    def _get_validation_service(self) -> FormationValidationService:
        """Get singleton validation service."""
        if self._validation_service is None:
            self._validation_service = FormationValidationService()
        return self._validation_service

    def _get_export_service(self) -> FinalStatsExporter:
        """Get singleton export service."""
        if self._export_service is None:
            self._export_service = FinalStatsExporter()
        return self._export_service

    def configure_custom_validation_service(self, service: FormationValidationService) -> None:
        self._validation_service = service

    def configure_custom_export_service(self, exporter: FinalStatsExporter) -> None:
        self._export_service = exporter
