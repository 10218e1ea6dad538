from .history_service import HistoryService, ImportResult
from .allocation_service import AllocationService, AllocationTree, WeightConfig, compute
from .persistence_service import (
    TargetRepository, SqlAlchemyTargetRepository, SupabaseTargetRepository, get_target_repository
)
from .scenario_service import Scenario, ScenarioService
from .tracking_service import TrackingService

__all__ = [
    'HistoryService',
    'ImportResult',
    'AllocationService',
    'AllocationTree',
    'WeightConfig',
    'compute',
    'TargetRepository',
    'SqlAlchemyTargetRepository',
    'SupabaseTargetRepository',
    'get_target_repository',
    'Scenario',
    'ScenarioService',
    'TrackingService'
]
