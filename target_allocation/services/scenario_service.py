# target_allocation/services/scenario_service.py
from collections import OrderedDict
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, Optional, Tuple

from target_allocation.config import config
from target_allocation.core.participation import MONTHS
from target_allocation.core.series import HistoricalSeries
from target_allocation.exceptions import PersistenceError, ScenarioLockedError
from target_allocation.logging_setup import get_logger, logger as log_manager
from target_allocation.records import CalendarConfig, IndexParameters, ScenarioStatus
from target_allocation.utils.date_utils import QUARTERS
from target_allocation.utils.math_utils import round_half_up, safe_ratio
from .allocation_service import AllocationTree, WeightConfig, compute
from .persistence_service import TargetRepository

logger = get_logger('scenario')

@dataclass(frozen=True)
class Scenario:
    """A named parameter snapshot and the plan computed from it.

    Locked scenarios cannot be edited; ``new_draft`` starts a fresh copy.
    """
    name: str
    index_parameters: IndexParameters
    weight_config: WeightConfig
    calendar_config: CalendarConfig
    tree: AllocationTree
    status: ScenarioStatus = ScenarioStatus.DRAFT
    justification: str = ''

    @property
    def is_locked(self) -> bool:
        return self.status is ScenarioStatus.LOCKED

    def ensure_editable(self):
        if self.is_locked:
            raise ScenarioLockedError(
                f"Scenario '{self.name}' is locked; create a new draft to change it",
                details={'scenario': self.name}
            )

    def lock(self, justification: str = '') -> 'Scenario':
        self.ensure_editable()
        return replace(self, status=ScenarioStatus.LOCKED, justification=justification or '')

    def new_draft(self, name: Optional[str] = None) -> 'Scenario':
        return replace(self, name=name or self.name, status=ScenarioStatus.DRAFT, justification='')

def default_index_parameters() -> IndexParameters:
    """Baseline-scenario indices from configuration."""
    return IndexParameters(**config.index_defaults)

class ScenarioService:
    """Service for building, comparing and consolidating scenarios."""

    def __init__(self, series: HistoricalSeries):
        """Initialize the scenario service.

        Args:
            series: Historical series every scenario is computed from
        """
        self.series = series

    def build_scenario(
        self,
        name: str,
        index_parameters: Optional[IndexParameters] = None,
        weight_config: Optional[WeightConfig] = None,
        calendar_config: Optional[CalendarConfig] = None
    ) -> Scenario:
        """Compute a draft scenario.

        Args:
            name: Scenario label
            index_parameters: Indices; configuration defaults when omitted
            weight_config: Weighting choice
            calendar_config: Target year and selling-day overrides

        Returns:
            Draft Scenario
        """
        index_parameters = index_parameters or default_index_parameters()
        weight_config = weight_config or WeightConfig()
        calendar_config = calendar_config or CalendarConfig()

        tree = compute(self.series, index_parameters, weight_config, calendar_config)
        logger.info(f"Built scenario '{name}': annual target {tree.annual_target.amount}")

        return Scenario(
            name=name,
            index_parameters=index_parameters,
            weight_config=weight_config,
            calendar_config=calendar_config,
            tree=tree
        )

    def build_pair(
        self,
        simulated_parameters: IndexParameters,
        weight_config: Optional[WeightConfig] = None,
        calendar_config: Optional[CalendarConfig] = None,
        baseline_parameters: Optional[IndexParameters] = None
    ) -> Tuple[Scenario, Scenario]:
        """Baseline and simulated scenarios sharing weights and calendar."""
        baseline = self.build_scenario('baseline', baseline_parameters, weight_config, calendar_config)
        simulated = self.build_scenario('simulated', simulated_parameters, weight_config, calendar_config)
        return baseline, simulated

    def _rebuild(self, scenario: Scenario, **changes) -> Scenario:
        scenario.ensure_editable()
        updated = replace(scenario, **changes)
        return self.build_scenario(
            updated.name,
            updated.index_parameters,
            updated.weight_config,
            updated.calendar_config
        )

    def update_indices(self, scenario: Scenario, index_parameters: IndexParameters) -> Scenario:
        return self._rebuild(scenario, index_parameters=index_parameters)

    def update_weights(self, scenario: Scenario, weight_config: WeightConfig) -> Scenario:
        return self._rebuild(scenario, weight_config=weight_config)

    def update_calendar(self, scenario: Scenario, calendar_config: CalendarConfig) -> Scenario:
        return self._rebuild(scenario, calendar_config=calendar_config)

    @staticmethod
    def company_daily_average(tree: AllocationTree) -> int:
        """Annual target over the year's selling days, rounded half up."""
        days = sum(tree.selling_days.get(m, 0) for m in MONTHS)
        if not days:
            return 0
        total = sum(tree.monthly_amount(m) for m in MONTHS)
        return int(round_half_up(Decimal(total) / Decimal(days)))

    def compare(self, first: Scenario, second: Scenario) -> Dict:
        """Month-by-month and annual differences of ``second`` against ``first``.

        Monthly delta percent is relative to the first scenario, 1.0 when
        only the second has a target and 0.0 when neither has. Annual delta
        percent is None when the first total is zero.

        Returns:
            Dictionary with months, totals, growth vs baseline, quarters and
            company daily averages
        """
        tree_a, tree_b = first.tree, second.tree

        months = []
        for m in MONTHS:
            value_a = tree_a.monthly_amount(m)
            value_b = tree_b.monthly_amount(m)
            delta = value_b - value_a
            if value_a:
                delta_pct = delta / value_a
            else:
                delta_pct = 1.0 if value_b else 0.0
            months.append({
                'month': m,
                'first': value_a,
                'second': value_b,
                'delta': delta,
                'delta_pct': delta_pct
            })

        total_a = sum(row['first'] for row in months)
        total_b = sum(row['second'] for row in months)

        quarters = OrderedDict()
        for q, quarter_months in QUARTERS.items():
            value_a = sum(tree_a.monthly_amount(m) for m in quarter_months)
            value_b = sum(tree_b.monthly_amount(m) for m in quarter_months)
            quarters[q] = {'first': value_a, 'second': value_b, 'delta': value_b - value_a}

        def growth(tree, total):
            ratio = safe_ratio(tree.to_currency(total), tree.annual_target.baseline_total)
            return ratio - 1.0 if ratio is not None else None

        return {
            'first': first.name,
            'second': second.name,
            'months': months,
            'total_first': total_a,
            'total_second': total_b,
            'delta': total_b - total_a,
            'delta_pct': safe_ratio(total_b - total_a, total_a),
            'growth_first': growth(tree_a, total_a),
            'growth_second': growth(tree_b, total_b),
            'quarters': quarters,
            'daily_average_first': self.company_daily_average(tree_a),
            'daily_average_second': self.company_daily_average(tree_b)
        }

    def consolidate(
        self,
        scenario: Scenario,
        repository: TargetRepository,
        justification: str = ''
    ) -> Scenario:
        """Lock a scenario and hand its store-month targets to storage.

        The locked scenario is returned only after every row was saved; on
        failure the draft is left untouched so the caller can retry.

        Raises:
            ScenarioLockedError: If the scenario is already locked
            PersistenceError: If storage fails (retryable)
        """
        locked = scenario.lock(justification)
        run_info = log_manager.run_start_log(
            'consolidate',
            f"scenario={scenario.name} year={scenario.tree.year} rows={len(scenario.tree.stores)}"
        )

        try:
            count = repository.save_targets(locked.tree.year, locked.tree.stores, locked=True)
        except PersistenceError as e:
            log_manager.run_end_log(run_info, success=False, result=str(e))
            logger.error(f"Consolidation of '{scenario.name}' failed: {str(e)}")
            raise

        log_manager.run_end_log(run_info, success=True, result=f"{count} rows")
        logger.info(f"Scenario '{scenario.name}' locked with {count} monthly targets")
        return locked
