import argparse
import sys

from tabulate import tabulate

from target_allocation.config import config
from target_allocation.exceptions import AllocationError
from target_allocation.logging_setup import logger, get_logger, log_exception
from target_allocation.records import CalendarConfig, Dimension, IndexParameters, WeightStrategy

MONTH_NAMES = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']

def _parse_pairs(text, value_type):
    """Parse 'key=value,key=value' into a dictionary."""
    pairs = {}
    if not text:
        return pairs
    for item in text.split(','):
        if not item.strip():
            continue
        key, sep, value = item.partition('=')
        if not sep:
            raise argparse.ArgumentTypeError(f"Expected key=value, got {item!r}")
        pairs[key.strip()] = value_type(value.strip())
    return pairs

def _money(tree, amount):
    return f"{tree.to_currency(amount):,.2f}"

def _pct(value):
    return '-' if value is None else f"{value * 100:+.1f}%"

def _index_parameters(args):
    defaults = config.index_defaults
    return IndexParameters(
        inflation_rate=args.inflation if args.inflation is not None else defaults['inflation_rate'],
        regulated_price_index=(
            args.regulated_index if args.regulated_index is not None else defaults['regulated_price_index']
        ),
        category_participation=(
            args.participation if args.participation is not None else defaults['category_participation']
        ),
        growth_rate=args.growth if args.growth is not None else defaults['growth_rate']
    )

def _weight_config(args):
    from target_allocation.services.allocation_service import WeightConfig

    return WeightConfig(
        dimension=Dimension.from_string(args.dimension),
        strategy=WeightStrategy.from_string(args.strategy),
        overrides=_parse_pairs(args.weights, float),
        inner_base=WeightStrategy.from_string(args.inner_base) if args.inner_base else None
    )

def _calendar_config(args):
    selling_days = {int(k): v for k, v in _parse_pairs(args.selling_days, int).items()}
    return CalendarConfig(year=args.year, selling_days=selling_days)

def _load_series(args):
    from target_allocation.services.history_service import HistoryService

    series, result = HistoryService(delimiter=args.delimiter).load_series(args.history)
    summary = result.summary()
    print(
        f"History: {summary['records']} records, {summary['stores']} stores, "
        f"{summary['first_year']}-{summary['last_year']}, {summary['skipped']} rows skipped"
    )
    return series

def show_plan(args):
    """Compute a plan and print its monthly, group and week breakdown."""
    from target_allocation.services.allocation_service import AllocationService

    log = get_logger('app')
    series = _load_series(args)
    service = AllocationService(series)
    tree = service.compute(_index_parameters(args), _weight_config(args), _calendar_config(args))
    summary = service.summarize_plan(tree)

    print(f"\nAnnual target {tree.year}: {_money(tree, tree.annual_target.amount)} "
          f"(composite rate {tree.annual_target.composite_rate * 100:.2f}%, "
          f"variation vs {tree.baseline_year} {_pct(summary['variation_vs_baseline'])})")

    table = [
        [MONTH_NAMES[m.month - 1], _money(tree, m.amount), f"{tree.participation[m.month] * 100:.2f}%",
         tree.selling_days[m.month]]
        for m in tree.monthly
    ]
    print(tabulate(table, headers=['Month', 'Target', 'Participation', 'Selling days']))

    print(f"\n{tree.dimension.value} weights ({tree.weights.strategy.value}):")
    groups = [
        [w.key, f"{w.value * 100:.2f}%", _money(tree, tree.group_amount(w.key))]
        for w in tree.weights.weights
    ]
    print(tabulate(groups, headers=['Group', 'Weight', 'Annual target']))

    if args.weeks:
        weeks = [
            [w.group_key, MONTH_NAMES[w.month - 1], w.week_index, w.start_date, w.end_date,
             w.day_count, _money(tree, w.amount)]
            for w in tree.weeks
        ]
        print()
        print(tabulate(weeks, headers=['Group', 'Month', 'Week', 'Start', 'End', 'Days', 'Target']))

    if tree.unassigned_stores:
        print(f"\nUnassigned stores: {', '.join(tree.unassigned_stores)}")

    log.info(f"Plan for {tree.year} shown ({len(tree.stores)} store rows)")
    return True

def compare_scenarios(args):
    """Compare the configured baseline indices with simulated ones."""
    from target_allocation.services.scenario_service import ScenarioService

    series = _load_series(args)
    service = ScenarioService(series)
    baseline, simulated = service.build_pair(
        _index_parameters(args), _weight_config(args), _calendar_config(args)
    )
    comparison = service.compare(baseline, simulated)
    tree = baseline.tree

    table = [
        [MONTH_NAMES[row['month'] - 1], _money(tree, row['first']), _money(tree, row['second']),
         _money(tree, row['delta']), _pct(row['delta_pct'])]
        for row in comparison['months']
    ]
    table.append([
        'Total', _money(tree, comparison['total_first']), _money(tree, comparison['total_second']),
        _money(tree, comparison['delta']), _pct(comparison['delta_pct'])
    ])
    print(tabulate(table, headers=['Month', 'Baseline', 'Simulated', 'Delta', 'Delta %']))

    quarters = [
        [f"Q{q}", _money(tree, v['first']), _money(tree, v['second']), _money(tree, v['delta'])]
        for q, v in comparison['quarters'].items()
    ]
    print()
    print(tabulate(quarters, headers=['Quarter', 'Baseline', 'Simulated', 'Delta']))

    print(f"\nGrowth vs {tree.baseline_year}: baseline {_pct(comparison['growth_first'])}, "
          f"simulated {_pct(comparison['growth_second'])}")
    print(f"Daily average: baseline {_money(tree, comparison['daily_average_first'])}, "
          f"simulated {_money(tree, comparison['daily_average_second'])}")
    return True

def consolidate_plan(args):
    """Lock a scenario and write its store-month targets to the database."""
    from target_allocation.db import db, session_scope
    from target_allocation.services.persistence_service import get_target_repository
    from target_allocation.services.scenario_service import ScenarioService

    series = _load_series(args)
    service = ScenarioService(series)
    scenario = service.build_scenario(
        args.name, _index_parameters(args), _weight_config(args), _calendar_config(args)
    )

    if db.db_type == "supabase":
        locked = service.consolidate(scenario, get_target_repository(), args.justification)
    else:
        with session_scope() as session:
            locked = service.consolidate(scenario, get_target_repository(session), args.justification)

    print(f"Scenario '{locked.name}' locked: {len(locked.tree.stores)} monthly targets saved "
          f"for {locked.tree.year}")
    return True

def track_plan(args):
    """Print realized vs planned for the company and per group."""
    from target_allocation.services.allocation_service import AllocationService
    from target_allocation.services.history_service import HistoryService
    from target_allocation.services.tracking_service import TrackingService

    series = _load_series(args)
    tree = AllocationService(series).compute(
        _index_parameters(args), _weight_config(args), _calendar_config(args)
    )
    actuals = HistoryService(delimiter=args.delimiter).load_actuals(args.actuals)
    tracking = TrackingService(tree, series, actuals.records)

    rows = []
    for row in tracking.company_report():
        label = MONTH_NAMES[row['month'] - 1] if row['month'] else 'Year'
        rows.append([label, f"{row['planned']:,.2f}", f"{row['realized']:,.2f}", f"{row['delta']:,.2f}",
                     _pct(row['attainment'] - 1.0 if row['attainment'] is not None else None),
                     _pct(row['growth_vs_baseline'])])
    print(tabulate(rows, headers=['Period', 'Planned', 'Realized', 'Delta', 'vs Plan', 'vs Baseline']))

    dimension = Dimension.from_string(args.group_by)
    groups = [
        [key, f"{v.planned:,.2f}", f"{v.realized:,.2f}", f"{v.delta:,.2f}", _pct(v.growth_vs_baseline)]
        for key, v in tracking.group_report(dimension, args.month).items()
    ]
    print()
    print(tabulate(groups, headers=[dimension.value, 'Planned', 'Realized', 'Delta', 'vs Baseline']))
    return True

def setup_database(drop=False):
    """Create the stores and monthly-target tables."""
    from target_allocation.db import db, create_all_tables, drop_all_tables

    log = get_logger('app')
    if db.db_type == "supabase":
        log.info("Supabase tables are managed by the backend; nothing to create")
        return True

    if drop:
        drop_all_tables()
        log.info("Dropped existing tables")
    create_all_tables()
    log.info("Database tables created")
    return True

def _add_plan_arguments(subparser):
    subparser.add_argument('--history', required=True, help='Historical sales file (ano, mes, loja, venda_total)')
    subparser.add_argument('--delimiter', help='Field delimiter (sniffed when omitted)')
    subparser.add_argument('--year', type=int, help='Target year (baseline year + 1 by default)')
    subparser.add_argument('--dimension', default='loja', help='Weighting dimension: loja, cidade or estado')
    subparser.add_argument('--strategy', default='historico',
                           help='Weight strategy: historico, igualitario or personalizado')
    subparser.add_argument('--weights', help='Custom weights as key=fraction,key=fraction')
    subparser.add_argument('--inner-base', help='Split inside city/state groups: historico or igualitario')
    subparser.add_argument('--selling-days', help='Selling days per month as month=days,month=days')
    subparser.add_argument('--inflation', type=float, help='Inflation rate (fraction)')
    subparser.add_argument('--regulated-index', type=float, help='Regulated price index (fraction)')
    subparser.add_argument('--participation', type=float, help='Category participation (0-1)')
    subparser.add_argument('--growth', type=float, help='Growth rate (fraction, may be negative)')

def main(argv=None):
    """Main application entry point."""
    parser = argparse.ArgumentParser(description='Target Allocation Engine')

    parser.add_argument('--setup-db', action='store_true',
                        help='Set up the database schema')
    parser.add_argument('--drop-db', action='store_true',
                        help='Drop existing tables before setup')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    plan_parser = subparsers.add_parser('plan', help='Compute and show a plan')
    _add_plan_arguments(plan_parser)
    plan_parser.add_argument('--weeks', action='store_true', help='Show the weekly breakdown')

    compare_parser = subparsers.add_parser('compare', help='Compare baseline and simulated indices')
    _add_plan_arguments(compare_parser)

    consolidate_parser = subparsers.add_parser('consolidate', help='Lock a plan and save it')
    _add_plan_arguments(consolidate_parser)
    consolidate_parser.add_argument('--name', default='consolidated', help='Scenario name')
    consolidate_parser.add_argument('--justification', default='', help='Reason recorded with the lock')

    track_parser = subparsers.add_parser('track', help='Compare realized sales with the plan')
    _add_plan_arguments(track_parser)
    track_parser.add_argument('--actuals', required=True, help='Realized sales file (data, loja, venda_total)')
    track_parser.add_argument('--group-by', default='loja', help='Dimension for the group report')
    track_parser.add_argument('--month', type=int, help='Restrict the group report to one month')

    args = parser.parse_args(argv)

    commands = {
        'plan': show_plan,
        'compare': compare_scenarios,
        'consolidate': consolidate_plan,
        'track': track_plan
    }

    try:
        if args.setup_db:
            setup_database(args.drop_db)
            return 0

        if args.command not in commands:
            parser.print_help()
            return 1

        run_info = logger.run_start_log(args.command)
        try:
            commands[args.command](args)
        except Exception:
            logger.run_end_log(run_info, success=False)
            raise
        logger.run_end_log(run_info, success=True)
        return 0

    except (AllocationError, ValueError, argparse.ArgumentTypeError) as e:
        log_exception('app', e, f"Command {args.command or 'setup-db'} failed")
        print(f"Error: {e}", file=sys.stderr)
        return 1

if __name__ == "__main__":
    sys.exit(main())
