from .date_utils import get_days_in_month, get_month_weeks, convert_to_date, QUARTERS
from .math_utils import round_half_up, parse_br_decimal, safe_ratio, safe_share
from .validation import validate_index_parameters, validate_weight_values, validate_calendar_config

__all__ = [
    'get_days_in_month',
    'get_month_weeks',
    'QUARTERS',
    'convert_to_date',
    'round_half_up',
    'parse_br_decimal',
    'safe_ratio',
    'safe_share',
    'validate_index_parameters',
    'validate_weight_values',
    'validate_calendar_config'
]
