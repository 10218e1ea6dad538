from typing import Dict, Mapping

from target_allocation.records import IndexParameters, CalendarConfig

def validate_index_parameters(params: IndexParameters) -> Dict[str, str]:
    """Validate index parameters.

    Args:
        params: Index parameters to validate

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    if params.inflation_rate < 0:
        errors['inflation_rate'] = 'Inflation rate must be >= 0'

    if params.regulated_price_index < 0:
        errors['regulated_price_index'] = 'Regulated price index must be >= 0'

    if not 0 <= params.category_participation <= 1:
        errors['category_participation'] = 'Category participation must be between 0 and 1'

    return errors

def validate_weight_values(weights: Mapping[str, float], known_keys) -> Dict[str, str]:
    """Validate individual custom weight entries.

    Args:
        weights: Weight value per group key
        known_keys: Group keys present in the chosen dimension

    Returns:
        Dictionary with validation errors keyed by group key
    """
    errors = {}
    known = set(known_keys)

    for key, value in weights.items():
        if key not in known:
            errors[key] = 'Unknown group key'
        elif value is None or value != value:
            errors[key] = 'Weight is not a number'
        elif value < 0 or value > 1:
            errors[key] = 'Weight must be between 0 and 1'

    return errors

def validate_calendar_config(calendar_config: CalendarConfig) -> Dict[str, str]:
    """Validate selling-day overrides.

    Args:
        calendar_config: Calendar configuration

    Returns:
        Dictionary with validation errors
    """
    errors = {}

    for month, days in (calendar_config.selling_days or {}).items():
        if month not in range(1, 13):
            errors[str(month)] = 'Month must be between 1 and 12'
        elif days is None or days <= 0:
            errors[str(month)] = 'Selling days must be > 0'
        elif days > 31:
            errors[str(month)] = 'Selling days cannot exceed 31'

    return errors
