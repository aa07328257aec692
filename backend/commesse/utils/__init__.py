# =============================================================================
# ZAPP COMMESSE v1.0 - UTILS PACKAGE
# =============================================================================
#   utils/dates.py     - format_data_it, giorni_mancanti
#   utils/response.py  - success_response, error_response
# =============================================================================

from .dates import format_data_it, giorni_mancanti
from .response import success_response, error_response

__all__ = [
    'format_data_it',
    'giorni_mancanti',
    'success_response',
    'error_response',
]
