# =============================================================================
# ZAPP COMMESSE v1.0 - UTILS/RESPONSE
# =============================================================================
# Builder per risposte API standardizzate
# =============================================================================

from typing import Any, Dict


def success_response(data: Any = None, message: str = None, **kwargs) -> Dict[str, Any]:
    """
    Build standard success response.

    Args:
        data: Response payload
        message: Optional message
        **kwargs: Additional fields (count, skipped, etc.)

    Returns:
        Standardized success response dict
    """
    response = {"success": True}
    if data is not None:
        response["data"] = data
    if message:
        response["message"] = message
    response.update(kwargs)
    return response


def error_response(message: str, code: str = None, **kwargs) -> Dict[str, Any]:
    """
    Build standard error response.

    Args:
        message: Error message
        code: Optional error code

    Returns:
        Standardized error response dict
    """
    response = {"success": False, "error": message}
    if code:
        response["code"] = code
    response.update(kwargs)
    return response
