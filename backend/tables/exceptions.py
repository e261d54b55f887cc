from rest_framework import status

from core_backend.exceptions import ServiceError


class TableUnavailable(ServiceError):
    """Table is missing, inactive or already taken"""
    code = "TABLE_UNAVAILABLE"
    status_code = status.HTTP_409_CONFLICT

    MISSING = "missing"
    INACTIVE = "inactive"
    BUSY = "busy"

    def __init__(self, table_number, reason, current_status=None):
        self.table_number = table_number
        self.reason = reason
        self.current_status = current_status
        messages = {
            self.MISSING: f"Table {table_number} does not exist",
            self.INACTIVE: f"Table {table_number} is inactive",
            self.BUSY: f"Table {table_number} is not available",
        }
        details = {"tableNumber": table_number, "reason": reason}
        if current_status:
            details["currentStatus"] = current_status
        super().__init__(messages.get(reason, f"Table {table_number} is unavailable"), details=details)


class TableInUse(ServiceError):
    """Table is held by an open order"""
    code = "TABLE_IN_USE"
    status_code = status.HTTP_409_CONFLICT
