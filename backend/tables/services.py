"""
Table occupancy.

Occupy and release are single status-guarded UPDATE statements so two requests racing
for the same table cannot both win. Nothing here reads a status and then writes it back.
"""
import logging

from django.utils import timezone

from .exceptions import TableInUse, TableUnavailable
from .models import DiningTable, TableStatus

logger = logging.getLogger(__name__)


class TableService:

    # Statuses an administrator may set directly; occupied is reserved for orders
    ADMIN_STATUSES = (TableStatus.AVAILABLE, TableStatus.RESERVED, TableStatus.INACTIVE)

    @staticmethod
    def try_occupy(restaurant, table_number) -> DiningTable:
        """
        Flip an available, active table to occupied.

        Raises TableUnavailable when no row matched the guard. The reason is worked out
        afterwards from a plain read, which is only used for the error message.
        """
        updated = DiningTable.all_objects.filter(
            restaurant=restaurant,
            number=table_number,
            status=TableStatus.AVAILABLE,
            is_active=True,
        ).update(status=TableStatus.OCCUPIED, updated_at=timezone.now())

        table = DiningTable.all_objects.filter(restaurant=restaurant, number=table_number).first()

        if updated == 1:
            logger.info(f"Table {table_number} occupied in restaurant {restaurant.slug}")
            return table

        if table is None:
            reason = TableUnavailable.MISSING
        elif not table.is_active or table.status == TableStatus.INACTIVE:
            reason = TableUnavailable.INACTIVE
        else:
            reason = TableUnavailable.BUSY

        logger.warning(f"Table {table_number} unavailable in restaurant {restaurant.slug}: {reason}")
        raise TableUnavailable(
            table_number,
            reason,
            current_status=table.status if table else None,
        )

    @staticmethod
    def release(table) -> bool:
        """
        Return an occupied table to available. Releasing a table that is not occupied
        is a no-op. Returns True when the status actually changed.
        """
        if table is None:
            return False

        released = DiningTable.all_objects.filter(
            pk=table.pk,
            status=TableStatus.OCCUPIED,
        ).update(status=TableStatus.AVAILABLE, updated_at=timezone.now())

        if released:
            table.status = TableStatus.AVAILABLE
            logger.info(f"Table {table.number} released")
        return bool(released)

    @staticmethod
    def check_availability(restaurant, table_number) -> dict:
        """Read-only availability hint for ordering clients. Never reserves anything."""
        table = DiningTable.all_objects.filter(restaurant=restaurant, number=table_number).first()
        if table is None:
            return {"tableNumber": table_number, "exists": False, "active": False, "available": False, "status": None}

        active = table.is_active and table.status != TableStatus.INACTIVE
        return {
            "tableNumber": table_number,
            "exists": True,
            "active": active,
            "available": active and table.status == TableStatus.AVAILABLE,
            "status": table.status,
            "capacity": table.capacity,
        }

    @staticmethod
    def has_open_order(table) -> bool:
        from orders.models import Order, OrderStatus

        return Order.all_objects.filter(table=table).exclude(
            status__in=[OrderStatus.COMPLETED, OrderStatus.CANCELLED]
        ).exists()

    @staticmethod
    def set_status(table, new_status) -> DiningTable:
        """
        Administrative status change (available, reserved, inactive).

        Refused while an open order holds the table. The write itself only matches a
        row that is not occupied, so a placement that occupies the table after the
        open-order check still wins.
        """
        if new_status not in TableService.ADMIN_STATUSES:
            raise ValueError(f"Status '{new_status}' cannot be set directly")

        if TableService.has_open_order(table):
            raise TableInUse(
                f"Table {table.number} is held by an open order",
                details={"tableNumber": table.number, "currentStatus": table.status},
            )

        old_status = table.status
        is_active = new_status != TableStatus.INACTIVE
        now = timezone.now()
        updated = DiningTable.all_objects.filter(pk=table.pk).exclude(
            status=TableStatus.OCCUPIED
        ).update(status=new_status, is_active=is_active, updated_at=now)

        if not updated:
            current_status = DiningTable.all_objects.filter(pk=table.pk).values_list('status', flat=True).first()
            logger.warning(f"Table {table.number} was occupied before its status could change to {new_status}")
            raise TableInUse(
                f"Table {table.number} is occupied",
                details={"tableNumber": table.number, "currentStatus": current_status},
            )

        table.status = new_status
        table.is_active = is_active
        table.updated_at = now
        logger.info(f"Table {table.number} status changed {old_status} -> {new_status}")
        return table
