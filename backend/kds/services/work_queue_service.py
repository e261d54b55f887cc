from typing import Optional
import logging

from django.utils import timezone

from ..exceptions import InvalidTransition
from ..models import ACTIVE_STATUSES, KITCHEN_TRANSITIONS, KitchenStatus, KitchenWorkItem

logger = logging.getLogger(__name__)


class KitchenWorkQueueService:
    """
    Kitchen work item lifecycle.

    Every status write is a conditional UPDATE guarded by the status the caller last
    saw, so a stale request fails with InvalidTransition instead of overwriting a
    newer state. Callers own the surrounding transaction.
    """

    # Timestamp column stamped when a status is entered
    TIMESTAMP_FIELDS = {
        KitchenStatus.PREPARING: 'started_at',
        KitchenStatus.READY: 'ready_at',
        KitchenStatus.COMPLETED: 'completed_at',
        KitchenStatus.CANCELLED: 'cancelled_at',
    }

    @classmethod
    def create_for_order(cls, order, assigned_by=None, notes="") -> KitchenWorkItem:
        work_item = KitchenWorkItem.all_objects.create(
            restaurant_id=order.restaurant_id,
            order=order,
            status=KitchenStatus.PENDING,
            assigned_by=assigned_by,
            notes=notes or "",
        )
        logger.info(f"Created kitchen work item {work_item.id} for order {order.order_number}")
        return work_item

    @classmethod
    def is_legal(cls, current_status, new_status) -> bool:
        return new_status in KITCHEN_TRANSITIONS.get(current_status, ())

    @classmethod
    def transition(cls, work_item: KitchenWorkItem, new_status: str, acting_user=None) -> KitchenWorkItem:
        """
        Move a work item to new_status and stamp the matching timestamp.
        Raises InvalidTransition when the move is illegal or the row changed underneath us.
        """
        if new_status not in KitchenStatus.values:
            raise InvalidTransition(work_item.status, new_status, f"Unknown kitchen status '{new_status}'")

        current_status = work_item.status
        if not cls.is_legal(current_status, new_status):
            logger.warning(
                f"Rejected kitchen transition {current_status} -> {new_status} for order {work_item.order_id}"
            )
            raise InvalidTransition(current_status, new_status)

        now = timezone.now()
        changes = {'status': new_status, 'updated_at': now}
        timestamp_field = cls.TIMESTAMP_FIELDS.get(new_status)
        if timestamp_field:
            changes[timestamp_field] = now
        if new_status == KitchenStatus.PREPARING and acting_user is not None:
            changes['staff'] = acting_user

        updated = KitchenWorkItem.all_objects.filter(
            pk=work_item.pk,
            status=current_status,
        ).update(**changes)

        if updated != 1:
            stored_status = (
                KitchenWorkItem.all_objects.filter(pk=work_item.pk).values_list('status', flat=True).first()
            )
            logger.warning(
                f"Stale kitchen transition for order {work_item.order_id}: expected {current_status}, "
                f"found {stored_status}"
            )
            raise InvalidTransition(stored_status, new_status)

        for field_name, value in changes.items():
            setattr(work_item, field_name, value)

        logger.info(f"Kitchen work item {work_item.id} moved {current_status} -> {new_status}")
        return work_item

    @classmethod
    def assign_staff(cls, work_item: KitchenWorkItem, staff, assigned_by=None) -> KitchenWorkItem:
        """Set the assignee without touching status. Terminal items are left alone."""
        now = timezone.now()
        changes = {'staff': staff, 'assigned_at': now, 'updated_at': now}
        if assigned_by is not None:
            changes['assigned_by'] = assigned_by

        updated = KitchenWorkItem.all_objects.filter(
            pk=work_item.pk,
            status__in=ACTIVE_STATUSES,
        ).update(**changes)

        if updated != 1:
            stored_status = (
                KitchenWorkItem.all_objects.filter(pk=work_item.pk).values_list('status', flat=True).first()
            )
            raise InvalidTransition(
                stored_status,
                stored_status,
                f"Cannot assign staff to a kitchen order that is {stored_status}",
            )

        for field_name, value in changes.items():
            setattr(work_item, field_name, value)

        logger.info(f"Kitchen work item {work_item.id} assigned to user {getattr(staff, 'pk', None)}")
        return work_item

    @classmethod
    def reset(cls, work_item: KitchenWorkItem) -> KitchenWorkItem:
        """
        Administrative reset back to pending. Only items still in the kitchen can be
        reset; completed and cancelled items keep their history.
        """
        current_status = work_item.status
        if current_status not in (KitchenStatus.PREPARING, KitchenStatus.READY):
            raise InvalidTransition(current_status, KitchenStatus.PENDING)

        now = timezone.now()
        changes = {'status': KitchenStatus.PENDING, 'started_at': None, 'ready_at': None, 'updated_at': now}
        updated = KitchenWorkItem.all_objects.filter(pk=work_item.pk, status=current_status).update(**changes)
        if updated != 1:
            stored_status = (
                KitchenWorkItem.all_objects.filter(pk=work_item.pk).values_list('status', flat=True).first()
            )
            raise InvalidTransition(stored_status, KitchenStatus.PENDING)

        for field_name, value in changes.items():
            setattr(work_item, field_name, value)

        logger.info(f"Kitchen work item {work_item.id} reset from {current_status} to pending")
        return work_item

    @classmethod
    def get_for_order(cls, restaurant, order_id, for_update=False) -> Optional[KitchenWorkItem]:
        queryset = KitchenWorkItem.all_objects.all()
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.filter(restaurant=restaurant, order_id=order_id).first()

    @classmethod
    def active_items(cls, restaurant):
        return (
            KitchenWorkItem.all_objects.select_related('order', 'order__table', 'staff')
            .filter(restaurant=restaurant, status__in=ACTIVE_STATUSES)
            .order_by('assigned_at')
        )
