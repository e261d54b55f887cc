from .work_queue_service import KitchenWorkQueueService

__all__ = [
    'KitchenWorkQueueService',
]
