"""
Orders services package.

- FulfillmentService: order placement, kitchen progression, pickup verification
- PlacementRequest / PlacementResult / TransitionResult: its inputs and outputs
"""

from .fulfillment_service import (
    FulfillmentService,
    PlacementRequest,
    PlacementResult,
    TransitionResult,
    persistence_conflicts,
)

__all__ = [
    'FulfillmentService',
    'PlacementRequest',
    'PlacementResult',
    'TransitionResult',
    'persistence_conflicts',
]
