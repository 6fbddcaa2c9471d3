"""Refunds bounded context: Order Lifecycle, Cancellations and Returns.

Decides which status transitions an order may undergo, governs customer
cancellation and per-item return requests, computes refund amounts under the
active cancellation policy, and records admin decisions as auditable state
changes. Uses CQRS (not event sourcing): request records carry their own
append-only timelines.
"""

from protean.domain import Domain

refunds = Domain(name="refunds")
