"""Policy store: enforces a single active CancellationPolicy.

The active record is selected by ``active_key`` (unique), so a second active
policy cannot be saved next to the first one.
"""

from protean.utils.globals import current_domain

from refunds.clock import utcnow
from refunds.domain import refunds
from refunds.policy.events import PolicyBootstrapped
from refunds.policy.policy import ACTIVE_KEY, CancellationPolicy
from refunds.utils.logging import logger


@refunds.repository(part_of=CancellationPolicy)
class PolicyRepository:
    def find_active(self) -> CancellationPolicy | None:
        return self._dao.query.filter(active_key=ACTIVE_KEY).all().first

    def get_active(self) -> CancellationPolicy:
        """Return the active policy, bootstrapping the default if there is none."""
        policy = self.find_active()
        if policy is not None:
            return policy

        policy = CancellationPolicy.default()
        policy.raise_(PolicyBootstrapped(policy_id=str(policy.id), created_at=utcnow()))
        self.add(policy)
        logger.info("Default cancellation policy bootstrapped", policy_id=str(policy.id))
        return policy


def get_active_policy() -> CancellationPolicy:
    return current_domain.repository_for(CancellationPolicy).get_active()
