"""Policy management: replace fields of the active cancellation policy."""

import json

from protean import handle
from protean.fields import Float, Integer, String, Text
from protean.utils.globals import current_domain

from refunds.domain import refunds
from refunds.policy.policy import UPDATABLE_FIELDS, CancellationPolicy
from refunds.utils.logging import logger

_JSON_FIELDS = ("allowed_reasons", "time_based_rules", "order_status_rules", "terms")


@refunds.command(part_of="CancellationPolicy")
class UpdatePolicy:
    """Replace the given policy fields; omitted fields keep their value."""

    refund_percentage = Float(min_value=0.0, max_value=100.0)
    response_time_hours = Integer(min_value=0)
    allowed_reasons = Text()  # JSON list of strings
    time_based_rules = Text()  # JSON list of rule dicts
    order_status_rules = Text()  # JSON list of rule dicts
    terms = Text()  # JSON list of {"title", "content"}
    return_window_days = Integer(min_value=0)
    return_refund_percentage = Float(min_value=0.0, max_value=100.0)
    re_request_cooldown_hours = Integer(min_value=0)
    updated_by = String(max_length=100)


@refunds.command_handler(part_of=CancellationPolicy)
class UpdatePolicyHandler:
    @handle(UpdatePolicy)
    def update_policy(self, command):
        fields = {}
        for name in UPDATABLE_FIELDS:
            value = getattr(command, name)
            if value is not None and name in _JSON_FIELDS and isinstance(value, str):
                value = json.loads(value)
            fields[name] = value

        repo = current_domain.repository_for(CancellationPolicy)
        policy = repo.get_active()
        changed = policy.update(updated_by=command.updated_by, **fields)
        repo.add(policy)

        logger.info(
            "Cancellation policy updated",
            policy_id=str(policy.id),
            changed_fields=changed,
            updated_by=command.updated_by,
        )
        return str(policy.id)
