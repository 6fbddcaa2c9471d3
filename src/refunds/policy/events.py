from protean.fields import DateTime, Identifier, String, Text

from refunds.domain import refunds


@refunds.event(part_of="CancellationPolicy")
class PolicyBootstrapped:
    """The default policy was created because none was active."""

    __version__ = 1

    policy_id = Identifier(required=True)
    created_at = DateTime(required=True)


@refunds.event(part_of="CancellationPolicy")
class PolicyUpdated:
    __version__ = 1

    policy_id = Identifier(required=True)
    changed_fields = Text(required=True)  # JSON list of field names
    updated_by = String()
    updated_at = DateTime(required=True)
