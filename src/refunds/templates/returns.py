"""Return notification templates."""


def _money(value) -> str:
    return f"{float(value or 0):.2f}"


class ReturnRequestedTemplate:
    notification_type = "Return_Requested"

    @staticmethod
    def render(context: dict) -> dict:
        count = context.get("request_count", 0)
        item_word = "item" if count == 1 else "items"
        return {
            "subject": "Return Request Received",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"We received your return request for {count} {item_word}.\n"
                f"Total expected refund: {_money(context.get('total_refund'))}\n\n"
                "We will notify you once our team has reviewed it."
            ),
        }


class ReturnDecisionTemplate:
    notification_type = "Return_Decision"

    @staticmethod
    def render(context: dict) -> dict:
        approved = context.get("approved", False)
        item_name = context.get("item_name", "your item")
        if approved:
            outcome = (
                f"Your return for {item_name} has been approved.\n"
                f"Refund amount: {_money(context.get('refund_amount'))}"
            )
        else:
            outcome = f"Your return for {item_name} could not be approved."
        return {
            "subject": f"Return Request {'Approved' if approved else 'Rejected'}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"{outcome}\n\n"
                f"Comments: {context.get('admin_comments') or 'None'}"
            ),
        }


class ReturnRefundCompletedTemplate:
    notification_type = "Return_Refund_Completed"

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "subject": "Return Refund Completed",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"The refund of {_money(context.get('refund_amount'))} for "
                f"{context.get('item_name', 'your returned item')} has been completed.\n"
                f"Refund reference: {context.get('refund_id') or 'N/A'}"
            ),
        }
