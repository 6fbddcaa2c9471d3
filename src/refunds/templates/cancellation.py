"""Cancellation notification templates."""


def _money(value) -> str:
    return f"{float(value or 0):.2f}"


class CancellationRequestedTemplate:
    notification_type = "Cancellation_Requested"

    @staticmethod
    def render(context: dict) -> dict:
        order_code = context.get("order_code", "N/A")
        return {
            "subject": f"Cancellation Request Received - Order #{order_code}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"We received your request to cancel order #{order_code}.\n\n"
                f"Reason: {context.get('reason', 'Not specified')}\n"
                f"Order total: {_money(context.get('total_amt'))}\n"
                f"Expected refund ({float(context.get('refund_percentage') or 0):g}%): "
                f"{_money(context.get('expected_refund'))}\n\n"
                f"Our team will review your request within "
                f"{context.get('response_time_hours', 48)} hours."
            ),
        }


class CancellationApprovedTemplate:
    notification_type = "Cancellation_Approved"

    @staticmethod
    def render(context: dict) -> dict:
        order_code = context.get("order_code", "N/A")
        return {
            "subject": f"Cancellation Approved - Order #{order_code}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"Your cancellation request for order #{order_code} has been approved.\n\n"
                f"Refund amount: {_money(context.get('refund_amount'))} "
                f"({float(context.get('refund_percentage') or 0):g}% of your order total)\n"
                "Your refund will be processed within 5-7 business days.\n\n"
                f"{context.get('admin_comments') or ''}"
            ).rstrip(),
        }


class CancellationRejectedTemplate:
    notification_type = "Cancellation_Rejected"

    @staticmethod
    def render(context: dict) -> dict:
        order_code = context.get("order_code", "N/A")
        return {
            "subject": f"Cancellation Request Update - Order #{order_code}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"We were unable to approve the cancellation of order #{order_code}.\n\n"
                f"Comments: {context.get('admin_comments') or 'None'}\n\n"
                "Your order will continue to be processed."
            ),
        }


class RefundCompletedTemplate:
    notification_type = "Refund_Completed"

    @staticmethod
    def render(context: dict) -> dict:
        order_code = context.get("order_code", "N/A")
        return {
            "subject": f"Refund Completed - Order #{order_code}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"A refund of {_money(context.get('refund_amount'))} for order "
                f"#{order_code} has been completed.\n\n"
                f"Refund reference: {context.get('refund_id', 'N/A')}\n"
                f"Retained amount: {_money(context.get('retained_amount'))}\n\n"
                "The refund should appear in your account within 5-10 business days, "
                "depending on your payment provider."
            ),
        }


def _line_summary(lines: list) -> str:
    return "\n".join(
        f"- {line.get('name') or 'Item'}"
        + (f" (Size: {line['size']})" if line.get("size") else "")
        + f" x{line.get('quantity', 1)}: {_money(line.get('item_total'))}"
        for line in lines
    )


class PartialCancellationRequestedTemplate:
    notification_type = "Partial_Cancellation_Requested"

    @staticmethod
    def render(context: dict) -> dict:
        order_code = context.get("order_code", "N/A")
        return {
            "subject": f"Partial Cancellation Request Submitted - Order #{order_code}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"We received your request to cancel these items from order #{order_code}:\n"
                f"{_line_summary(context.get('items') or [])}\n\n"
                f"Reason: {context.get('reason', 'Not specified')}\n"
                f"Items total: {_money(context.get('total_item_value'))}\n"
                f"Expected refund ({float(context.get('refund_percentage') or 0):g}%): "
                f"{_money(context.get('expected_refund'))}\n\n"
                f"Our team will review your request within "
                f"{context.get('response_time_hours', 48)} hours."
            ),
        }


class PartialCancellationApprovedTemplate:
    notification_type = "Partial_Cancellation_Approved"

    @staticmethod
    def render(context: dict) -> dict:
        order_code = context.get("order_code", "N/A")
        return {
            "subject": f"Partial Cancellation Approved - Order #{order_code}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"These items of order #{order_code} have been cancelled:\n"
                f"{_line_summary(context.get('items') or [])}\n\n"
                f"Refund amount: {_money(context.get('refund_amount'))} "
                f"({float(context.get('refund_percentage') or 0):g}% of the cancelled items)\n"
                "Your refund will be processed within 5-7 business days.\n\n"
                f"{context.get('admin_comments') or ''}"
            ).rstrip(),
        }


class PartialCancellationRejectedTemplate:
    notification_type = "Partial_Cancellation_Rejected"

    @staticmethod
    def render(context: dict) -> dict:
        order_code = context.get("order_code", "N/A")
        return {
            "subject": f"Partial Cancellation Request Declined - Order #{order_code}",
            "body": (
                f"Hi {context.get('customer_name', 'there')},\n\n"
                f"We were unable to cancel the requested items of order #{order_code}.\n\n"
                f"Comments: {context.get('admin_comments') or 'None'}\n\n"
                "Your order will continue to be processed in full."
            ),
        }
