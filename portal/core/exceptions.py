class PortalError(Exception):
    """Base class for errors raised by the offer core."""


class NotFound(PortalError):
    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidStateTransition(PortalError):
    def __init__(self, offer_id, current_status: str, action: str):
        self.offer_id = offer_id
        self.current_status = current_status
        self.action = action
        super().__init__(f"Cannot {action} offer {offer_id} in status '{current_status}'")


class NotExpiredError(PortalError):
    def __init__(self, offer_id, deadline):
        self.offer_id = offer_id
        self.deadline = deadline
        super().__init__(f"Offer {offer_id} deadline {deadline} has not passed yet")


class ValidationError(PortalError):
    """A submission is missing a mandatory document or carries a wrong file."""

    def __init__(self, missing_field: str = None, invalid_type: str = None, duplicate_field: str = None):
        self.missing_field = missing_field
        self.invalid_type = invalid_type
        self.duplicate_field = duplicate_field
        if missing_field:
            message = f"{missing_field} file is required"
        elif invalid_type:
            message = f"{invalid_type} must be a PDF file"
        else:
            message = f"{duplicate_field} must be supplied exactly once"
        super().__init__(message)

    @property
    def field(self) -> str:
        return self.missing_field or self.invalid_type or self.duplicate_field


class NotificationDeliveryError(PortalError):
    def __init__(self, recipient: str, template_id: str, reason: str):
        self.recipient = recipient
        self.template_id = template_id
        self.reason = reason
        super().__init__(f"Failed to deliver '{template_id}' to {recipient}: {reason}")


class OfferClosedError(PortalError):
    def __init__(self, offer_id, reason: str):
        self.offer_id = offer_id
        super().__init__(reason)


class DuplicateApplicationError(PortalError):
    def __init__(self, offer_id, email: str):
        self.offer_id = offer_id
        self.email = email
        super().__init__(f"{email} has already applied to offer {offer_id}")


class ArchiveWindowClosedError(PortalError):
    def __init__(self, offer_id, pending: int):
        self.offer_id = offer_id
        self.pending = pending
        super().__init__(
            f"Archive window for offer {offer_id} is closed, {pending} applications were never archived"
        )
