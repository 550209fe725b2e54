"""Exception types shared by the lifecycle manager, integrations and routes."""

from __future__ import annotations


class AreaError(Exception):
    """Base class for Area errors."""


class ProviderError(AreaError):
    """A provider API answered with a non-2xx status."""

    def __init__(self, provider: str, status: int, body: str) -> None:
        super().__init__(f"{provider} API error {status}: {body}")
        self.provider = provider
        self.status = status
        self.body = body


class ProvisioningError(AreaError):
    """An action create-handler failed. The workflow has been rolled back."""

    def __init__(self, action_id: int, cause: BaseException) -> None:
        super().__init__(f"Failed to create webhook for action {action_id}: {cause}")
        self.action_id = action_id
        self.cause = cause


class MissingHandlerError(AreaError, LookupError):
    """No handler registered for an action id the catalog knows about."""

    def __init__(self, kind: str, handler_id: int) -> None:
        super().__init__(f"No {kind} handler registered for id {handler_id}")
        self.kind = kind
        self.handler_id = handler_id
