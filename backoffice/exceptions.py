"""
Engine errors.

ValidationError and InvalidStateTransition are raised before a document is
touched. ExternalSideEffectFailure describes a failed call to the external
order/inventory system; workflows collect it next to their result instead of
raising it.
"""

from typing import Optional


class EngineError(Exception):
    code = "ENGINE_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(EngineError):
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field_errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.field_errors = field_errors or {}

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.field_errors:
            data["details"] = self.field_errors
        return data


class InvalidStateTransition(EngineError):
    code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        document_type: str,
        state: str,
        action: str,
        allowed_actions: Optional[list[str]] = None,
    ):
        super().__init__(
            f"Cannot {action} {document_type.replace('_', ' ')} in '{state}' status"
        )
        self.document_type = document_type
        self.state = state
        self.action = action
        self.allowed_actions = allowed_actions or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["details"] = {
            "document_type": self.document_type,
            "state": self.state,
            "action": self.action,
            "allowed_actions": self.allowed_actions,
        }
        return data


class DocumentNotFound(EngineError):
    code = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_type: str, document_id: str):
        super().__init__(f"{document_type.replace('_', ' ').capitalize()} '{document_id}' not found")
        self.document_type = document_type
        self.document_id = document_id


class ExternalSideEffectFailure(EngineError):
    code = "EXTERNAL_SIDE_EFFECT_FAILED"

    def __init__(self, effect: str, target: str, reason: str):
        super().__init__(f"{effect} failed for '{target}': {reason}")
        self.effect = effect
        self.target = target
        self.reason = reason

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["details"] = {"effect": self.effect, "target": self.target, "reason": self.reason}
        return data
