"""Error taxonomy for the enrollment, progress and grading core.

Every failure the core reports is a ServiceError subclass carrying:

  kind       stable machine-readable identifier (what API callers switch on)
  message    human-readable summary, never shown to end users verbatim
  context    structured fields (ids, limits) for the caller and for logs
  retriable  whether the same call may succeed after re-reading state

Categories:

  validation      malformed input; raised before any mutation
  lookup          referenced entity does not exist
  state           business-rule conflict with current persisted state
  authorization   caller may not perform the action; never auto-retried
  concurrency     lost an optimistic write race; retry after re-fetch
  infrastructure  storage/transport failure; distinct from any Deny

The core never maps these to HTTP.  learnhub.api.errors does that.
"""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    kind = "service_error"
    category = "internal"
    retriable = False

    def __init__(self, message: str | None = None, **context: Any) -> None:
        self.message = message or self.kind.replace("_", " ")
        self.context: dict[str, Any] = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "context": {k: _jsonable(v) for k, v in self.context.items()},
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return str(value)


# --- validation ---


class ValidationError(ServiceError):
    """Malformed input.  `errors` maps field name -> problem."""

    kind = "validation_error"
    category = "validation"

    def __init__(
        self,
        message: str | None = None,
        errors: dict[str, str] | None = None,
        **context: Any,
    ) -> None:
        self.errors: dict[str, str] = dict(errors or {})
        if self.errors:
            context["errors"] = self.errors
        super().__init__(message or "invalid input", **context)


class EmptySubmission(ValidationError):
    kind = "empty_submission"


class GradeOutOfRange(ValidationError):
    kind = "grade_out_of_range"


# --- lookup ---


class NotFound(ServiceError):
    kind = "not_found"
    category = "lookup"


# --- state ---


class StateError(ServiceError):
    category = "state"
    retriable = True


class AlreadyEnrolled(StateError):
    kind = "already_enrolled"


class NotEnrolled(StateError):
    kind = "not_enrolled"


class EnrollmentRequired(StateError):
    kind = "enrollment_required"


class CourseUnavailable(StateError):
    kind = "course_unavailable"


class AssignmentClosed(StateError):
    kind = "assignment_closed"


class AlreadySubmitted(StateError):
    kind = "already_submitted"


class EnrollmentCompleted(StateError):
    kind = "enrollment_completed"


# --- authorization ---


class NotAuthorized(ServiceError):
    kind = "not_authorized"
    category = "authorization"


# --- concurrency ---


class ConcurrentModification(ServiceError):
    kind = "concurrent_modification"
    category = "concurrency"
    retriable = True


# --- infrastructure ---


class ServiceUnavailable(ServiceError):
    kind = "service_unavailable"
    category = "infrastructure"
    retriable = True
