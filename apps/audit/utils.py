import logging

from apps.audit.models import AuditEvent

logger = logging.getLogger(__name__)


def _client_ip(request) -> str | None:
    if request is None:
        return None
    xff = request.META.get("HTTP_X_FORWARDED_FOR")
    if xff:
        return xff.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


def _request_user(request):
    user = getattr(request, "user", None)
    return user if user is not None and user.is_authenticated else None


def log_event(
    request,
    action: str,
    object_type: str = "",
    object_id: str | int | None = None,
    *,
    actor=None,
    detail: dict | None = None,
) -> AuditEvent:
    # centralizing audit insert so it stays consistent across the app.
    # `actor` overrides request.user (login happens before the request is authenticated).
    event = AuditEvent.objects.create(
        actor=actor or _request_user(request),
        action=action,
        object_type=object_type,
        object_id=str(object_id if object_id is not None else ""),
        detail=detail or {},
        ip=_client_ip(request),
        user_agent=request.META.get("HTTP_USER_AGENT", "") if request is not None else "",
    )
    logger.info("audit %s %s:%s", action, object_type, event.object_id)
    return event
