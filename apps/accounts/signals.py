from django.contrib.auth.signals import (
    user_logged_in,
    user_logged_out,
    user_login_failed,
)
from django.dispatch import receiver
from apps.audit.utils import log_event


@receiver(user_logged_in)
def audit_login(sender, request, user, **kwargs):
    #  the request is still anonymous at this point.
    log_event(request, "auth.login", "User", user.id, actor=user)


@receiver(user_logged_out)
def audit_logout(sender, request, user, **kwargs):
    log_event(request, "auth.logout", "User", getattr(user, "id", ""))


@receiver(user_login_failed)
def audit_login_failed(sender, credentials, request=None, **kwargs):
    #  record failed logins without attaching a user id.
    username = (credentials or {}).get("username", "")
    log_event(request, "auth.login_failed", "Auth", detail={"username": username})
