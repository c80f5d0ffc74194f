# apps/accounts/api.py
import logging

from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.signals import user_logged_in, user_logged_out, user_login_failed
from rest_framework import mixins, status, viewsets
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
)
from drf_spectacular.types import OpenApiTypes

from apps.audit.utils import log_event
from apps.core.exceptions import InvalidRequest
from apps.core.pagination import AdminPages
from apps.core.params import parse_bool
from apps.rbac.permissions import roles_required

from .schemas import CreateDoctorUserExample, DetailResponse, LoginExample, RegisterExample
from .serializers import (
    AuthResponseSerializer,
    ForgotPasswordSerializer,
    LoginSerializer,
    RefreshTokenSerializer,
    RegisterSerializer,
    UserCreateSerializer,
    UserSerializer,
    UserUpdateSerializer,
)
from .services import create_user_account, register_patient, tokens_for, update_user_account

logger = logging.getLogger(__name__)

User = get_user_model()


def _auth_payload(user) -> dict:
    return {"user": UserSerializer(user).data, **tokens_for(user)}


@extend_schema(
    tags=["Auth"],
    summary="Patient self-registration",
    description="Creates the login and the patient profile together. Applicants must be 18 or older.",
    request=RegisterSerializer,
    examples=[RegisterExample],
    responses={201: AuthResponseSerializer},
)
class RegisterView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        ser = RegisterSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        user = register_patient(dict(ser.validated_data))
        log_event(request, "auth.register", "User", user.id, actor=user)
        return Response(_auth_payload(user), status=status.HTTP_201_CREATED)


@extend_schema(
    tags=["Auth"],
    summary="Login with email and password",
    description="Returns the user and a JWT pair. Disabled accounts get a distinct 401 message.",
    request=LoginSerializer,
    examples=[LoginExample],
    responses={200: AuthResponseSerializer, 401: DetailResponse},
)
class LoginView(APIView):
    permission_classes = [AllowAny]

    def _fail(self, request, email: str):
        user_login_failed.send(sender=__name__, credentials={"username": email}, request=request)
        raise AuthenticationFailed("Invalid email or password.")

    def post(self, request):
        ser = LoginSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        email = ser.validated_data["email"].strip().lower()
        password = ser.validated_data["password"]

        found = User.objects.filter(email__iexact=email).first()
        if found is None:
            self._fail(request, email)

        if not found.is_active:
            if found.check_password(password):
                raise AuthenticationFailed("This account is disabled. Contact the clinic administrator.")
            self._fail(request, email)

        # ModelBackend fires user_login_failed itself on a bad password.
        user = authenticate(request, username=found.username, password=password)
        if user is None:
            raise AuthenticationFailed("Invalid email or password.")

        # Updates last_login and writes the audit row (see signals.py).
        user_logged_in.send(sender=user.__class__, request=request, user=user)
        return Response(_auth_payload(user))


@extend_schema(
    tags=["Auth"],
    summary="Logout",
    description="Blacklists the given refresh token so it can no longer be rotated.",
    request=RefreshTokenSerializer,
    responses={200: DetailResponse},
)
class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = RefreshTokenSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            RefreshToken(ser.validated_data["refresh"]).blacklist()
        except TokenError as exc:
            raise InvalidRequest(f"Invalid refresh token: {exc}")
        user_logged_out.send(sender=request.user.__class__, request=request, user=request.user)
        return Response({"detail": "Logged out."})


@extend_schema(
    tags=["Auth"],
    summary="Forgot password (simulated)",
    description="Always answers with the same message whether or not the email exists.",
    request=ForgotPasswordSerializer,
    responses={200: DetailResponse},
)
class ForgotPasswordView(APIView):
    permission_classes = [AllowAny]

    def post(self, request):
        ser = ForgotPasswordSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        user = User.objects.filter(email__iexact=ser.validated_data["email"]).first()
        log_event(request, "auth.forgot_password", "User", user.id if user else None, actor=user)
        return Response({"detail": "If the email is registered, reset instructions have been sent."})


@extend_schema(
    tags=["Auth"],
    summary="Who am I",
    description="I return the current user with role and profile ids.",
    responses={200: UserSerializer},
)
class WhoAmIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)


@extend_schema_view(
    list=extend_schema(
        summary="List users (admin)",
        parameters=[
            OpenApiParameter(name="role", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="is_active", required=False, type=OpenApiTypes.BOOL),
            OpenApiParameter(name="q", description="Search email/names", required=False, type=OpenApiTypes.STR),
            OpenApiParameter(name="page", required=False, type=OpenApiTypes.INT),
            OpenApiParameter(name="page_size", description="Default 50, max 200", required=False, type=OpenApiTypes.INT),
        ],
    ),
    retrieve=extend_schema(summary="Get user (admin)"),
    create=extend_schema(
        summary="Create user (admin)",
        description="Doctor, patient and pharmacy roles need their nested profile block.",
        request=UserCreateSerializer,
        examples=[CreateDoctorUserExample],
        responses={201: UserSerializer},
    ),
    partial_update=extend_schema(
        summary="Update user (admin, partial)",
        request=UserUpdateSerializer,
        responses={200: UserSerializer},
    ),
)
class UserAdminViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    I let admins manage logins and their role profiles.
    """
    schema_tags = ["Users"]
    queryset = User.objects.select_related("patient", "doctor", "pharmacy").all()
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, roles_required("admin")]
    pagination_class = AdminPages
    search_fields = ["email", "first_name", "last_name", "username"]
    ordering_fields = ["date_joined", "email", "last_login", "role"]
    ordering = ["-date_joined", "-id"]
    http_method_names = ["get", "post", "patch", "head", "options"]

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action != "list":
            return qs
        role = self.request.query_params.get("role", "").strip().lower()
        if role:
            qs = qs.filter(role=role)
        is_active = parse_bool(self.request.query_params.get("is_active"))
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        return qs

    def create(self, request, *args, **kwargs):
        ser = UserCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        user = create_user_account(dict(ser.validated_data))
        log_event(request, "user.create", "User", user.id, detail={"role": user.role})
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        user = self.get_object()
        ser = UserUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        update_user_account(user, dict(ser.validated_data))
        log_event(request, "user.update", "User", user.id, detail={"fields": sorted(ser.validated_data)})
        user.refresh_from_db()
        return Response(UserSerializer(user).data)
