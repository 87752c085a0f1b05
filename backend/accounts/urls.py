from django.urls import path

from .views import (
    LoginView,
    ProfileView,
    RefreshTokenView,
    RegisterView,
    RoleSwitchView,
)

urlpatterns = [
    path("register/", RegisterView.as_view(), name="register"),
    path("login/", LoginView.as_view(), name="login"),
    path("token/refresh/", RefreshTokenView.as_view(), name="token-refresh"),
    path("profile/", ProfileView.as_view(), name="profile"),
    path("role/", RoleSwitchView.as_view(), name="role-switch"),
]
