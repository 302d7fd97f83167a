from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from .views import BillingTokenObtainPairView, audit_log_list, register, setting_detail, setting_list_create, user_me

urlpatterns = [
    path('auth/register/', register, name='register'),
    path('auth/login/', BillingTokenObtainPairView.as_view(), name='token-obtain-pair'),
    path('auth/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('auth/me/', user_me, name='user-me'),

    path('settings/', setting_list_create, name='setting-list-create'),
    path('settings/<str:key>/', setting_detail, name='setting-detail'),

    path('audit-logs/', audit_log_list, name='audit-log-list'),
]
